"""Working-set strategies for the two feeds.

The detection feed ages its records incrementally between ticks, while the
Wi-Fi feed rebuilds its whole set from the network catalog on every scan.
Both expose the same ``tick``/``snapshot`` surface so one engine can drive
either.
"""

from __future__ import annotations

from dataclasses import replace
import itertools
import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from .config import DetectionSettings, ScanSettings
from .generators import CatalogSampler, DetectionGenerator
from .models import (
    HumanDetection,
    MovementType,
    SecurityType,
    WiFiNetwork,
    band_for_frequency,
    clamp,
    signal_strength_category,
)
from .randomness import RandomSource, make_record_id

LOGGER = logging.getLogger(__name__)

DETECTION_STALENESS_SECONDS = 10.0
DRIFT_STEP = 0.05
CONFIDENCE_DECAY = 0.95

RecordT = TypeVar("RecordT")
SettingsT = TypeVar("SettingsT", contravariant=True)


class WorkingSetStrategy(Protocol[SettingsT, RecordT]):
    def tick(self, settings: SettingsT, now: float) -> List[RecordT]: ...

    def snapshot(self) -> List[RecordT]: ...

    def staleness_seconds(self, settings: SettingsT) -> float: ...


class DetectionWorkingSet:
    """Incrementally aged presence detections with a fixed 10 s expiry."""

    def __init__(
        self,
        generators: Sequence[DetectionGenerator],
        rng: RandomSource,
        *,
        on_created: Optional[Callable[[HumanDetection], None]] = None,
        staleness_seconds: float = DETECTION_STALENESS_SECONDS,
    ) -> None:
        self._generators = list(generators)
        self._rng = rng
        self._on_created = on_created
        self._staleness_seconds = staleness_seconds
        self._records: List[HumanDetection] = []
        self._sequence = itertools.count()

    def staleness_seconds(self, settings: DetectionSettings) -> float:
        return self._staleness_seconds

    def tick(self, settings: DetectionSettings, now: float) -> List[HumanDetection]:
        self.prune(now)
        existing = list(self._records)
        for generator in self._generators:
            record = generator.generate(settings, now, self._rng, self._new_id_factory(now))
            if record is None:
                continue
            self._records.append(record)
            self._announce(record)
        self._age(existing)
        return self.snapshot()

    def prune(self, now: float) -> int:
        kept = [
            record
            for record in self._records
            if now - record.last_seen <= self._staleness_seconds
        ]
        dropped = len(self._records) - len(kept)
        self._records = kept
        return dropped

    def inject(self, record: HumanDetection) -> None:
        self._records.append(record)

    def snapshot(self) -> List[HumanDetection]:
        return [replace(record) for record in self._records]

    def _new_id_factory(self, now: float) -> Callable[[str], str]:
        return lambda prefix: make_record_id(prefix, now, next(self._sequence))

    def _age(self, records: Sequence[HumanDetection]) -> None:
        for record in records:
            if record.movement == MovementType.STATIONARY:
                continue
            record.x = clamp(record.x + (self._rng.random() - 0.5) * DRIFT_STEP, 0.0, 1.0)
            record.y = clamp(record.y + (self._rng.random() - 0.5) * DRIFT_STEP, 0.0, 1.0)
            record.confidence *= CONFIDENCE_DECAY

    def _announce(self, record: HumanDetection) -> None:
        if self._on_created is None:
            return
        try:
            self._on_created(record)
        except Exception as exc:
            LOGGER.warning("Detection alert hook failed for %s: %s", record.id, exc)


class NetworkWorkingSet:
    """Wi-Fi scan results rebuilt from the catalog on every tick."""

    def __init__(self, sampler: CatalogSampler, rng: RandomSource) -> None:
        self._sampler = sampler
        self._rng = rng
        self._records: List[WiFiNetwork] = []

    def staleness_seconds(self, settings: ScanSettings) -> float:
        return settings.interval_seconds

    def tick(self, settings: ScanSettings, now: float) -> List[WiFiNetwork]:
        scanned = self._sampler.sample(now, self._rng)
        visible = [
            record for record in scanned if record.rssi >= settings.min_signal_strength
        ]
        visible.sort(key=lambda record: record.rssi, reverse=True)
        self._records = visible[: settings.max_results]
        return self.snapshot()

    def snapshot(self) -> List[WiFiNetwork]:
        return list(self._records)


def active_detections(
    records: Sequence[HumanDetection],
    now: float,
    *,
    min_confidence: float = 0.5,
    max_age_seconds: float = 5.0,
) -> List[HumanDetection]:
    """Detections a consumer should treat as currently present."""
    return [
        record
        for record in records
        if record.confidence > min_confidence and now - record.last_seen < max_age_seconds
    ]


def summarize_networks(records: Sequence[WiFiNetwork]) -> Dict[str, int]:
    return {
        "total": len(records),
        "open": sum(record.security == SecurityType.OPEN for record in records),
        "wpa3": sum(record.security == SecurityType.WPA3 for record in records),
        "band_5ghz": sum(band_for_frequency(record.frequency) == "5ghz" for record in records),
        "excellent": sum(
            signal_strength_category(record.rssi) == "Excellent" for record in records
        ),
    }


def summarize_detections(records: Sequence[HumanDetection]) -> Dict[str, int]:
    return {
        "total": len(records),
        "stationary": sum(record.movement == MovementType.STATIONARY for record in records),
        "moving": sum(record.movement == MovementType.MOVING for record in records),
        "fast_moving": sum(record.movement == MovementType.FAST_MOVING for record in records),
        "high_confidence": sum(record.confidence > 0.8 for record in records),
    }
