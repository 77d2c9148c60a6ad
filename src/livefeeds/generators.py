"""Candidate generators for the Wi-Fi scan and presence detection feeds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from .config import DetectionSettings
from .models import (
    RSSI_CEILING,
    RSSI_FLOOR,
    HumanDetection,
    MovementType,
    NetworkTemplate,
    SecurityType,
    WiFiNetwork,
    clamp,
)
from .motion import MotionSource
from .randomness import RandomSource

IdFactory = Callable[[str], str]

NETWORK_CATALOG: Sequence[NetworkTemplate] = (
    NetworkTemplate(
        ssid="AndroidAP_8420",
        bssid="02:00:00:00:01:00",
        frequency=2437,
        channel=6,
        security=SecurityType.WPA2,
        vendor="Samsung",
    ),
    NetworkTemplate(
        ssid="NETGEAR_Guest",
        bssid="44:94:fc:71:22:88",
        frequency=5180,
        channel=36,
        security=SecurityType.OPEN,
        vendor="Netgear",
    ),
    NetworkTemplate(
        ssid="iPhone_Hotspot",
        bssid="8c:85:90:9b:11:dd",
        frequency=2462,
        channel=11,
        security=SecurityType.WPA3,
        vendor="Apple",
    ),
    NetworkTemplate(
        ssid="TP-Link_2.4G",
        bssid="e4:c1:46:8a:44:cc",
        frequency=2412,
        channel=1,
        security=SecurityType.WPA2,
        vendor="TP-Link",
        is_connected=True,
    ),
    NetworkTemplate(
        ssid="Starbucks WiFi",
        bssid="00:24:6c:ff:aa:11",
        frequency=5240,
        channel=48,
        security=SecurityType.OPEN,
        vendor="Cisco",
    ),
    NetworkTemplate(
        ssid="ASUS_5G_Pro",
        bssid="04:d9:f5:12:88:99",
        frequency=5745,
        channel=149,
        security=SecurityType.WPA3,
        vendor="ASUS",
    ),
)


def realistic_rssi(frequency: float, rng: RandomSource) -> float:
    # 5 GHz links read weaker than 2.4 GHz at the same distance.
    base = -65.0 if frequency > 5000 else -55.0
    variation = rng.random() * 30.0 - 20.0
    return clamp(base + variation, RSSI_FLOOR, RSSI_CEILING)


@dataclass(frozen=True)
class CatalogSampler:
    """Sample the visible subset of a static network catalog each scan."""

    catalog: Sequence[NetworkTemplate] = NETWORK_CATALOG
    dropout: float = 0.1

    def sample(self, now: float, rng: RandomSource) -> List[WiFiNetwork]:
        visible = [template for template in self.catalog if rng.random() > self.dropout]
        return [
            WiFiNetwork.from_template(
                template,
                rssi=realistic_rssi(template.frequency, rng),
                last_seen=now,
            )
            for template in visible
        ]


def random_movement(rng: RandomSource) -> str:
    draw = rng.random()
    if draw < 0.5:
        return MovementType.STATIONARY
    if draw < 0.8:
        return MovementType.MOVING
    return MovementType.FAST_MOVING


class DetectionGenerator(Protocol):
    name: str

    def generate(
        self,
        settings: DetectionSettings,
        now: float,
        rng: RandomSource,
        new_id: IdFactory,
    ) -> Optional[HumanDetection]: ...


class RadarGenerator:
    """Wide-area sweep: anywhere in the field of view, within ``max_range``."""

    name = "radar"
    probability_factor = 0.3

    def generate(
        self,
        settings: DetectionSettings,
        now: float,
        rng: RandomSource,
        new_id: IdFactory,
    ) -> Optional[HumanDetection]:
        if rng.random() >= settings.sensitivity * self.probability_factor:
            return None
        return HumanDetection(
            id=new_id(self.name),
            x=rng.random(),
            y=rng.random(),
            distance=rng.random() * settings.max_range,
            confidence=0.6 + rng.random() * 0.3,
            movement=random_movement(rng),
            last_seen=now,
            signal_strength=-40.0 - rng.random() * 30.0,
            source=self.name,
        )


class ProximityGenerator:
    """Close-range presence: a stationary target near the centre."""

    name = "proximity"
    probability_factor = 0.2

    def generate(
        self,
        settings: DetectionSettings,
        now: float,
        rng: RandomSource,
        new_id: IdFactory,
    ) -> Optional[HumanDetection]:
        if rng.random() >= settings.sensitivity * self.probability_factor:
            return None
        return HumanDetection(
            id=new_id(self.name),
            x=0.4 + rng.random() * 0.2,
            y=0.4 + rng.random() * 0.2,
            distance=rng.random() * 5.0,
            confidence=0.8 + rng.random() * 0.2,
            movement=MovementType.STATIONARY,
            last_seen=now,
            signal_strength=-25.0 - rng.random() * 15.0,
            source=self.name,
        )


class MotionGenerator:
    """Emit a detection when the latest motion sample exceeds the threshold."""

    name = "motion"
    fast_moving_magnitude = 5.0
    max_confidence = 0.9

    def __init__(self, motion_source: Optional[MotionSource] = None) -> None:
        self._motion_source = motion_source

    def generate(
        self,
        settings: DetectionSettings,
        now: float,
        rng: RandomSource,
        new_id: IdFactory,
    ) -> Optional[HumanDetection]:
        if self._motion_source is None:
            return None
        sample = self._motion_source.latest()
        if sample is None:
            return None
        magnitude = sample.magnitude()
        if magnitude <= settings.motion_threshold:
            return None
        movement = (
            MovementType.FAST_MOVING
            if magnitude > self.fast_moving_magnitude
            else MovementType.MOVING
        )
        return HumanDetection(
            id=new_id(self.name),
            x=0.5 + (rng.random() - 0.5) * 0.4,
            y=0.5 + (rng.random() - 0.5) * 0.4,
            distance=2.0 + rng.random() * 8.0,
            confidence=min(self.max_confidence, magnitude / 10.0),
            movement=movement,
            last_seen=now,
            signal_strength=-30.0 - rng.random() * 20.0,
            source=self.name,
        )


def default_detection_generators(
    motion_source: Optional[MotionSource] = None,
) -> List[DetectionGenerator]:
    return [RadarGenerator(), MotionGenerator(motion_source), ProximityGenerator()]
