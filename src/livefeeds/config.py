from __future__ import annotations

from dataclasses import dataclass, replace
import math
import threading
from typing import ClassVar, Dict, Generic, Mapping, Tuple, TypeVar, Union

# Longest wait threading.Event.wait accepts, in milliseconds.
MAX_INTERVAL_MS = threading.TIMEOUT_MAX * 1000.0


@dataclass(frozen=True)
class SettingsError(ValueError):
    message: str

    def __str__(self) -> str:
        return self.message


class _FeedSettings:
    """Shared mapping logic between attribute names and exported document keys."""

    KEYS: ClassVar[Dict[str, str]] = {}
    LABEL: ClassVar[str] = "settings"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]):
        if not isinstance(payload, Mapping):
            raise SettingsError(f"{cls.LABEL} must be an object.")
        unknown = sorted(set(payload) - set(cls.KEYS.values()))
        if unknown:
            raise SettingsError(f"{cls.LABEL} has unknown keys: {', '.join(unknown)}.")
        missing = [key for key in cls.KEYS.values() if key not in payload]
        if missing:
            raise SettingsError(f"{cls.LABEL} is missing keys: {', '.join(missing)}.")
        values = {attr: payload[key] for attr, key in cls.KEYS.items()}
        settings = cls(**values)
        settings.validate()
        return settings

    def to_dict(self) -> Dict[str, object]:
        return {key: getattr(self, attr) for attr, key in self.KEYS.items()}

    def merged(self, partial: Mapping[str, object]):
        """Return a validated copy with ``partial`` shallow-merged in.

        Keys may be given either as document keys (``maxResults``) or as
        attribute names (``max_results``).
        """
        if not isinstance(partial, Mapping):
            raise SettingsError(f"{self.LABEL} update must be an object.")
        by_key = {key: attr for attr, key in self.KEYS.items()}
        changes: Dict[str, object] = {}
        for name, value in partial.items():
            attr = by_key.get(name, name)
            if attr not in self.KEYS:
                raise SettingsError(f"{self.LABEL} has no setting named {name!r}.")
            changes[attr] = value
        updated = replace(self, **changes)
        updated.validate()
        return updated

    def validate(self) -> None:
        raise NotImplementedError

    def _require_bool(self, attr: str) -> None:
        value = getattr(self, attr)
        if not isinstance(value, bool):
            raise SettingsError(
                f"{self.LABEL}.{self.KEYS[attr]} must be a boolean; received {value!r}."
            )

    def _require_number(
        self,
        attr: str,
        *,
        low: float | None = None,
        high: float | None = None,
        strict_low: bool = False,
    ) -> None:
        value = getattr(self, attr)
        label = f"{self.LABEL}.{self.KEYS[attr]}"
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SettingsError(f"{label} must be numeric; received {value!r}.")
        if not math.isfinite(value):
            raise SettingsError(f"{label} must be finite; received {value!r}.")
        if low is not None:
            if strict_low and value <= low:
                raise SettingsError(f"{label} must be greater than {low}; received {value}.")
            if not strict_low and value < low:
                raise SettingsError(f"{label} must be at least {low}; received {value}.")
        if high is not None and value > high:
            raise SettingsError(f"{label} must be at most {high}; received {value}.")


@dataclass(frozen=True)
class ScanSettings(_FeedSettings):
    interval: float = 3000
    max_results: int = 50
    show_hidden: bool = False
    min_signal_strength: float = -90

    KEYS: ClassVar[Dict[str, str]] = {
        "interval": "interval",
        "max_results": "maxResults",
        "show_hidden": "showHidden",
        "min_signal_strength": "minSignalStrength",
    }
    LABEL: ClassVar[str] = "wifi"

    def validate(self) -> None:
        self._require_number("interval", low=0, high=MAX_INTERVAL_MS, strict_low=True)
        self._require_number("max_results", low=0)
        if not isinstance(self.max_results, int):
            raise SettingsError(
                f"wifi.maxResults must be an integer; received {self.max_results!r}."
            )
        self._require_bool("show_hidden")
        self._require_number("min_signal_strength", low=-100, high=0)

    @property
    def interval_seconds(self) -> float:
        return self.interval / 1000.0


@dataclass(frozen=True)
class DetectionSettings(_FeedSettings):
    sensitivity: float = 0.7
    max_range: float = 20.0
    motion_threshold: float = 0.5
    update_interval: float = 1000
    enable_sound: bool = False
    enable_vibration: bool = False

    KEYS: ClassVar[Dict[str, str]] = {
        "sensitivity": "sensitivity",
        "max_range": "maxRange",
        "motion_threshold": "motionThreshold",
        "update_interval": "updateInterval",
        "enable_sound": "enableSound",
        "enable_vibration": "enableVibration",
    }
    LABEL: ClassVar[str] = "detection"

    def validate(self) -> None:
        self._require_number("sensitivity", low=0, high=1)
        self._require_number("max_range", low=0, strict_low=True)
        self._require_number("motion_threshold", low=0)
        self._require_number(
            "update_interval", low=0, high=MAX_INTERVAL_MS, strict_low=True
        )
        self._require_bool("enable_sound")
        self._require_bool("enable_vibration")

    @property
    def interval_seconds(self) -> float:
        return self.update_interval / 1000.0


FeedSettings = Union[ScanSettings, DetectionSettings]
SettingsT = TypeVar("SettingsT", ScanSettings, DetectionSettings)


class SettingsHolder(Generic[SettingsT]):
    """Own the current settings value for one feed.

    Updates are validated before they replace the current value; a rejected
    update leaves the previous settings in place. Readers always see a whole
    settings object, never a partially applied update.
    """

    def __init__(self, settings: SettingsT) -> None:
        settings.validate()
        self._settings = settings
        self._lock = threading.Lock()

    @property
    def current(self) -> SettingsT:
        with self._lock:
            return self._settings

    def update(self, partial: Mapping[str, object]) -> SettingsT:
        with self._lock:
            self._settings = self._settings.merged(partial)
            return self._settings

    def replace(self, settings: SettingsT) -> SettingsT:
        settings.validate()
        with self._lock:
            self._settings = settings
            return settings


def default_settings() -> Tuple[ScanSettings, DetectionSettings]:
    return ScanSettings(), DetectionSettings()
