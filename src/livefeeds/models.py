from __future__ import annotations

from dataclasses import asdict, dataclass, field
import math
from typing import Optional, Union

RSSI_FLOOR = -90.0
RSSI_CEILING = -30.0


class SecurityType:
    OPEN = "Open"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"


SECURITY_TYPES = frozenset(
    {
        SecurityType.OPEN,
        SecurityType.WEP,
        SecurityType.WPA,
        SecurityType.WPA2,
        SecurityType.WPA3,
    }
)


class MovementType:
    STATIONARY = "Stationary"
    MOVING = "Moving"
    FAST_MOVING = "Fast Moving"


MOVEMENT_TYPES = frozenset(
    {MovementType.STATIONARY, MovementType.MOVING, MovementType.FAST_MOVING}
)


@dataclass(frozen=True)
class NetworkTemplate:
    ssid: str
    bssid: str
    frequency: int
    channel: int
    security: str
    vendor: str
    is_connected: bool = False


@dataclass(frozen=True)
class WiFiNetwork:
    ssid: str
    bssid: str
    rssi: float
    frequency: int
    channel: int
    security: str
    vendor: str
    last_seen: float
    is_connected: bool = False

    @classmethod
    def from_template(
        cls, template: NetworkTemplate, *, rssi: float, last_seen: float
    ) -> "WiFiNetwork":
        return cls(
            ssid=template.ssid,
            bssid=template.bssid,
            rssi=rssi,
            frequency=template.frequency,
            channel=template.channel,
            security=template.security,
            vendor=template.vendor,
            last_seen=last_seen,
            is_connected=template.is_connected,
        )


@dataclass
class HumanDetection:
    """A synthesized presence detection.

    Instances are mutated in place by the detection working set while they age;
    ``id`` is assigned at creation and never changes.
    """

    id: str
    x: float
    y: float
    distance: float
    confidence: float
    movement: str
    last_seen: float
    signal_strength: float
    source: str = "radar"


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Rotation:
    alpha: float = 0.0
    beta: float = 0.0
    gamma: float = 0.0


@dataclass(frozen=True)
class MotionSample:
    acceleration: Vector3
    timestamp: float
    rotation: Rotation = field(default_factory=Rotation)

    def magnitude(self) -> float:
        accel = self.acceleration
        return math.sqrt(accel.x**2 + accel.y**2 + accel.z**2)


Record = Union[WiFiNetwork, HumanDetection]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def validate_network(record: WiFiNetwork) -> None:
    if not record.bssid:
        raise ValueError("Network bssid must be set.")
    if record.security not in SECURITY_TYPES:
        raise ValueError(f"Unknown network security type: {record.security!r}.")
    if not RSSI_FLOOR <= record.rssi <= RSSI_CEILING:
        raise ValueError("Network rssi must be between -90 and -30 dBm.")
    if record.frequency <= 0 or record.channel <= 0:
        raise ValueError("Network frequency and channel must be positive.")


def validate_detection(record: HumanDetection) -> None:
    if not record.id:
        raise ValueError("Detection id must be set.")
    if record.movement not in MOVEMENT_TYPES:
        raise ValueError(f"Unknown movement type: {record.movement!r}.")
    if not 0.0 <= record.x <= 1.0 or not 0.0 <= record.y <= 1.0:
        raise ValueError("Detection position must be normalized to [0, 1].")
    if not 0.0 <= record.confidence <= 1.0:
        raise ValueError("Detection confidence must be between 0 and 1.")
    if record.distance < 0:
        raise ValueError("Detection distance must be non-negative.")


def signal_strength_category(rssi: float) -> str:
    if rssi >= -50:
        return "Excellent"
    if rssi >= -60:
        return "Good"
    if rssi >= -70:
        return "Fair"
    return "Poor"


def confidence_category(confidence: float) -> str:
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.6:
        return "medium"
    if confidence >= 0.4:
        return "low"
    return "minimal"


def record_to_dict(record: Record) -> dict:
    return asdict(record)


def band_for_frequency(frequency_mhz: float) -> Optional[str]:
    if 2400 <= frequency_mhz <= 2500:
        return "2.4ghz"
    if 5925 <= frequency_mhz <= 7125:
        return "6ghz"
    if 5000 <= frequency_mhz < 5925:
        return "5ghz"
    return None
