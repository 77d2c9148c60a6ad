from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import threading
import time
from typing import IO, Iterable, List, Mapping, Optional, Protocol

from .models import MotionSample, Rotation, Vector3

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MotionSourceError(RuntimeError):
    message: str

    def __str__(self) -> str:
        return self.message


class MotionSource(Protocol):
    def latest(self) -> Optional[MotionSample]: ...


class LatestMotionSample:
    """Hold only the most recent motion sample; bursts collapse to the newest."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sample: Optional[MotionSample] = None
        self._last_received: Optional[float] = None

    def push(self, sample: MotionSample, received_at: Optional[float] = None) -> None:
        with self._lock:
            self._sample = sample
            self._last_received = time.time() if received_at is None else received_at

    def latest(self) -> Optional[MotionSample]:
        with self._lock:
            return self._sample

    @property
    def last_received(self) -> Optional[float]:
        with self._lock:
            return self._last_received

    def clear(self) -> None:
        with self._lock:
            self._sample = None
            self._last_received = None


def parse_motion_payload(payload: Mapping[str, object], timestamp: float) -> MotionSample:
    """Build a MotionSample from a nested or flat mapping.

    Accepts ``{"acceleration": {"x", "y", "z"}, "rotation": {"alpha", "beta", "gamma"}}``
    or the flat form ``{"ax", "ay", "az", "alpha", "beta", "gamma"}``.
    """
    acceleration = payload.get("acceleration")
    if acceleration is not None:
        if not isinstance(acceleration, Mapping):
            raise MotionSourceError("Motion acceleration must be a mapping.")
        accel = Vector3(
            x=_float_field(acceleration, "x"),
            y=_float_field(acceleration, "y"),
            z=_float_field(acceleration, "z"),
        )
    else:
        accel = Vector3(
            x=_float_field(payload, "ax"),
            y=_float_field(payload, "ay"),
            z=_float_field(payload, "az"),
        )

    rotation_raw = payload.get("rotation", payload)
    if not isinstance(rotation_raw, Mapping):
        raise MotionSourceError("Motion rotation must be a mapping.")
    rotation = Rotation(
        alpha=_float_field(rotation_raw, "alpha"),
        beta=_float_field(rotation_raw, "beta"),
        gamma=_float_field(rotation_raw, "gamma"),
    )

    raw_timestamp = payload.get("timestamp")
    if raw_timestamp is not None:
        timestamp = _float_value(raw_timestamp, "timestamp")
    return MotionSample(acceleration=accel, rotation=rotation, timestamp=timestamp)


@dataclass(frozen=True)
class SerialMotionConfig:
    port: str
    baudrate: int = 115200
    timeout_seconds: float = 0.5
    max_lines: int = 50


class SerialMotionSource:
    """Read accelerometer samples from a serial-connected IMU.

    Each ``poll`` drains up to ``max_lines`` lines and pushes every parsed
    sample into the shared store, so only the newest survives. Malformed lines
    are logged and skipped.
    """

    def __init__(
        self,
        config: SerialMotionConfig,
        store: Optional[LatestMotionSample] = None,
        stream: Optional[IO[str]] = None,
    ) -> None:
        self._config = config
        self._store = store or LatestMotionSample()
        self._stream = stream
        self._serial = None

    @property
    def store(self) -> LatestMotionSample:
        return self._store

    def latest(self) -> Optional[MotionSample]:
        return self._store.latest()

    def poll(self) -> int:
        read_time = time.time()
        samples = self._parse_lines(self._read_lines(), read_time)
        for sample in samples:
            self._store.push(sample, received_at=read_time)
        return len(samples)

    def close(self) -> None:
        if self._serial is not None:
            self._serial.close()
            self._serial = None

    def _read_lines(self) -> List[str]:
        stream = self._ensure_stream()
        lines: List[str] = []
        for _ in range(self._config.max_lines):
            line = stream.readline()
            if not line:
                break
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            lines.append(line)
        return lines

    def _ensure_stream(self) -> IO[str]:
        if self._stream is not None:
            return self._stream
        if self._serial is None:
            try:
                import serial  # type: ignore[import-not-found]
            except ImportError as exc:  # pragma: no cover - optional dependency
                raise MotionSourceError(
                    "pyserial is required to read motion samples over UART/USB."
                ) from exc
            self._serial = serial.Serial(
                self._config.port,
                baudrate=self._config.baudrate,
                timeout=self._config.timeout_seconds,
            )
            LOGGER.info("Opened motion sensor on %s", self._config.port)
        return self._serial

    def _parse_lines(self, lines: Iterable[str], read_time: float) -> List[MotionSample]:
        samples: List[MotionSample] = []
        for idx, raw_line in enumerate(lines):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                samples.append(self._parse_line(line, idx, read_time))
            except MotionSourceError as exc:
                LOGGER.warning("Skipping motion line: %s", exc)
        return samples

    def _parse_line(self, line: str, idx: int, read_time: float) -> MotionSample:
        if line.startswith("{"):
            payload = self._parse_json_line(line, idx)
        elif "=" in line:
            payload = self._parse_kv_line(line, idx)
        else:
            payload = self._parse_csv_line(line, idx)
        return parse_motion_payload(payload, read_time)

    def _parse_json_line(self, line: str, idx: int) -> Mapping[str, object]:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            raise MotionSourceError(f"Motion line #{idx} is not valid JSON: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise MotionSourceError(f"Motion line #{idx} must be a JSON object.")
        return payload

    def _parse_kv_line(self, line: str, idx: int) -> Mapping[str, object]:
        payload: dict[str, object] = {}
        for part in (segment.strip() for segment in line.split(",")):
            if not part:
                continue
            if "=" not in part:
                raise MotionSourceError(
                    f"Motion line #{idx} has invalid key-value segment: {part!r}."
                )
            key, value = part.split("=", 1)
            payload[key.strip()] = value.strip()
        return payload

    def _parse_csv_line(self, line: str, idx: int) -> Mapping[str, object]:
        parts = [part.strip() for part in line.split(",")]
        if len(parts) not in (3, 6):
            raise MotionSourceError(
                f"Motion line #{idx} must have 3 or 6 CSV fields; received {len(parts)}."
            )
        keys = ("ax", "ay", "az", "alpha", "beta", "gamma")
        return dict(zip(keys, parts))


def _float_field(payload: Mapping[str, object], key: str) -> float:
    value = payload.get(key)
    if value is None:
        return 0.0
    return _float_value(value, key)


def _float_value(value: object, label: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise MotionSourceError(f"Motion field '{label}' must be numeric; received {value!r}.") from exc
