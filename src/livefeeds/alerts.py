from __future__ import annotations

from array import array
from dataclasses import dataclass
import logging
import math
from typing import Optional, Protocol, Sequence

from .config import DetectionSettings, SettingsHolder
from .models import HumanDetection

LOGGER = logging.getLogger(__name__)

VIBRATION_PATTERN_MS: Sequence[int] = (100, 50, 100)


@dataclass(frozen=True)
class AlertUnavailable(RuntimeError):
    message: str

    def __str__(self) -> str:
        return self.message


def tone_samples(
    frequency: float = 800.0,
    duration: float = 0.2,
    sample_rate: int = 22050,
    *,
    start_gain: float = 0.1,
    end_gain: float = 0.01,
    channels: int = 1,
) -> array:
    """Signed 16-bit PCM for a sine tone whose gain decays exponentially."""
    count = max(int(round(sample_rate * duration)), 1)
    ratio = end_gain / start_gain
    samples = array("h")
    for idx in range(count):
        t = idx / sample_rate
        gain = start_gain * ratio ** (t / duration)
        value = int(32767 * gain * math.sin(2.0 * math.pi * frequency * t))
        for _ in range(channels):
            samples.append(value)
    return samples


class ToneAlert:
    """Short 800 Hz beep played through pygame's mixer."""

    def __init__(
        self,
        frequency: float = 800.0,
        duration: float = 0.2,
        sample_rate: int = 22050,
    ) -> None:
        self.frequency = frequency
        self.duration = duration
        self.sample_rate = sample_rate
        self._sound = None

    def play(self) -> None:
        sound = self._ensure_sound()
        sound.play()

    def _ensure_sound(self):
        if self._sound is not None:
            return self._sound
        try:
            import pygame
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise AlertUnavailable("pygame is required for audible alerts.") from exc
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            mixer_rate, _, mixer_channels = pygame.mixer.get_init()
            samples = tone_samples(
                self.frequency,
                self.duration,
                mixer_rate,
                channels=mixer_channels,
            )
            self._sound = pygame.mixer.Sound(buffer=samples.tobytes())
        except pygame.error as exc:
            raise AlertUnavailable(f"Audio output unavailable: {exc}") from exc
        return self._sound


class Vibrator(Protocol):
    def vibrate(self, pattern_ms: Sequence[int]) -> None: ...


class VibrationAlert:
    def __init__(self, vibrator: Optional[Vibrator] = None) -> None:
        self._vibrator = vibrator

    def play(self) -> None:
        if self._vibrator is None:
            return
        self._vibrator.vibrate(VIBRATION_PATTERN_MS)


class AlertDispatcher:
    """Fire best-effort side effects for each newly created detection.

    A side effect that fails is logged and disabled; the tick that created the
    detection always proceeds.
    """

    def __init__(
        self,
        settings: SettingsHolder[DetectionSettings],
        *,
        tone: Optional[ToneAlert] = None,
        vibration: Optional[VibrationAlert] = None,
    ) -> None:
        self._settings = settings
        self._tone = tone if tone is not None else ToneAlert()
        self._vibration = vibration if vibration is not None else VibrationAlert()
        self._tone_disabled = False
        self._vibration_disabled = False

    def __call__(self, detection: HumanDetection) -> None:
        self.notify(detection)

    def notify(self, detection: HumanDetection) -> None:
        settings = self._settings.current
        if settings.enable_sound and not self._tone_disabled:
            self._tone_disabled = not self._fire("sound", self._tone.play)
        if settings.enable_vibration and not self._vibration_disabled:
            self._vibration_disabled = not self._fire("vibration", self._vibration.play)

        LOGGER.info(
            "Human detected via %s: %.1fm, %.1f%%, %s",
            detection.source,
            detection.distance,
            detection.confidence * 100.0,
            detection.movement,
            extra={
                "detection_id": detection.id,
                "source": detection.source,
                "distance": detection.distance,
                "confidence": detection.confidence,
                "movement": detection.movement,
            },
        )

    @staticmethod
    def _fire(label: str, action) -> bool:
        try:
            action()
        except Exception as exc:
            LOGGER.debug("Disabling %s alerts: %s", label, exc)
            return False
        return True
