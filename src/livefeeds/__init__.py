"""Simulated live Wi-Fi scan and presence detection feeds."""

from .alerts import (
    VIBRATION_PATTERN_MS,
    AlertDispatcher,
    AlertUnavailable,
    ToneAlert,
    VibrationAlert,
)
from .config import DetectionSettings, ScanSettings, SettingsError, SettingsHolder
from .engine import (
    DetectionEngine,
    FeedEngine,
    FeedSubscription,
    create_detection_engine,
    create_network_engine,
)
from .export import (
    csv_header,
    export_records,
    export_settings,
    load_settings,
    load_settings_document,
    reset_to_defaults,
)
from .generators import NETWORK_CATALOG, CatalogSampler
from .models import (
    HumanDetection,
    MotionSample,
    MovementType,
    NetworkTemplate,
    Rotation,
    SecurityType,
    Vector3,
    WiFiNetwork,
    band_for_frequency,
    confidence_category,
    signal_strength_category,
    validate_detection,
    validate_network,
)
from .motion import (
    LatestMotionSample,
    MotionSource,
    MotionSourceError,
    SerialMotionConfig,
    SerialMotionSource,
)
from .randomness import RandomSource, SequenceRandom, seeded
from .scheduler import SchedulerState, TickScheduler
from .working_set import (
    DetectionWorkingSet,
    NetworkWorkingSet,
    active_detections,
    summarize_detections,
    summarize_networks,
)

__all__ = [
    "ScanSettings",
    "DetectionSettings",
    "SettingsError",
    "SettingsHolder",
    "WiFiNetwork",
    "HumanDetection",
    "NetworkTemplate",
    "MotionSample",
    "Vector3",
    "Rotation",
    "SecurityType",
    "MovementType",
    "band_for_frequency",
    "confidence_category",
    "signal_strength_category",
    "validate_detection",
    "validate_network",
    "RandomSource",
    "SequenceRandom",
    "seeded",
    "NETWORK_CATALOG",
    "CatalogSampler",
    "DetectionWorkingSet",
    "NetworkWorkingSet",
    "active_detections",
    "summarize_detections",
    "summarize_networks",
    "SchedulerState",
    "TickScheduler",
    "FeedEngine",
    "DetectionEngine",
    "FeedSubscription",
    "create_detection_engine",
    "create_network_engine",
    "LatestMotionSample",
    "MotionSource",
    "MotionSourceError",
    "SerialMotionConfig",
    "SerialMotionSource",
    "AlertDispatcher",
    "AlertUnavailable",
    "ToneAlert",
    "VibrationAlert",
    "VIBRATION_PATTERN_MS",
    "csv_header",
    "export_records",
    "export_settings",
    "load_settings",
    "load_settings_document",
    "reset_to_defaults",
]
