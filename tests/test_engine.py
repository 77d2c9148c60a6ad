import random
import threading
import time
from typing import List

import pytest

from livefeeds.alerts import VibrationAlert
from livefeeds.config import DetectionSettings, ScanSettings, SettingsError, SettingsHolder
from livefeeds.engine import FeedEngine, create_detection_engine, create_network_engine
from livefeeds.models import HumanDetection, MotionSample, MovementType, Vector3, WiFiNetwork
from livefeeds.motion import LatestMotionSample


class _FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _BrokenStrategy:
    def tick(self, settings, now):
        raise RuntimeError("working set corrupted")

    def snapshot(self):
        return []

    def staleness_seconds(self, settings):
        return 1.0


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_cold_start_delivers_immediately() -> None:
    settings = ScanSettings.from_mapping(
        {"interval": 3000, "maxResults": 50, "showHidden": False, "minSignalStrength": -90}
    )
    engine = create_network_engine(settings, rng=random.Random(1))
    delivered: List[List[WiFiNetwork]] = []

    engine.start(delivered.append)
    try:
        assert len(delivered) == 1
        assert len(delivered[0]) <= 50
        assert all(network.rssi >= -90 for network in delivered[0])
        assert engine.is_active()
    finally:
        engine.stop()

    assert not engine.is_active()


def test_threshold_update_applies_on_next_tick() -> None:
    engine = create_network_engine(rng=random.Random(2))

    engine.update_settings({"minSignalStrength": -40})
    results = [engine.tick_once() for _ in range(10)]

    for records in results:
        assert isinstance(records, list)
        assert all(network.rssi >= -40 for network in records)


def test_invalid_update_is_rejected_and_settings_kept() -> None:
    engine = create_network_engine(rng=random.Random(2))

    with pytest.raises(SettingsError):
        engine.update_settings({"maxResults": -1})

    assert engine.settings == ScanSettings()


def test_max_results_and_sort_order_hold_for_delivered_sets() -> None:
    engine = create_network_engine(ScanSettings(max_results=2), rng=random.Random(9))

    for _ in range(50):
        records = engine.tick_once()
        assert len(records) <= 2
        assert [r.rssi for r in records] == sorted((r.rssi for r in records), reverse=True)


def test_get_current_set_has_no_side_effects() -> None:
    engine = create_network_engine(rng=random.Random(4))
    engine.tick_once()

    first = engine.get_current_set()
    second = engine.get_current_set()

    assert first == second
    assert engine.scheduler.tick_count == 0


def test_detection_expiry_through_engine() -> None:
    clock = _FakeClock()
    engine = create_detection_engine(
        DetectionSettings(sensitivity=0.0), rng=random.Random(3), clock=clock
    )
    engine.inject(
        HumanDetection(
            id="radar_stale",
            x=0.5,
            y=0.5,
            distance=4.0,
            confidence=0.9,
            movement=MovementType.MOVING,
            last_seen=clock.now - 11.0,
            signal_strength=-50.0,
        )
    )

    delivered = engine.tick_once()

    assert all(record.id != "radar_stale" for record in delivered)
    assert engine.get_current_set() == []


def test_motion_generator_stays_dormant_without_samples() -> None:
    clock = _FakeClock()
    store = LatestMotionSample()
    engine = create_detection_engine(
        DetectionSettings(sensitivity=0.0, motion_threshold=0.0),
        motion_source=store,
        rng=random.Random(5),
        clock=clock,
    )

    for _ in range(50):
        clock.advance(1.0)
        assert engine.tick_once() == []

    store.push(MotionSample(acceleration=Vector3(x=3.0), timestamp=clock.now))
    records = engine.tick_once()

    assert len(records) == 1
    assert records[0].source == "motion"
    assert records[0].movement == MovementType.MOVING


def test_alert_hook_receives_new_detections() -> None:
    created: List[HumanDetection] = []
    engine = create_detection_engine(
        DetectionSettings(sensitivity=1.0),
        alerts=created.append,
        rng=random.Random(6),
        clock=_FakeClock(),
    )

    for _ in range(20):
        engine.tick_once()

    assert created
    assert {record.id for record in created} >= {record.id for record in engine.get_current_set()}


def test_active_detections_view() -> None:
    clock = _FakeClock()
    engine = create_detection_engine(
        DetectionSettings(sensitivity=1.0),
        alerts=lambda record: None,
        rng=random.Random(8),
        clock=clock,
    )
    for _ in range(8):
        clock.advance(1.0)
        engine.tick_once()

    active = engine.active_detections()

    assert all(record.confidence > 0.5 for record in active)
    assert all(clock.now - record.last_seen < 5.0 for record in active)


def test_subscription_streams_ticks_in_order() -> None:
    engine = create_network_engine(ScanSettings(interval=10), rng=random.Random(7))
    subscription = engine.subscribe()
    stamps: List[float] = []

    engine.start()
    try:
        for _ in range(3):
            records = subscription.get(timeout=2.0)
            assert records is not None
            stamps.extend({record.last_seen for record in records})
    finally:
        engine.close()

    assert stamps == sorted(stamps)
    assert subscription.closed
    list(subscription)
    assert list(subscription) == []


def test_closed_subscription_ends_iteration() -> None:
    engine = create_network_engine(rng=random.Random(7))
    subscription = engine.subscribe()

    engine.start()
    engine.close()
    remaining = list(subscription)

    assert len(remaining) == 1
    assert subscription.get(timeout=0.01) is None


def test_bounded_subscription_drops_oldest_update() -> None:
    engine = create_network_engine(rng=random.Random(7))
    subscription = engine.subscribe(maxsize=1)

    first = engine.tick_once()
    engine._deliver(first)
    second = engine.tick_once()
    engine._deliver(second)

    assert subscription.get(timeout=0.01) is second
    assert subscription.dropped == 1


def test_idempotent_stop_silences_callbacks() -> None:
    engine = create_network_engine(ScanSettings(interval=10), rng=random.Random(10))
    delivered: List[List[WiFiNetwork]] = []

    engine.start(delivered.append)
    assert _wait_for(lambda: len(delivered) >= 2)
    engine.stop()
    engine.stop()
    count_after_stop = len(delivered)
    time.sleep(0.05)

    assert not engine.is_active()
    assert len(delivered) == count_after_stop


def test_refresh_restarts_schedule_without_clearing_set() -> None:
    engine = create_network_engine(rng=random.Random(12))
    delivered: List[List[WiFiNetwork]] = []

    engine.start(delivered.append)
    engine.refresh()
    try:
        assert len(delivered) == 2
        assert engine.is_active()
    finally:
        engine.stop()


def test_failing_working_set_fails_closed() -> None:
    engine = FeedEngine("broken", SettingsHolder(ScanSettings(interval=10)), _BrokenStrategy())
    delivered: List[list] = []

    engine.start(delivered.append)
    try:
        assert _wait_for(lambda: engine.scheduler.failed_ticks >= 3)
        assert engine.is_active()
    finally:
        engine.stop()

    assert delivered == []


def test_engines_are_isolated() -> None:
    broken = FeedEngine("broken", SettingsHolder(ScanSettings(interval=10)), _BrokenStrategy())
    healthy = create_network_engine(ScanSettings(interval=10), rng=random.Random(13))
    delivered: List[List[WiFiNetwork]] = []

    broken.start()
    healthy.start(delivered.append)
    try:
        assert _wait_for(lambda: len(delivered) >= 3)
    finally:
        broken.stop()
        healthy.stop()

    assert healthy.scheduler.failed_ticks == 0


class _RecordingVibrator:
    def __init__(self) -> None:
        self.calls = 0

    def vibrate(self, pattern_ms) -> None:
        self.calls += 1


def test_vibration_follows_engine_settings() -> None:
    vibrator = _RecordingVibrator()
    engine = create_detection_engine(
        DetectionSettings(sensitivity=1.0),
        vibration=VibrationAlert(vibrator),
        rng=random.Random(6),
        clock=_FakeClock(),
    )

    for _ in range(20):
        engine.tick_once()
    assert vibrator.calls == 0

    engine.update_settings({"enableVibration": True})
    for _ in range(20):
        engine.tick_once()

    assert vibrator.calls > 0


def test_oversized_interval_update_is_rejected_while_running() -> None:
    engine = create_network_engine(ScanSettings(interval=10), rng=random.Random(14))
    delivered: List[List[WiFiNetwork]] = []

    engine.start(delivered.append)
    try:
        with pytest.raises(SettingsError):
            engine.update_settings({"interval": 1e13})
        count = len(delivered)
        assert _wait_for(lambda: len(delivered) >= count + 2)
    finally:
        engine.stop()

    assert engine.settings.interval == 10


def test_delivered_records_respect_staleness_window() -> None:
    clock = _FakeClock()
    detection = create_detection_engine(
        DetectionSettings(sensitivity=1.0),
        alerts=lambda record: None,
        rng=random.Random(15),
        clock=clock,
    )
    network = create_network_engine(rng=random.Random(15), clock=clock)

    assert detection.staleness_seconds() == 10.0
    assert network.staleness_seconds() == 3.0
    for _ in range(40):
        clock.advance(1.0)
        for engine in (detection, network):
            window = engine.staleness_seconds()
            for record in engine.tick_once():
                assert 0.0 <= clock.now - record.last_seen <= window


def test_racing_start_keeps_first_callback() -> None:
    engine = create_network_engine(rng=random.Random(16))
    first: List[List[WiFiNetwork]] = []
    second: List[List[WiFiNetwork]] = []
    barrier = threading.Barrier(2)

    def _start(target: List[List[WiFiNetwork]]) -> None:
        barrier.wait()
        engine.start(target.append)

    workers = [threading.Thread(target=_start, args=(target,)) for target in (first, second)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=2.0)
    try:
        winner, loser = (first, second) if first else (second, first)
        assert len(winner) == 1
        assert loser == []
        engine.refresh()
        assert len(winner) == 2
        assert loser == []
    finally:
        engine.stop()
