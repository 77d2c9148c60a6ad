from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Generic, Iterator, List, Mapping, Optional, Sequence, TypeVar

from .alerts import AlertDispatcher, ToneAlert, VibrationAlert
from .config import DetectionSettings, ScanSettings, SettingsHolder
from .generators import NETWORK_CATALOG, CatalogSampler, default_detection_generators
from .models import HumanDetection, NetworkTemplate, WiFiNetwork
from .motion import MotionSource
from .randomness import RandomSource, seeded
from .scheduler import TickScheduler
from .working_set import (
    DetectionWorkingSet,
    NetworkWorkingSet,
    WorkingSetStrategy,
    active_detections,
)

LOGGER = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")
SettingsT = TypeVar("SettingsT", ScanSettings, DetectionSettings)

UpdateCallback = Callable[[List[RecordT]], None]


class FeedSubscription(Iterator[List[RecordT]]):
    """Iterate over the record lists an engine delivers, one per tick.

    Updates arrive in tick order. With a bounded ``maxsize`` the oldest
    pending update is dropped to make room for the newest.
    """

    _CLOSED = object()

    def __init__(
        self,
        detach: Callable[["FeedSubscription[RecordT]"], None],
        maxsize: int = 0,
    ) -> None:
        self._detach = detach
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, records: List[RecordT]) -> None:
        if self._closed:
            return
        while True:
            try:
                self._queue.put_nowait(records)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[List[RecordT]]:
        """Return the next update, or None on timeout or once closed."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is self._CLOSED:
            self._queue.put_nowait(self._CLOSED)
            return None
        return item  # type: ignore[return-value]

    def __next__(self) -> List[RecordT]:
        item = self._queue.get()
        if item is self._CLOSED:
            self._queue.put_nowait(self._CLOSED)
            raise StopIteration
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._detach(self)
        try:
            self._queue.put_nowait(self._CLOSED)
        except queue.Full:
            self._queue.get_nowait()
            self._queue.put_nowait(self._CLOSED)

    def __enter__(self) -> "FeedSubscription[RecordT]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FeedEngine(Generic[SettingsT, RecordT]):
    """One live feed: settings, working set, scheduler and subscribers."""

    def __init__(
        self,
        name: str,
        settings: SettingsHolder[SettingsT],
        strategy: WorkingSetStrategy[SettingsT, RecordT],
        *,
        clock: Callable[[], float] = time.time,
        refresh_delay_seconds: float = 0.1,
    ) -> None:
        self.name = name
        self._settings = settings
        self._strategy = strategy
        self._clock = clock
        self._refresh_delay_seconds = refresh_delay_seconds
        self._lock = threading.Lock()
        self._subscriptions: List[FeedSubscription[RecordT]] = []
        self._scheduler: TickScheduler[List[RecordT]] = TickScheduler(
            tick=self.tick_once,
            interval_seconds=lambda: self._settings.current.interval_seconds,
            name=f"livefeeds-{name}",
        )

    @property
    def settings(self) -> SettingsT:
        return self._settings.current

    @property
    def scheduler(self) -> TickScheduler[List[RecordT]]:
        return self._scheduler

    @property
    def strategy(self) -> WorkingSetStrategy[SettingsT, RecordT]:
        return self._strategy

    def start(self, on_update: Optional[UpdateCallback] = None) -> None:
        if self._scheduler.is_running():
            return
        LOGGER.debug("Starting %s feed", self.name)
        # Starting a running scheduler is a no-op and keeps its callback.
        self._scheduler.start(lambda records: self._deliver(records, on_update))

    def stop(self) -> None:
        if not self._scheduler.is_running():
            return
        LOGGER.debug("Stopping %s feed", self.name)
        self._scheduler.stop()

    def refresh(self) -> None:
        self._scheduler.refresh(self._refresh_delay_seconds)

    def close(self) -> None:
        self.stop()
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.close()

    def update_settings(self, partial: Mapping[str, object]) -> SettingsT:
        updated = self._settings.update(partial)
        LOGGER.info("Updated %s settings: %s", self.name, updated.to_dict())
        return updated

    def get_current_set(self) -> List[RecordT]:
        with self._lock:
            return self._strategy.snapshot()

    def staleness_seconds(self) -> float:
        """Oldest age, in seconds, a delivered record may have under current settings."""
        return self._strategy.staleness_seconds(self._settings.current)

    def is_active(self) -> bool:
        return self._scheduler.is_running()

    def subscribe(self, maxsize: int = 0) -> FeedSubscription[RecordT]:
        subscription: FeedSubscription[RecordT] = FeedSubscription(self._detach, maxsize=maxsize)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def tick_once(self) -> List[RecordT]:
        """Run one generate/age/prune/filter pass and return the delivered set."""
        settings = self._settings.current
        now = self._clock()
        with self._lock:
            return self._strategy.tick(settings, now)

    def _deliver(
        self, records: List[RecordT], on_update: Optional[UpdateCallback] = None
    ) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.push(records)
        if on_update is not None:
            on_update(records)

    def _detach(self, subscription: FeedSubscription[RecordT]) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)


NetworkEngine = FeedEngine[ScanSettings, WiFiNetwork]


class DetectionEngine(FeedEngine[DetectionSettings, HumanDetection]):
    def active_detections(self, now: Optional[float] = None) -> List[HumanDetection]:
        if now is None:
            now = self._clock()
        return active_detections(self.get_current_set(), now)

    def inject(self, record: HumanDetection) -> None:
        with self._lock:
            self._strategy.inject(record)  # type: ignore[attr-defined]


def create_network_engine(
    settings: Optional[ScanSettings] = None,
    *,
    rng: Optional[RandomSource] = None,
    clock: Callable[[], float] = time.time,
    catalog: Sequence[NetworkTemplate] = NETWORK_CATALOG,
) -> FeedEngine[ScanSettings, WiFiNetwork]:
    holder = SettingsHolder(settings if settings is not None else ScanSettings())
    strategy = NetworkWorkingSet(CatalogSampler(catalog=tuple(catalog)), rng or seeded())
    return FeedEngine("wifi", holder, strategy, clock=clock)


def create_detection_engine(
    settings: Optional[DetectionSettings] = None,
    *,
    motion_source: Optional[MotionSource] = None,
    alerts: Optional[Callable[[HumanDetection], None]] = None,
    tone: Optional[ToneAlert] = None,
    vibration: Optional[VibrationAlert] = None,
    rng: Optional[RandomSource] = None,
    clock: Callable[[], float] = time.time,
) -> DetectionEngine:
    """Build the detection feed.

    Without ``alerts`` the engine gets an ``AlertDispatcher`` bound to its own
    settings, so ``enableSound``/``enableVibration`` updates gate ``tone`` and
    ``vibration`` from the next detection on.
    """
    holder = SettingsHolder(settings if settings is not None else DetectionSettings())
    if alerts is not None:
        on_created = alerts
    else:
        on_created = AlertDispatcher(holder, tone=tone, vibration=vibration)
    strategy = DetectionWorkingSet(
        default_detection_generators(motion_source),
        rng or seeded(),
        on_created=on_created,
    )
    return DetectionEngine("detection", holder, strategy, clock=clock)
