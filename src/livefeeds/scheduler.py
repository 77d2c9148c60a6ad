from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 0.01
MAX_INTERVAL_SECONDS = threading.TIMEOUT_MAX
# Long intervals are waited out in slices no longer than this.
WAIT_SLICE_SECONDS = 3600.0

ResultT = TypeVar("ResultT")


class SchedulerState:
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class TickScheduler(Generic[ResultT]):
    """Run ``tick`` once immediately and then every ``interval_seconds()``.

    The interval is re-read before every wait, so a changed interval applies
    from the next tick on. A tick that raises is logged and skipped; the
    schedule keeps running. Deliveries happen strictly in tick order.
    """

    tick: Callable[[], ResultT]
    interval_seconds: Callable[[], float]
    name: str = "livefeeds-tick"
    tick_count: int = field(default=0, init=False)
    failed_ticks: int = field(default=0, init=False)
    _state: str = field(default=SchedulerState.IDLE, init=False, repr=False)
    _callback: Optional[Callable[[ResultT], None]] = field(default=None, init=False, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _lifecycle_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _tick_lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    @property
    def state(self) -> str:
        return self._state

    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    def start(self, callback: Callable[[ResultT], None]) -> None:
        with self._lifecycle_lock:
            if self._state == SchedulerState.RUNNING:
                return
            self._state = SchedulerState.RUNNING
            self._callback = callback
            stop_event = threading.Event()
            self._stop_event = stop_event

        self._run_tick(callback, stop_event)

        with self._lifecycle_lock:
            if stop_event.is_set():
                return
            thread = threading.Thread(
                target=self._run,
                args=(callback, stop_event),
                name=self.name,
                daemon=True,
            )
            self._thread = thread
            thread.start()

    def stop(self, timeout_seconds: float = 1.0) -> None:
        with self._lifecycle_lock:
            if self._state == SchedulerState.IDLE:
                return
            self._state = SchedulerState.IDLE
            self._stop_event.set()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout_seconds)

    def refresh(self, delay_seconds: float = 0.1) -> None:
        callback = self._callback
        if callback is None:
            return
        self.stop()
        if delay_seconds > 0:
            time.sleep(delay_seconds)
        self.start(callback)

    def _run(self, callback: Callable[[ResultT], None], stop_event: threading.Event) -> None:
        while not self._wait(stop_event, self._next_interval()):
            self._run_tick(callback, stop_event)

    @staticmethod
    def _wait(stop_event: threading.Event, interval: float) -> bool:
        """Wait out ``interval``; return True if stopped meanwhile."""
        deadline = time.monotonic() + interval
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return stop_event.is_set()
            if stop_event.wait(min(remaining, WAIT_SLICE_SECONDS)):
                return True

    def _next_interval(self) -> float:
        try:
            interval = float(self.interval_seconds())
        except Exception:
            LOGGER.exception("Scheduler %s could not read its interval", self.name)
            interval = 1.0
        if math.isnan(interval):
            LOGGER.warning("Scheduler %s got a NaN interval; using 1s", self.name)
            interval = 1.0
        return min(max(interval, MIN_INTERVAL_SECONDS), MAX_INTERVAL_SECONDS)

    def _run_tick(self, callback: Callable[[ResultT], None], stop_event: threading.Event) -> None:
        with self._tick_lock:
            if stop_event.is_set():
                return
            try:
                result = self.tick()
            except Exception:
                self.failed_ticks += 1
                LOGGER.exception("Tick %d of %s failed; skipping", self.tick_count + 1, self.name)
                return
            self.tick_count += 1
            try:
                callback(result)
            except Exception:
                LOGGER.exception("Subscriber callback for %s raised", self.name)
