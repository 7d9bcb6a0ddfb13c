"""
Cycle scheduler.

A single thread owns the decision of when the next cycle fires. Reloads and
stop requests reach it as events on a queue, so fire timing is never mutated
from other threads and two cycles can never overlap.
"""

from enum import Enum
from typing import Any, Callable, Optional
import logging
import queue
import threading
import time

from invoice_processor.core.processing_config import ConfigStore
from invoice_processor.schemas.processing import ProcessingConfig

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    STOPPED = "Stopped"


class _Event(Enum):
    REARM = "rearm"
    STOP = "stop"


class CycleScheduler:
    def __init__(
        self,
        config_store: ConfigStore,
        cycle_runner: Callable[[ProcessingConfig], Any],
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config_store: Source of the config snapshot handed to each cycle
            cycle_runner: Runs one cycle for the given snapshot; exceptions are
                logged and the schedule continues
            clock: Monotonic time source
        """
        self.config_store = config_store
        self.cycle_runner = cycle_runner
        self._clock = clock
        self._events: "queue.Queue[_Event]" = queue.Queue()
        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.cycles_started = 0

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: SchedulerState):
        with self._state_lock:
            self._state = state

    def start(self):
        if self._thread is not None:
            raise RuntimeError("Scheduler already started")
        self._thread = threading.Thread(target=self._loop, name="cycle-scheduler", daemon=True)
        self._thread.start()
        logger.info("Cycle scheduler started")

    def rearm(self, config: Optional[ProcessingConfig] = None):
        """Fire the next cycle now and continue at the current interval."""
        self._events.put(_Event.REARM)

    def stop(self, timeout: Optional[float] = None):
        """
        Prevent further cycles. A cycle that is already running finishes;
        `timeout` bounds how long to wait for it.
        """
        self._stopping.set()
        self._events.put(_Event.STOP)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._set_state(SchedulerState.STOPPED)
        logger.info("Cycle scheduler stopped")

    def _loop(self):
        next_fire = self._clock()

        while not self._stopping.is_set():
            wait = max(0.0, next_fire - self._clock())
            try:
                event = self._events.get(timeout=wait)
            except queue.Empty:
                event = None

            if event is _Event.STOP or self._stopping.is_set():
                break
            if event is _Event.REARM:
                logger.info("Config changed, rescheduling next cycle immediately")
                next_fire = self._clock()
                continue
            if self._clock() < next_fire:
                continue

            config = self.config_store.current()
            started = self._clock()
            self._set_state(SchedulerState.RUNNING)
            self.cycles_started += 1
            try:
                self.cycle_runner(config)
            except Exception as e:
                logger.error(f"Cycle failed, retrying at next interval: {e}")
            finally:
                self._set_state(SchedulerState.IDLE)

            next_fire = started + config.interval_seconds

        self._set_state(SchedulerState.STOPPED)
