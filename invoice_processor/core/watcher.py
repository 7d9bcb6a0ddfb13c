from pathlib import Path
from typing import Callable, Optional, Union
import logging
import threading

from watchfiles import Change, watch

logger = logging.getLogger(__name__)


class ConfigWatcher:
    """
    Watches the config file and calls `reload_callback` once per burst of
    changes, after `settle_seconds` without further events.

    The parent directory is watched rather than the file so editors that
    save by rename are still picked up.
    """

    def __init__(
        self,
        path: Union[str, Path],
        reload_callback: Callable[[], object],
        settle_seconds: float = 0.1,
    ):
        self.path = Path(path).resolve()
        self.reload_callback = reload_callback
        self.settle_seconds = settle_seconds
        self._stop_event = threading.Event()
        self._timer_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self._watch_loop, name="config-watcher", daemon=True)
        self._thread.start()
        logger.info(f"Watching {self.path.name} for changes")

    def stop(self):
        self._stop_event.set()
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)

    def _is_config_file(self, change: Change, path: str) -> bool:
        return change != Change.deleted and Path(path).name == self.path.name

    def _watch_loop(self):
        try:
            for _changes in watch(
                self.path.parent,
                watch_filter=self._is_config_file,
                stop_event=self._stop_event,
                recursive=False,
            ):
                self.notify()
        except Exception as e:
            logger.error(f"Config watcher stopped unexpectedly: {e}")

    def notify(self):
        """Record a change; (re)starts the settle timer."""
        if self._stop_event.is_set():
            return
        logger.info(f"{self.path.name} changed, reloading settings...")
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.settle_seconds, self._settled, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _settled(self, generation: int):
        with self._timer_lock:
            if generation != self._generation:
                # superseded
                return
            self._timer = None
        if self._stop_event.is_set():
            return
        try:
            self.reload_callback()
        except Exception as e:
            # Previous config stays active
            logger.error(f"Reload after config change failed: {e}")
