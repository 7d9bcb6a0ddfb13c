import threading
import time

from invoice_processor.core.watcher import ConfigWatcher


class ReloadCounter:
    def __init__(self, error=None):
        self.count = 0
        self.error = error
        self.called = threading.Event()

    def __call__(self):
        self.count += 1
        self.called.set()
        if self.error:
            raise self.error


def test_burst_of_changes_reloads_once(config_path):
    reload = ReloadCounter()
    watcher = ConfigWatcher(config_path, reload, settle_seconds=0.1)

    for _ in range(5):
        watcher.notify()
        time.sleep(0.01)

    assert reload.called.wait(2)
    time.sleep(0.3)
    assert reload.count == 1


def test_separate_bursts_reload_separately(config_path):
    reload = ReloadCounter()
    watcher = ConfigWatcher(config_path, reload, settle_seconds=0.05)

    watcher.notify()
    assert reload.called.wait(2)
    reload.called.clear()
    watcher.notify()
    assert reload.called.wait(2)

    assert reload.count == 2


def test_failed_reload_is_contained(config_path):
    reload = ReloadCounter(error=ValueError("bad json"))
    watcher = ConfigWatcher(config_path, reload, settle_seconds=0.05)

    watcher.notify()
    assert reload.called.wait(2)
    reload.called.clear()

    # Watcher still works after the failure
    watcher.notify()
    assert reload.called.wait(2)
    assert reload.count == 2


def test_stop_cancels_pending_reload(config_path):
    reload = ReloadCounter()
    watcher = ConfigWatcher(config_path, reload, settle_seconds=0.2)

    watcher.notify()
    watcher.stop()
    time.sleep(0.4)

    assert reload.count == 0
    watcher.notify()
    time.sleep(0.4)
    assert reload.count == 0


def test_file_modification_triggers_reload(write_config):
    path = write_config(connection_target="sqlite://", interval_seconds=60)
    reload = ReloadCounter()
    watcher = ConfigWatcher(path, reload, settle_seconds=0.05)
    watcher.start()
    try:
        deadline = time.monotonic() + 10
        attempt = 0
        while not reload.called.is_set() and time.monotonic() < deadline:
            attempt += 1
            write_config(connection_target="sqlite://", interval_seconds=60 + attempt)
            reload.called.wait(1)
        assert reload.called.is_set()
    finally:
        watcher.stop()
