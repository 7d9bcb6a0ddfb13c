from pathlib import Path
from typing import Callable, List, Union
import json
import logging
import threading

from pydantic import ValidationError

from invoice_processor.schemas.processing import ProcessingConfig

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration source is missing, unreadable or invalid."""


def _describe_validation_error(exc: ValidationError) -> str:
    # Input values are left out on purpose, they may hold credentials
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def load_processing_config(path: Union[str, Path]) -> ProcessingConfig:
    """
    Read and validate the processing config file.
    Missing optional fields fall back to the model defaults.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path.name}: {e.strerror or e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path.name} is not valid JSON (line {e.lineno}, column {e.colno})") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a JSON object")

    try:
        config = ProcessingConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{path.name}: {_describe_validation_error(e)}") from e

    logger.info(
        f"Config loaded: interval = {config.interval_seconds}s, max retries = {config.max_retries}"
    )
    return config


class ConfigStore:
    """
    Holds the active ProcessingConfig.

    Readers always get a complete snapshot; `replace` swaps the reference
    under a lock and then notifies subscribers (the scheduler re-arm).
    """

    def __init__(self, path: Union[str, Path], initial: ProcessingConfig):
        self.path = Path(path)
        self._lock = threading.Lock()
        # Serializes read-then-swap so an older file read is never applied last
        self._reload_lock = threading.Lock()
        self._current = initial
        self._subscribers: List[Callable[[ProcessingConfig], None]] = []

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ConfigStore":
        return cls(path, load_processing_config(path))

    def current(self) -> ProcessingConfig:
        with self._lock:
            return self._current

    def subscribe(self, callback: Callable[[ProcessingConfig], None]):
        with self._lock:
            self._subscribers.append(callback)

    def replace(self, new_config: ProcessingConfig):
        with self._lock:
            self._current = new_config
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(new_config)

    def reload(self) -> ProcessingConfig:
        """
        Re-read the source and swap it in.
        On ConfigError the previous config stays active.
        """
        with self._reload_lock:
            try:
                new_config = load_processing_config(self.path)
            except ConfigError as e:
                logger.error(f"Config reload failed, keeping previous config: {e}")
                raise
            self.replace(new_config)
        logger.info("Config reloaded")
        return new_config
