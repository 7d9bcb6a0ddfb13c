from typing import Optional
import logging

from sqlalchemy.engine import Engine

from invoice_processor.core.config import Settings
from invoice_processor.core.processing_config import ConfigStore
from invoice_processor.core.reconciliation import (
    CycleStatsStore,
    OutcomePolicy,
    RandomOutcomePolicy,
    ReconciliationEngine,
)
from invoice_processor.core.scheduler import CycleScheduler
from invoice_processor.core.watcher import ConfigWatcher
from invoice_processor.db.gateway import InvoiceGateway, SqlAlchemyInvoiceGateway
from invoice_processor.db.session import build_engine, build_session_factory, init_schema
from invoice_processor.schemas.processing import CycleStats, ProcessingConfig

logger = logging.getLogger(__name__)


class ProcessorRuntime:
    """
    Owns every long-lived piece of the processor: config and stats stores,
    the engine, the scheduler thread, the config watcher and the database
    engine for the current connection target.
    """

    def __init__(
        self,
        settings: Settings,
        config_store: ConfigStore,
        policy: Optional[OutcomePolicy] = None,
    ):
        self.settings = settings
        self.config_store = config_store
        self.stats_store = CycleStatsStore()
        self.engine = ReconciliationEngine(
            self.stats_store,
            policy or RandomOutcomePolicy(settings.SUCCESS_PROBABILITY),
        )
        self.scheduler = CycleScheduler(config_store, self.run_cycle)
        self.watcher: Optional[ConfigWatcher] = None
        if settings.CONFIG_WATCH_ENABLED:
            self.watcher = ConfigWatcher(
                config_store.path,
                self.reload_config,
                settle_seconds=settings.CONFIG_SETTLE_SECONDS,
            )

        # A reload always re-arms the scheduler
        config_store.subscribe(self.scheduler.rearm)

        # Only touched from the scheduler thread (and from stop() after it has exited)
        self._db_engine: Optional[Engine] = None
        self._gateway: Optional[InvoiceGateway] = None
        self._gateway_target: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, policy: Optional[OutcomePolicy] = None) -> "ProcessorRuntime":
        """Build a runtime from the config file. Raises ConfigError if it is unusable."""
        return cls(settings, ConfigStore.from_file(settings.CONFIG_PATH), policy=policy)

    def gateway_for(self, config: ProcessingConfig) -> InvoiceGateway:
        if self._gateway is None or self._gateway_target != config.connection_target:
            self._dispose_db_engine()
            self._db_engine = build_engine(config.connection_target)
            if self.settings.CREATE_SCHEMA:
                init_schema(self._db_engine)
            self._gateway = SqlAlchemyInvoiceGateway(
                build_session_factory(self._db_engine),
                timeout_seconds=self.settings.TRANSACTION_TIMEOUT_SECONDS,
            )
            self._gateway_target = config.connection_target
        return self._gateway

    def run_cycle(self, config: ProcessingConfig) -> CycleStats:
        return self.engine.run_cycle(self.gateway_for(config), config)

    def reload_config(self) -> ProcessingConfig:
        return self.config_store.reload()

    def current_stats(self) -> CycleStats:
        return self.stats_store.current()

    def start(self):
        self.scheduler.start()
        if self.watcher is not None:
            self.watcher.start()

    def stop(self):
        # Waits for an in-flight cycle; it is never interrupted mid-transaction
        if self.watcher is not None:
            self.watcher.stop()
        self.scheduler.stop()
        self._dispose_db_engine()

    def _dispose_db_engine(self):
        if self._db_engine is not None:
            self._db_engine.dispose()
            self._db_engine = None
            self._gateway = None
            self._gateway_target = None
