from typing import Callable, Optional, Tuple
import logging
import random
import threading

from invoice_processor.db.gateway import InvoiceGateway
from invoice_processor.schemas.invoice import Invoice, InvoiceStatus
from invoice_processor.schemas.processing import CycleStats, ProcessingConfig

logger = logging.getLogger(__name__)

# Decides whether processing an invoice succeeded. Called once per invoice per cycle.
OutcomePolicy = Callable[[Invoice], bool]


class CycleError(Exception):
    """A cycle was rolled back. Nothing it did was persisted."""


class RandomOutcomePolicy:
    """Placeholder policy: succeed with a fixed probability."""

    def __init__(self, success_probability: float = 0.3, rng: Optional[random.Random] = None):
        if not 0.0 <= success_probability <= 1.0:
            raise ValueError("success_probability must be between 0 and 1")
        self.success_probability = success_probability
        self._rng = rng or random.Random()

    def __call__(self, invoice: Invoice) -> bool:
        return self._rng.random() < self.success_probability


def next_state(invoice: Invoice, succeeded: bool) -> Tuple[InvoiceStatus, int]:
    """
    Transition for one processed invoice.
    Success is terminal and keeps the retry count; failure moves to error
    and counts the attempt.
    """
    if succeeded:
        return InvoiceStatus.SUCCESS, invoice.retry_count
    return InvoiceStatus.ERROR, invoice.retry_count + 1


class CycleStatsStore:
    """Latest completed cycle counters, swapped as a whole."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats = CycleStats()

    def current(self) -> CycleStats:
        with self._lock:
            return self._stats

    def publish(self, stats: CycleStats):
        with self._lock:
            self._stats = stats


class ReconciliationEngine:
    def __init__(self, stats_store: CycleStatsStore, policy: Optional[OutcomePolicy] = None):
        self.stats_store = stats_store
        self.policy = policy or RandomOutcomePolicy()

    def run_cycle(self, gateway: InvoiceGateway, config: ProcessingConfig) -> CycleStats:
        """
        Claim every eligible invoice and move each one to its next status.

        Claim and updates share a single transaction. If anything fails the
        whole cycle is rolled back, no stats are published and CycleError is
        raised. `config` is the snapshot taken when the cycle started.
        """
        logger.info("Starting invoice processing cycle", extra={"max_retries": config.max_retries})

        success_count = 0
        error_count = 0

        try:
            with gateway.transaction() as tx:
                invoices = tx.claim_eligible(config.max_retries)

                for invoice in invoices:
                    succeeded = bool(self.policy(invoice))
                    new_status, new_retry_count = next_state(invoice, succeeded)
                    tx.apply_update(invoice.id, new_status, new_retry_count)

                    logger.info(
                        f"Invoice {invoice.id}: {invoice.status.value} "
                        f"(attempt {invoice.retry_count}) -> {new_status.value}",
                        extra={
                            "invoice_id": invoice.id,
                            "from_status": invoice.status.value,
                            "to_status": new_status.value,
                            "retry_count": new_retry_count,
                        },
                    )
                    if succeeded:
                        success_count += 1
                    else:
                        error_count += 1
        except Exception as e:
            logger.error(f"Processing cycle rolled back: {e}", exc_info=True)
            raise CycleError(str(e)) from e

        stats = CycleStats(
            last_claimed_count=len(invoices),
            last_success_count=success_count,
            last_error_count=error_count,
        )
        self.stats_store.publish(stats)

        logger.info(
            f"Cycle complete: processed {stats.last_claimed_count}, "
            f"success: {stats.last_success_count}, error: {stats.last_error_count}",
            extra=stats.model_dump(),
        )
        return stats
