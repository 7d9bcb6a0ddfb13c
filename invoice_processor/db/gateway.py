from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import ContextManager, Iterator, List
import logging

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from invoice_processor.db.models import InvoiceRecord, utc_now
from invoice_processor.db.session import apply_transaction_timeout
from invoice_processor.schemas.invoice import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """The record store rejected a claim, update or commit."""


class InvoiceTransaction(ABC):
    """Operations available inside one gateway transaction."""

    @abstractmethod
    def claim_eligible(self, max_retries: int) -> List[Invoice]:
        """
        Select and lock every eligible invoice, ordered by id.
        Locked rows must stay invisible to concurrent claimers until the
        transaction ends.
        """

    @abstractmethod
    def apply_update(self, invoice_id: int, new_status: InvoiceStatus, new_retry_count: int):
        pass


class InvoiceGateway(ABC):
    @abstractmethod
    def transaction(self) -> ContextManager[InvoiceTransaction]:
        """
        Open a transaction scope. Commits when the block exits normally,
        rolls back when it raises.
        """


class SqlAlchemyInvoiceTransaction(InvoiceTransaction):
    def __init__(self, session: Session):
        self._session = session

    def claim_eligible(self, max_retries: int) -> List[Invoice]:
        stmt = (
            select(InvoiceRecord)
            .where(
                or_(
                    InvoiceRecord.status == InvoiceStatus.PENDING.value,
                    and_(
                        InvoiceRecord.status == InvoiceStatus.ERROR.value,
                        InvoiceRecord.retry_count < max_retries,
                    ),
                )
            )
            .order_by(InvoiceRecord.id)
            .with_for_update(skip_locked=True)
        )
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise GatewayError(f"Claim failed: {e.__class__.__name__}") from e
        return [Invoice.model_validate(row, from_attributes=True) for row in rows]

    def apply_update(self, invoice_id: int, new_status: InvoiceStatus, new_retry_count: int):
        now = utc_now()
        stmt = (
            update(InvoiceRecord)
            .where(InvoiceRecord.id == invoice_id)
            .values(
                status=new_status.value,
                retry_count=new_retry_count,
                updated_at=now,
                last_attempt_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise GatewayError(f"Update of invoice {invoice_id} failed: {e.__class__.__name__}") from e
        if result.rowcount == 0:
            raise GatewayError(f"Invoice {invoice_id} not found")


class SqlAlchemyInvoiceGateway(InvoiceGateway):
    def __init__(self, session_factory: sessionmaker, timeout_seconds: int = 0):
        self._session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    @contextmanager
    def transaction(self) -> Iterator[InvoiceTransaction]:
        session = self._session_factory()
        try:
            with session.begin():
                apply_transaction_timeout(session, self.timeout_seconds)
                yield SqlAlchemyInvoiceTransaction(session)
        except SQLAlchemyError as e:
            # Commit or timeout setup failed; the transaction is already rolled back
            raise GatewayError(f"Transaction failed: {e.__class__.__name__}") from e
        finally:
            session.close()
