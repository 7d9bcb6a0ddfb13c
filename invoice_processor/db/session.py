import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from invoice_processor.db.models import Base

logger = logging.getLogger(__name__)


def build_engine(connection_target: str) -> Engine:
    """Create an engine for the configured record store."""
    url = make_url(connection_target)
    kwargs = {"pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    # Never log the password
    logger.info(f"Record store configured: {url.render_as_string(hide_password=True)}")
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)


def init_schema(engine: Engine):
    """Create the invoices table if it does not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Invoice schema verified")


def apply_transaction_timeout(session: Session, timeout_seconds: int):
    """
    Bound how long a cycle transaction may block on locks or statements.
    Only PostgreSQL supports per-transaction timeouts; other dialects are left alone.
    """
    if not timeout_seconds or session.get_bind().dialect.name != "postgresql":
        return
    ms = int(timeout_seconds * 1000)
    session.execute(text(f"SET LOCAL statement_timeout = {ms}"))
    session.execute(text(f"SET LOCAL lock_timeout = {ms}"))
