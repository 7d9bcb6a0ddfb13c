import json

import pytest

from invoice_processor.db.gateway import SqlAlchemyInvoiceGateway
from invoice_processor.db.models import InvoiceRecord
from invoice_processor.db.session import build_engine, build_session_factory, init_schema

@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"

@pytest.fixture
def write_config(config_path):
    def _write(**fields):
        config_path.write_text(json.dumps(fields), encoding="utf-8")
        return config_path
    return _write

@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)

@pytest.fixture
def gateway(session_factory):
    return SqlAlchemyInvoiceGateway(session_factory)

@pytest.fixture
def seed_invoices(session_factory):
    """Insert (id, status, retry_count) rows."""
    def _seed(*rows):
        with session_factory.begin() as session:
            for invoice_id, status, retry_count in rows:
                session.add(InvoiceRecord(id=invoice_id, status=status, retry_count=retry_count))
    return _seed

@pytest.fixture
def store_snapshot(session_factory):
    """{id: (status, retry_count)} straight from the table."""
    def _snapshot():
        with session_factory() as session:
            rows = session.query(InvoiceRecord).order_by(InvoiceRecord.id).all()
            return {r.id: (r.status, r.retry_count) for r in rows}
    return _snapshot
