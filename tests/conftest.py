"""Pytest configuration and fixtures."""

from datetime import date

import pytest
import pytest_asyncio

from clinic_ledger.core.database import build_engine, build_session_factory, init_db
from clinic_ledger.core.schemas import PatientDraft, SessionDraft, SessionItemDraft
from clinic_ledger.ledger.coordinator import SessionPersistenceCoordinator


# ---------------------------------------------------------------------------
# Database: single-connection async SQLite on a temporary file
# ---------------------------------------------------------------------------

@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    eng = build_engine(database_url, pool_timeout=0.5)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def coordinator(factory):
    return SessionPersistenceCoordinator(factory)


# ---------------------------------------------------------------------------
# Draft builders
# ---------------------------------------------------------------------------

def item(subtotal: float, quantity: int = 1, name: str = "Procedure", **kwargs) -> SessionItemDraft:
    return SessionItemDraft(
        name=name,
        unit_price=subtotal / quantity if quantity else subtotal,
        quantity=quantity,
        subtotal=subtotal,
        **kwargs,
    )


@pytest.fixture
def make_item():
    return item


@pytest.fixture
def make_session():
    def _make(day: date, items=(), payment: float = 0.0, discount: float = 0.0, **kwargs) -> SessionDraft:
        items = list(items)
        kwargs.setdefault("budget", sum(i.subtotal for i in items if i.counts_toward_budget))
        return SessionDraft(date=day, items=items, payment=payment, discount=discount, **kwargs)

    return _make


@pytest.fixture
def new_patient():
    return PatientDraft(full_name="Ana Ruiz", doc_id="12345678", phone="555-0101")
