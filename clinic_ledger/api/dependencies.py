"""FastAPI dependencies wiring the ledger services to the shared database."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.config import get_settings
from clinic_ledger.core.database import get_session_factory
from clinic_ledger.ledger.coordinator import SessionPersistenceCoordinator


def get_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the single-connection engine."""
    return get_session_factory()


def get_coordinator(
    factory: async_sessionmaker[AsyncSession] = Depends(get_factory),
) -> SessionPersistenceCoordinator:
    return SessionPersistenceCoordinator(factory, budget_tolerance=get_settings().budget_tolerance)
