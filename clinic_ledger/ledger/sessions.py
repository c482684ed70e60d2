"""Session reads and draft deletion."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.core.database import transaction
from clinic_ledger.core.errors import PreconditionError
from clinic_ledger.core.repository import SessionRepository
from clinic_ledger.core.schemas import SessionItemRead, SessionRead, SessionWithItems

logger = logging.getLogger(__name__)


async def get_sessions_by_patient(
    session_factory: async_sessionmaker[AsyncSession],
    patient_id: int,
) -> list[SessionWithItems]:
    """All sessions of a patient, newest first, each with its ordered items."""
    async with transaction(session_factory) as db:
        repo = SessionRepository(db)
        rows = []
        for session in await repo.list_by_patient(patient_id):
            items = await repo.list_items(session.id)
            rows.append(
                SessionWithItems(
                    session=SessionRead.model_validate(session),
                    items=[SessionItemRead.model_validate(item) for item in items],
                )
            )
    return rows


async def delete_session(session_factory: async_sessionmaker[AsyncSession], session_id: int) -> None:
    """Delete an unsaved draft session. Saved sessions are part of the ledger and stay."""
    async with transaction(session_factory) as db:
        repo = SessionRepository(db)
        row = await repo.get_by_id(session_id)
        if row is None:
            return
        if row.is_saved:
            raise PreconditionError("cannot delete a saved session")
        await repo.delete_items(session_id)
        await repo.delete(session_id)
    logger.info("Deleted draft session %d", session_id)
