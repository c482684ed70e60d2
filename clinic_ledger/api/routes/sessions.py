"""Session save and read routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.api.dependencies import get_coordinator, get_factory
from clinic_ledger.core.schemas import SaveRequest, SaveResult, SessionWithItems
from clinic_ledger.ledger.coordinator import SessionPersistenceCoordinator
from clinic_ledger.ledger.sessions import delete_session, get_sessions_by_patient

router = APIRouter(tags=["sessions"])


@router.post("/sessions/save", response_model=SaveResult)
async def save_sessions(
    data: SaveRequest,
    coordinator: SessionPersistenceCoordinator = Depends(get_coordinator),
):
    """Save a patient and a batch of sessions in one transaction."""
    return await coordinator.save(data.patient, data.sessions)


@router.get("/patients/{patient_id}/sessions", response_model=list[SessionWithItems])
async def list_patient_sessions(
    patient_id: int,
    factory: async_sessionmaker[AsyncSession] = Depends(get_factory),
):
    return await get_sessions_by_patient(factory, patient_id)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_draft_session(
    session_id: int,
    factory: async_sessionmaker[AsyncSession] = Depends(get_factory),
):
    await delete_session(factory, session_id)
    return Response(status_code=204)
