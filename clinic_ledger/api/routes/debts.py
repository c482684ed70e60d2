"""Patient debt routes: pending report, archive toggles, contact log, repair."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.api.dependencies import get_factory
from clinic_ledger.core.schemas import ContactRequest, PatientDebtSummary, PatientDraft, RepairResult
from clinic_ledger.ledger.coordinator import update_patient_only
from clinic_ledger.ledger.debts import (
    archive_debt,
    list_pending_debts,
    mark_patient_contacted,
    repair_debt_opened_dates,
    unarchive_debt,
)

router = APIRouter(tags=["debts"])


@router.get("/debts/pending", response_model=list[PatientDebtSummary])
async def pending_debts(factory: async_sessionmaker[AsyncSession] = Depends(get_factory)):
    return await list_pending_debts(factory)


@router.post("/debts/repair", response_model=RepairResult)
async def repair_debts(factory: async_sessionmaker[AsyncSession] = Depends(get_factory)):
    return RepairResult(patients_fixed=await repair_debt_opened_dates(factory))


@router.post("/patients/{patient_id}/debt/archive")
async def archive(patient_id: int, factory: async_sessionmaker[AsyncSession] = Depends(get_factory)) -> dict:
    await archive_debt(factory, patient_id)
    return {"patient_id": patient_id, "debt_archived": True}


@router.post("/patients/{patient_id}/debt/unarchive")
async def unarchive(patient_id: int, factory: async_sessionmaker[AsyncSession] = Depends(get_factory)) -> dict:
    await unarchive_debt(factory, patient_id)
    return {"patient_id": patient_id, "debt_archived": False}


@router.post("/patients/{patient_id}/contact")
async def record_contact(
    patient_id: int,
    data: ContactRequest,
    factory: async_sessionmaker[AsyncSession] = Depends(get_factory),
) -> dict:
    await mark_patient_contacted(factory, patient_id, data.contact_type)
    return {"patient_id": patient_id, "contact_type": data.contact_type}


@router.put("/patients/{patient_id}")
async def update_patient(
    patient_id: int,
    data: PatientDraft,
    factory: async_sessionmaker[AsyncSession] = Depends(get_factory),
) -> dict:
    """Update demographics only; debt fields and sessions are untouched."""
    data.id = patient_id
    return {"patient_id": await update_patient_only(factory, data)}
