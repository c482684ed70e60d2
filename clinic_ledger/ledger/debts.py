"""Operator debt commands and the pending-debt report."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional, get_args

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.config import get_settings
from clinic_ledger.core.database import transaction
from clinic_ledger.core.errors import PreconditionError
from clinic_ledger.core.models import Patient
from clinic_ledger.core.repository import PatientRepository, SessionRepository
from clinic_ledger.core.schemas import ContactStatus, ContactType, PatientDebtSummary
from clinic_ledger.ledger.debt_state import DebtFields, archived, unarchived

logger = logging.getLogger(__name__)

CONTACT_TYPES: tuple[str, ...] = get_args(ContactType)


def _fields(patient: Patient) -> DebtFields:
    return DebtFields(
        debt_opened_at=patient.debt_opened_at,
        debt_archived=patient.debt_archived,
        debt_archived_at=patient.debt_archived_at,
    )


async def archive_debt(session_factory: async_sessionmaker[AsyncSession], patient_id: int) -> None:
    """Hide a patient's debt from active reporting; balances are untouched."""
    async with transaction(session_factory) as db:
        patients = PatientRepository(db)
        patient = await patients.require(patient_id)
        after = archived(_fields(patient), datetime.now(timezone.utc))
        await patients.set_debt_fields(patient_id, **after.as_columns())
    logger.info("Archived debt for patient %d", patient_id)


async def unarchive_debt(session_factory: async_sessionmaker[AsyncSession], patient_id: int) -> None:
    async with transaction(session_factory) as db:
        patients = PatientRepository(db)
        patient = await patients.require(patient_id)
        await patients.set_debt_fields(patient_id, **unarchived(_fields(patient)).as_columns())
    logger.info("Unarchived debt for patient %d", patient_id)


async def mark_patient_contacted(
    session_factory: async_sessionmaker[AsyncSession],
    patient_id: int,
    contact_type: str,
) -> None:
    if contact_type not in CONTACT_TYPES:
        raise PreconditionError(
            f"invalid contact type {contact_type!r}; expected one of {', '.join(CONTACT_TYPES)}"
        )
    async with transaction(session_factory) as db:
        await PatientRepository(db).update(
            patient_id,
            last_contact_at=datetime.now(timezone.utc),
            last_contact_type=contact_type,
        )


def _contact_status(last_contact_at: Optional[datetime], today: date, recent_days: int) -> ContactStatus:
    if last_contact_at is None:
        return "not_contacted"
    if (today - last_contact_at.date()).days <= recent_days:
        return "recently_contacted"
    return "long_ago"


async def list_pending_debts(
    session_factory: async_sessionmaker[AsyncSession],
    today: Optional[date] = None,
    recent_days: Optional[int] = None,
) -> list[PatientDebtSummary]:
    """Active, non-archived patients whose latest saved cumulative balance is positive.

    "Latest" is the most recent saved session by date, ties broken by id.
    Sorted by days overdue, then balance, both descending. ``recent_days``
    defaults to the ``recent_contact_days`` setting.
    """
    today = today or date.today()
    if recent_days is None:
        recent_days = get_settings().recent_contact_days
    async with transaction(session_factory) as db:
        latest = await SessionRepository(db).latest_saved_per_patient()
        result = await db.execute(
            select(Patient).where(
                Patient.status == "active",
                Patient.debt_archived.is_(False),
                Patient.debt_opened_at.is_not(None),
            )
        )
        patients = result.scalars().all()

    summaries = []
    for patient in patients:
        current_balance = latest.get(patient.id, (0.0, None))[0]
        if current_balance <= 0:
            continue
        summaries.append(
            PatientDebtSummary(
                patient_id=patient.id,
                full_name=patient.full_name,
                phone=patient.phone,
                doc_id=patient.doc_id,
                current_balance=current_balance,
                debt_opened_at=patient.debt_opened_at,
                debt_archived=patient.debt_archived,
                last_contact_at=patient.last_contact_at,
                last_contact_type=patient.last_contact_type,
                days_overdue=(today - patient.debt_opened_at).days,
                contact_status=_contact_status(patient.last_contact_at, today, recent_days),
            )
        )
    summaries.sort(key=lambda s: (s.days_overdue, s.current_balance), reverse=True)
    return summaries


async def repair_debt_opened_dates(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Backfill ``debt_opened_at`` for active patients in debt without one.

    The open date becomes the date of the patient's latest saved session.
    Returns the number of patients fixed.
    """
    async with transaction(session_factory) as db:
        latest = await SessionRepository(db).latest_saved_per_patient()
        result = await db.execute(
            select(Patient).where(Patient.status == "active", Patient.debt_opened_at.is_(None))
        )
        patients = PatientRepository(db)
        fixed = 0
        for patient in result.scalars().all():
            cumulative, latest_date = latest.get(patient.id, (0.0, None))
            if cumulative <= 0:
                continue
            logger.info("Repairing debt open date for patient %d -> %s", patient.id, latest_date)
            await patients.set_debt_fields(
                patient.id,
                debt_opened_at=latest_date,
                debt_archived=False,
                debt_archived_at=None,
            )
            fixed += 1
    logger.info("Debt repair completed: %d patient(s) fixed", fixed)
    return fixed
