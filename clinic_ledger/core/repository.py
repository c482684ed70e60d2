"""Repositories for the ledger tables.

Repositories only ``flush()``; committing belongs to the transaction guard.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_ledger.core.errors import NotFoundError
from clinic_ledger.core.models import ClinicSession, Patient, SessionItem


class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Patient:
        patient = Patient(**kwargs)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def get_by_id(self, patient_id: int) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)

    async def require(self, patient_id: int) -> Patient:
        patient = await self.get_by_id(patient_id)
        if patient is None:
            raise NotFoundError(f"patient {patient_id} not found")
        return patient

    async def update(self, patient_id: int, **kwargs) -> Patient:
        patient = await self.require(patient_id)
        for k, v in kwargs.items():
            setattr(patient, k, v)
        patient.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return patient

    async def upsert(self, patient_id: Optional[int], **demographics) -> Patient:
        if patient_id is not None:
            return await self.update(patient_id, **demographics)
        return await self.create(**demographics)

    async def set_debt_fields(self, patient_id: int, **fields) -> Patient:
        """Write debt lifecycle columns without touching demographics."""
        patient = await self.require(patient_id)
        for k, v in fields.items():
            setattr(patient, k, v)
        await self.session.flush()
        return patient


class SessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, session_id: int) -> Optional[ClinicSession]:
        return await self.session.get(ClinicSession, session_id)

    async def upsert(self, session_id: Optional[int], patient_id: int, **fields) -> ClinicSession:
        if session_id is None:
            row = ClinicSession(patient_id=patient_id, **fields)
            self.session.add(row)
        else:
            row = await self.get_by_id(session_id)
            if row is None or row.patient_id != patient_id:
                raise NotFoundError(f"session {session_id} not found for patient {patient_id}")
            for k, v in fields.items():
                setattr(row, k, v)
            row.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return row

    async def sum_saved_balances(self, patient_id: int, before_id: Optional[int] = None) -> float:
        """Sum ``balance`` over saved sessions, optionally only those with ``id < before_id``."""
        stmt = select(func.coalesce(func.sum(ClinicSession.balance), 0.0)).where(
            ClinicSession.patient_id == patient_id,
            ClinicSession.is_saved.is_(True),
        )
        if before_id is not None:
            stmt = stmt.where(ClinicSession.id < before_id)
        result = await self.session.execute(stmt)
        return float(result.scalar_one())

    async def cumulative_before(self, patient_id: int, session_id: int) -> float:
        """Cumulative snapshot of the saved session just before ``session_id`` in identity order."""
        stmt = (
            select(ClinicSession.cumulative_balance)
            .where(
                ClinicSession.patient_id == patient_id,
                ClinicSession.is_saved.is_(True),
                ClinicSession.id < session_id,
            )
            .order_by(ClinicSession.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        value = result.scalar_one_or_none()
        return float(value) if value is not None else 0.0

    async def list_by_patient(self, patient_id: int) -> Sequence[ClinicSession]:
        stmt = (
            select(ClinicSession)
            .where(ClinicSession.patient_id == patient_id)
            .order_by(ClinicSession.date.desc(), ClinicSession.id.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def latest_saved_per_patient(self) -> dict[int, tuple[float, date]]:
        """Latest saved session (``date DESC, id DESC``) per patient as ``(cumulative, date)``."""
        ranked = (
            select(
                ClinicSession.patient_id,
                ClinicSession.cumulative_balance,
                ClinicSession.date,
                func.row_number()
                .over(
                    partition_by=ClinicSession.patient_id,
                    order_by=[ClinicSession.date.desc(), ClinicSession.id.desc()],
                )
                .label("rn"),
            )
            .where(ClinicSession.is_saved.is_(True))
            .subquery()
        )
        stmt = select(ranked.c.patient_id, ranked.c.cumulative_balance, ranked.c.date).where(ranked.c.rn == 1)
        result = await self.session.execute(stmt)
        return {row.patient_id: (float(row.cumulative_balance), row.date) for row in result}

    async def delete(self, session_id: int) -> None:
        await self.session.execute(delete(ClinicSession).where(ClinicSession.id == session_id))

    # --- items ---

    async def list_items(self, session_id: int) -> Sequence[SessionItem]:
        stmt = (
            select(SessionItem)
            .where(SessionItem.session_id == session_id)
            .order_by(SessionItem.sort_order.asc(), SessionItem.id.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete_items(self, session_id: int) -> None:
        await self.session.execute(delete(SessionItem).where(SessionItem.session_id == session_id))

    async def add_items(self, items: list[SessionItem]) -> None:
        self.session.add_all(items)
        await self.session.flush()
