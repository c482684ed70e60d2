"""Session persistence coordinator.

Saves a patient together with an ordered batch of sessions as one
all-or-nothing transaction:

1. upsert the patient
2. for each session: recompute budget/balance, compute the cumulative
   snapshot, upsert the session row as saved, replace its items
3. run the debt state machine once against the last saved session

Any failure rolls the whole batch back and surfaces as a single error.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_ledger.core.database import transaction
from clinic_ledger.core.errors import PreconditionError
from clinic_ledger.core.models import ClinicSession
from clinic_ledger.core.repository import PatientRepository, SessionRepository
from clinic_ledger.core.schemas import PatientDraft, SaveResult, SessionDraft
from clinic_ledger.ledger.balance import BUDGET_TOLERANCE, compute_session_balance
from clinic_ledger.ledger.cumulative import compute_cumulative
from clinic_ledger.ledger.debt_state import DebtFields, DebtOutcome, LedgerDelta, evaluate_debt
from clinic_ledger.ledger.items import replace_session_items

logger = logging.getLogger(__name__)


class SessionPersistenceCoordinator:
    """Owns the full write path for patients, sessions and their items."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        budget_tolerance: float = BUDGET_TOLERANCE,
    ):
        self.session_factory = session_factory
        self.budget_tolerance = budget_tolerance

    async def save(self, patient: PatientDraft, sessions: Sequence[SessionDraft]) -> SaveResult:
        """Persist ``patient`` and ``sessions`` atomically.

        Returns:
            SaveResult with the patient id and the id of the last processed
            session (``None`` when no session was submitted).

        Raises:
            StorageError: a step failed; nothing was written.
            StoreBusyError: the database connection could not be acquired in time.
        """
        logger.info(
            "Saving patient id=%s with %d session(s)",
            patient.id,
            len(sessions),
        )
        async with transaction(self.session_factory) as db:
            patients = PatientRepository(db)
            session_repo = SessionRepository(db)

            row = await patients.upsert(patient.id, **patient.demographics())
            patient_id = row.id

            last: Optional[ClinicSession] = None
            for draft in sessions:
                last = await self._save_session(session_repo, patient_id, draft)

            if last is not None:
                await self._apply_debt_rules(patients, session_repo, patient_id, last)

        result = SaveResult(patient_id=patient_id, last_session_id=last.id if last else None)
        logger.info("Saved patient %d, last session %s", result.patient_id, result.last_session_id)
        return result

    async def _save_session(
        self,
        sessions: SessionRepository,
        patient_id: int,
        draft: SessionDraft,
    ) -> ClinicSession:
        figures = compute_session_balance(
            draft.items,
            discount=draft.discount,
            payment=draft.payment,
            submitted_budget=draft.budget,
            tolerance=self.budget_tolerance,
        )
        cumulative = await compute_cumulative(sessions, patient_id, draft.persisted_id, figures.balance)

        row = await sessions.upsert(
            draft.persisted_id,
            patient_id,
            date=draft.date,
            reason_type=draft.reason_type,
            reason_detail=draft.reason_detail,
            diagnosis_text=draft.diagnosis_text,
            clinical_notes=draft.clinical_notes,
            signer=draft.signer,
            budget=figures.budget,
            discount=figures.discount,
            payment=figures.payment,
            balance=figures.balance,
            cumulative_balance=cumulative,
            payment_method_id=draft.payment_method_id,
            payment_notes=draft.payment_notes,
            is_saved=True,
        )
        await replace_session_items(sessions, row.id, draft.items)

        logger.debug(
            "Session %d: budget=%.2f balance=%.2f cumulative=%.2f",
            row.id,
            figures.budget,
            figures.balance,
            cumulative,
        )
        return row

    async def _apply_debt_rules(
        self,
        patients: PatientRepository,
        sessions: SessionRepository,
        patient_id: int,
        last: ClinicSession,
    ) -> DebtOutcome:
        delta = LedgerDelta(
            previous_total=await sessions.cumulative_before(patient_id, last.id),
            new_total=last.cumulative_balance,
            session_date=last.date,
        )
        patient = await patients.require(patient_id)
        current = DebtFields(
            debt_opened_at=patient.debt_opened_at,
            debt_archived=patient.debt_archived,
            debt_archived_at=patient.debt_archived_at,
        )

        outcome = evaluate_debt(delta, current)
        if outcome.changed:
            await patients.set_debt_fields(patient_id, **outcome.after.as_columns())
            logger.info(
                "Debt %s for patient %d: previous=%.2f new=%.2f",
                outcome.action.value,
                patient_id,
                delta.previous_total,
                delta.new_total,
            )
        return outcome


async def update_patient_only(
    session_factory: async_sessionmaker[AsyncSession],
    patient: PatientDraft,
) -> int:
    """Update demographic fields of an existing patient, without sessions."""
    if patient.id is None:
        raise PreconditionError("patient id is required for update")
    async with transaction(session_factory) as db:
        row = await PatientRepository(db).update(patient.id, **patient.demographics())
        return row.id
