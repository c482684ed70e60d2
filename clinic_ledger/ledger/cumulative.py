"""Running ledger total per patient, snapshotted on each saved session."""
from __future__ import annotations

from typing import Optional

from clinic_ledger.core.repository import SessionRepository
from clinic_ledger.ledger.balance import to_cents


async def previous_cumulative(
    sessions: SessionRepository,
    patient_id: int,
    session_id: Optional[int],
) -> float:
    """Ledger total that precedes the session being saved.

    An existing session is anchored at its own identity: only saved sessions
    with a lower id count. A new session has no anchor yet, so every saved
    session of the patient counts. Identity order stands in for chronological
    order; back-dated sessions therefore keep their insertion position.
    """
    if session_id is not None:
        return await sessions.sum_saved_balances(patient_id, before_id=session_id)
    return await sessions.sum_saved_balances(patient_id)


async def compute_cumulative(
    sessions: SessionRepository,
    patient_id: int,
    session_id: Optional[int],
    balance: float,
) -> float:
    """New cumulative snapshot: previous total plus this session's balance, in cents."""
    return to_cents(await previous_cumulative(sessions, patient_id, session_id) + balance)
