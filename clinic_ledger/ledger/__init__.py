"""Ledger: balances, cumulative snapshots, item replacement, debt lifecycle."""

from clinic_ledger.ledger.balance import SessionBalance, compute_session_balance
from clinic_ledger.ledger.coordinator import SessionPersistenceCoordinator, update_patient_only
from clinic_ledger.ledger.cumulative import compute_cumulative
from clinic_ledger.ledger.debt_state import DebtAction, DebtFields, DebtState, LedgerDelta, evaluate_debt
from clinic_ledger.ledger.debts import (
    archive_debt,
    list_pending_debts,
    mark_patient_contacted,
    repair_debt_opened_dates,
    unarchive_debt,
)
from clinic_ledger.ledger.items import replace_session_items
from clinic_ledger.ledger.sessions import delete_session, get_sessions_by_patient

__all__ = [
    "DebtAction",
    "DebtFields",
    "DebtState",
    "LedgerDelta",
    "SessionBalance",
    "SessionPersistenceCoordinator",
    "archive_debt",
    "compute_cumulative",
    "compute_session_balance",
    "delete_session",
    "evaluate_debt",
    "get_sessions_by_patient",
    "list_pending_debts",
    "mark_patient_contacted",
    "repair_debt_opened_dates",
    "replace_session_items",
    "unarchive_debt",
    "update_patient_only",
]
