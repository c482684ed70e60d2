"""Patient debt lifecycle state machine.

A patient is in one of three states, read off the patient row:

- ``NO_DEBT``: ``debt_opened_at`` is empty
- ``OPEN``: ``debt_opened_at`` is set and the debt is not archived
- ``ARCHIVED``: ``debt_archived`` is set

After a save, the ledger total before and after the last saved session is
run through ``DEBT_TRANSITIONS``. Rules are tried in order and the first
matching guard wins; when none match, the patient row is left as it is.
Archiving is an operator visibility flag and is toggled by separate commands.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional


class DebtState(str, Enum):
    NO_DEBT = "no_debt"
    OPEN = "open"
    ARCHIVED = "archived"


class DebtAction(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    UNARCHIVE = "unarchive"
    SELF_HEAL = "self_heal"
    NONE = "none"


@dataclass(frozen=True)
class DebtFields:
    """Debt columns of a patient row."""

    debt_opened_at: Optional[date] = None
    debt_archived: bool = False
    debt_archived_at: Optional[datetime] = None

    @property
    def state(self) -> DebtState:
        if self.debt_archived:
            return DebtState.ARCHIVED
        if self.debt_opened_at is None:
            return DebtState.NO_DEBT
        return DebtState.OPEN

    def as_columns(self) -> dict:
        return {
            "debt_opened_at": self.debt_opened_at,
            "debt_archived": self.debt_archived,
            "debt_archived_at": self.debt_archived_at,
        }


@dataclass(frozen=True)
class LedgerDelta:
    """Ledger totals around the last session of a save."""

    previous_total: float
    new_total: float
    session_date: date

    @property
    def opens(self) -> bool:
        return self.previous_total <= 0 and self.new_total > 0

    @property
    def closes(self) -> bool:
        return self.previous_total > 0 and self.new_total <= 0

    @property
    def in_debt(self) -> bool:
        return self.new_total > 0


@dataclass(frozen=True)
class DebtTransition:
    action: DebtAction
    guard: Callable[[LedgerDelta, DebtFields], bool]
    apply: Callable[[LedgerDelta, DebtFields], DebtFields]


@dataclass(frozen=True)
class DebtOutcome:
    action: DebtAction
    before: DebtFields
    after: DebtFields

    @property
    def changed(self) -> bool:
        return self.action is not DebtAction.NONE


def _open(delta: LedgerDelta, fields: DebtFields) -> DebtFields:
    return DebtFields(debt_opened_at=delta.session_date, debt_archived=False, debt_archived_at=None)


def _close(delta: LedgerDelta, fields: DebtFields) -> DebtFields:
    return DebtFields(debt_opened_at=None, debt_archived=False, debt_archived_at=None)


def _unarchive(delta: LedgerDelta, fields: DebtFields) -> DebtFields:
    return replace(fields, debt_archived=False, debt_archived_at=None)


def _self_heal(delta: LedgerDelta, fields: DebtFields) -> DebtFields:
    # Rows saved before debt tracking existed carry a balance but no open date.
    return replace(fields, debt_opened_at=delta.session_date, debt_archived=False)


DEBT_TRANSITIONS: tuple[DebtTransition, ...] = (
    DebtTransition(DebtAction.OPEN, lambda d, f: d.opens, _open),
    DebtTransition(DebtAction.CLOSE, lambda d, f: d.closes, _close),
    DebtTransition(DebtAction.UNARCHIVE, lambda d, f: d.in_debt and f.debt_archived, _unarchive),
    DebtTransition(DebtAction.SELF_HEAL, lambda d, f: d.in_debt and f.debt_opened_at is None, _self_heal),
)


def evaluate_debt(delta: LedgerDelta, fields: DebtFields) -> DebtOutcome:
    """Apply the first matching transition, or report ``DebtAction.NONE``."""
    for transition in DEBT_TRANSITIONS:
        if transition.guard(delta, fields):
            return DebtOutcome(action=transition.action, before=fields, after=transition.apply(delta, fields))
    return DebtOutcome(action=DebtAction.NONE, before=fields, after=fields)


def archived(fields: DebtFields, at: datetime) -> DebtFields:
    """Operator archive: hide the debt from reporting, keep its open date."""
    return replace(fields, debt_archived=True, debt_archived_at=at)


def unarchived(fields: DebtFields) -> DebtFields:
    return replace(fields, debt_archived=False, debt_archived_at=None)
