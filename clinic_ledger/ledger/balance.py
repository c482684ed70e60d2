"""Session balance calculator.

The item list is the source of truth for a session's budget; whatever
budget the caller submitted is only compared against it.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from clinic_ledger.core.schemas import SessionItemDraft

logger = logging.getLogger(__name__)

BUDGET_TOLERANCE = 0.01
MONEY_PLACES = 2


def to_cents(amount: float) -> float:
    """Round a money amount to whole cents."""
    return round(amount, MONEY_PLACES)


class SessionBalance(BaseModel):
    """Authoritative financial figures for one session."""

    budget: float = 0.0
    discount: float = 0.0
    payment: float = 0.0
    balance: float = 0.0
    submitted_budget: Optional[float] = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def budget_mismatch(self) -> bool:
        return bool(self.warnings)


def active_items(items: Iterable[SessionItemDraft]) -> list[SessionItemDraft]:
    """Items that count toward the budget (explicit flag, else ``quantity > 0``)."""
    return [item for item in items if item.counts_toward_budget]


def compute_session_balance(
    items: Iterable[SessionItemDraft],
    discount: float = 0.0,
    payment: float = 0.0,
    submitted_budget: Optional[float] = None,
    tolerance: float = BUDGET_TOLERANCE,
) -> SessionBalance:
    """Compute ``budget`` and ``balance = budget - discount - payment``.

    Args:
        items: Items as submitted for the session.
        discount: Discount granted on the session.
        payment: Amount paid during the session.
        submitted_budget: Budget the caller believes the session has.
        tolerance: Drift allowed before the mismatch is reported.

    Returns:
        SessionBalance; a budget mismatch is reported in ``warnings`` only.
    """
    budget = to_cents(sum(item.subtotal for item in active_items(items)))
    balance = to_cents(budget - discount - payment)

    warnings: list[str] = []
    if submitted_budget is not None and abs(budget - submitted_budget) > tolerance:
        logger.warning(
            "Budget mismatch for session: submitted=%.2f computed=%.2f",
            submitted_budget,
            budget,
        )
        warnings.append(
            f"Submitted budget {submitted_budget:.2f} differs from item total {budget:.2f}; "
            "the item total was used."
        )

    return SessionBalance(
        budget=budget,
        discount=discount,
        payment=payment,
        balance=balance,
        submitted_budget=submitted_budget,
        warnings=warnings,
    )
