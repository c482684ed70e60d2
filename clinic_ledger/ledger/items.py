"""Destructive replace-on-save of a session's items."""
from __future__ import annotations

from typing import Iterable

from clinic_ledger.core.models import SessionItem
from clinic_ledger.core.repository import SessionRepository
from clinic_ledger.core.schemas import SessionItemDraft


def is_blank(item: SessionItemDraft) -> bool:
    """A row with no quantity and no name is an empty form line."""
    return item.quantity <= 0 and not item.name.strip()


def build_items(session_id: int, drafts: Iterable[SessionItemDraft]) -> list[SessionItem]:
    # sort_order is the position in the submitted list, so skipped blanks leave gaps.
    rows = []
    for index, draft in enumerate(drafts):
        if is_blank(draft):
            continue
        rows.append(
            SessionItem(
                session_id=session_id,
                name=draft.name,
                unit_price=draft.unit_price,
                quantity=draft.quantity,
                subtotal=draft.subtotal,
                is_active=draft.counts_toward_budget,
                tooth_number=draft.tooth_number,
                procedure_notes=draft.procedure_notes,
                procedure_template_id=draft.procedure_template_id,
                sort_order=index,
            )
        )
    return rows


async def replace_session_items(
    sessions: SessionRepository,
    session_id: int,
    drafts: Iterable[SessionItemDraft],
) -> list[SessionItem]:
    """Delete every stored item of the session, then insert the submitted ones.

    Item identities are not preserved across saves.
    """
    await sessions.delete_items(session_id)
    rows = build_items(session_id, drafts)
    if rows:
        await sessions.add_items(rows)
    return rows
