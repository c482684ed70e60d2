"""Tests for ledger repositories using async SQLite."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_ledger.core.errors import NotFoundError
from clinic_ledger.core.models import Base, SessionItem
from clinic_ledger.core.repository import PatientRepository, SessionRepository


@pytest.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess
        await sess.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


# --- Patient ---

async def test_patient_upsert_insert_then_update(session: AsyncSession):
    repo = PatientRepository(session)
    p = await repo.upsert(None, full_name="John Doe", doc_id="X1", phone="555")
    assert p.id is not None
    assert p.debt_archived is False

    updated = await repo.upsert(p.id, full_name="John Q. Doe")
    assert updated.id == p.id
    assert updated.full_name == "John Q. Doe"


async def test_patient_update_missing(session: AsyncSession):
    with pytest.raises(NotFoundError):
        await PatientRepository(session).update(999, full_name="Nobody")


async def test_set_debt_fields(session: AsyncSession):
    repo = PatientRepository(session)
    p = await repo.create(full_name="Debt Test")
    await repo.set_debt_fields(p.id, debt_opened_at=date(2026, 3, 2), debt_archived=False)

    fetched = await repo.get_by_id(p.id)
    assert fetched is p
    assert p.debt_opened_at == date(2026, 3, 2)

    stored = await session.execute(text("SELECT debt_opened_at FROM patients WHERE id = :id"), {"id": p.id})
    assert stored.scalar_one() == "2026-03-02"


async def test_set_debt_fields_missing(session: AsyncSession):
    with pytest.raises(NotFoundError):
        await PatientRepository(session).set_debt_fields(999, debt_archived=True)


# --- Sessions ---

async def _patient_with_sessions(session: AsyncSession, balances: list[tuple[float, bool]]):
    patient = await PatientRepository(session).create(full_name="Ledger Pat")
    repo = SessionRepository(session)
    rows = []
    running = 0.0
    for i, (balance, saved) in enumerate(balances):
        if saved:
            running += balance
        rows.append(
            await repo.upsert(
                None,
                patient.id,
                date=date(2026, 3, 1 + i),
                balance=balance,
                cumulative_balance=running,
                is_saved=saved,
            )
        )
    return patient, repo, rows


async def test_sum_saved_balances(session: AsyncSession):
    patient, repo, rows = await _patient_with_sessions(session, [(100, True), (50, False), (-30, True)])

    assert await repo.sum_saved_balances(patient.id) == 70
    assert await repo.sum_saved_balances(patient.id, before_id=rows[2].id) == 100
    assert await repo.sum_saved_balances(patient.id, before_id=rows[0].id) == 0


async def test_cumulative_before_skips_unsaved(session: AsyncSession):
    patient, repo, rows = await _patient_with_sessions(session, [(100, True), (50, False), (-30, True)])

    assert await repo.cumulative_before(patient.id, rows[2].id) == 100
    assert await repo.cumulative_before(patient.id, rows[0].id) == 0


async def test_session_upsert_rejects_foreign_session(session: AsyncSession):
    patient, repo, rows = await _patient_with_sessions(session, [(10, True)])
    other = await PatientRepository(session).create(full_name="Other")

    with pytest.raises(NotFoundError):
        await repo.upsert(rows[0].id, other.id, date=date(2026, 4, 1))


async def test_latest_saved_per_patient_uses_date_order(session: AsyncSession):
    patient = await PatientRepository(session).create(full_name="Backdated")
    repo = SessionRepository(session)
    await repo.upsert(None, patient.id, date=date(2026, 3, 10), cumulative_balance=80, is_saved=True)
    # Inserted later but dated earlier.
    await repo.upsert(None, patient.id, date=date(2026, 3, 1), cumulative_balance=30, is_saved=True)

    latest = await repo.latest_saved_per_patient()
    assert latest[patient.id] == (80, date(2026, 3, 10))


async def test_list_items_ordered(session: AsyncSession):
    patient, repo, rows = await _patient_with_sessions(session, [(0, True)])
    sid = rows[0].id
    await repo.add_items(
        [
            SessionItem(session_id=sid, name="Second", sort_order=1),
            SessionItem(session_id=sid, name="First", sort_order=0),
        ]
    )

    items = await repo.list_items(sid)
    assert [i.name for i in items] == ["First", "Second"]

    await repo.delete_items(sid)
    assert list(await repo.list_items(sid)) == []
