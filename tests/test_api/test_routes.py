"""Tests for the ledger REST API."""

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from clinic_ledger.api.app import create_app
from clinic_ledger.api.dependencies import get_factory
from clinic_ledger.core.repository import PatientRepository
from clinic_ledger.core.database import transaction


@pytest.fixture
def app(factory):
    application = create_app()
    application.dependency_overrides[get_factory] = lambda: factory
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def _save_payload(sessions, patient_id=None):
    return {
        "patient": {"id": patient_id, "full_name": "Ana Ruiz", "doc_id": "12345678", "phone": "555-0101"},
        "sessions": sessions,
    }


def _session(day: str, subtotal: float, payment: float = 0.0, **kwargs) -> dict:
    return {
        "date": day,
        "budget": subtotal,
        "payment": payment,
        "items": [{"name": "Cleaning", "unit_price": subtotal, "quantity": 1, "subtotal": subtotal}],
        **kwargs,
    }


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "clinic-ledger"


class TestSaveRoutes:
    async def test_save_and_list(self, client):
        response = await client.post(
            "/api/v1/sessions/save",
            json=_save_payload([_session("2026-03-02", 150, payment=30)]),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["last_session_id"] is not None

        listed = await client.get(f"/api/v1/patients/{body['patient_id']}/sessions")
        assert listed.status_code == 200
        rows = listed.json()
        assert len(rows) == 1
        assert rows[0]["session"]["balance"] == 120
        assert rows[0]["session"]["cumulative_balance"] == 120
        assert rows[0]["session"]["is_saved"] is True
        assert [i["name"] for i in rows[0]["items"]] == ["Cleaning"]

    async def test_save_patient_only(self, client):
        response = await client.post("/api/v1/sessions/save", json=_save_payload([]))

        assert response.status_code == 200
        assert response.json()["last_session_id"] is None

    async def test_unknown_patient_is_404(self, client):
        response = await client.post(
            "/api/v1/sessions/save",
            json=_save_payload([_session("2026-03-02", 50)], patient_id=999),
        )

        assert response.status_code == 404

    async def test_invalid_body_is_422(self, client):
        response = await client.post("/api/v1/sessions/save", json={"sessions": []})

        assert response.status_code == 422

    async def test_delete_saved_session_rejected(self, client):
        saved = (
            await client.post("/api/v1/sessions/save", json=_save_payload([_session("2026-03-02", 50)]))
        ).json()

        response = await client.delete(f"/api/v1/sessions/{saved['last_session_id']}")

        assert response.status_code == 400

    async def test_delete_unknown_session_is_noop(self, client):
        response = await client.delete("/api/v1/sessions/4242")

        assert response.status_code == 204


class TestDebtRoutes:
    async def _open_debt(self, client) -> int:
        response = await client.post(
            "/api/v1/sessions/save",
            json=_save_payload([_session("2026-03-02", 150, payment=30)]),
        )
        return response.json()["patient_id"]

    async def test_pending_lists_open_debt(self, client):
        pid = await self._open_debt(client)

        response = await client.get("/api/v1/debts/pending")

        assert response.status_code == 200
        rows = response.json()
        assert [r["patient_id"] for r in rows] == [pid]
        assert rows[0]["current_balance"] == 120
        assert rows[0]["debt_opened_at"] == "2026-03-02"
        assert rows[0]["contact_status"] == "not_contacted"

    async def test_archive_hides_and_unarchive_restores(self, client):
        pid = await self._open_debt(client)

        archived = await client.post(f"/api/v1/patients/{pid}/debt/archive")
        assert archived.status_code == 200
        assert archived.json()["debt_archived"] is True
        assert (await client.get("/api/v1/debts/pending")).json() == []

        restored = await client.post(f"/api/v1/patients/{pid}/debt/unarchive")
        assert restored.status_code == 200
        assert [r["patient_id"] for r in (await client.get("/api/v1/debts/pending")).json()] == [pid]

    async def test_archive_unknown_patient_is_404(self, client):
        response = await client.post("/api/v1/patients/999/debt/archive")

        assert response.status_code == 404

    async def test_contact(self, client):
        pid = await self._open_debt(client)

        response = await client.post(f"/api/v1/patients/{pid}/contact", json={"contact_type": "whatsapp"})
        assert response.status_code == 200

        rows = (await client.get("/api/v1/debts/pending")).json()
        assert rows[0]["last_contact_type"] == "whatsapp"
        assert rows[0]["contact_status"] == "recently_contacted"

    async def test_contact_rejects_unknown_channel(self, client):
        pid = await self._open_debt(client)

        response = await client.post(f"/api/v1/patients/{pid}/contact", json={"contact_type": "pigeon"})

        assert response.status_code == 422

    async def test_repair(self, client, factory):
        pid = await self._open_debt(client)
        async with transaction(factory) as db:
            await PatientRepository(db).set_debt_fields(pid, debt_opened_at=None)

        response = await client.post("/api/v1/debts/repair")

        assert response.status_code == 200
        assert response.json() == {"patients_fixed": 1}
        async with transaction(factory) as db:
            patient = await PatientRepository(db).get_by_id(pid)
            assert patient.debt_opened_at == date(2026, 3, 2)

    async def test_update_patient_keeps_debt(self, client, factory):
        pid = await self._open_debt(client)

        response = await client.put(
            f"/api/v1/patients/{pid}",
            json={"full_name": "Ana M. Ruiz", "doc_id": "12345678", "phone": "555-0199"},
        )

        assert response.status_code == 200
        assert response.json() == {"patient_id": pid}
        async with transaction(factory) as db:
            patient = await PatientRepository(db).get_by_id(pid)
            assert patient.full_name == "Ana M. Ruiz"
            assert patient.debt_opened_at == date(2026, 3, 2)
