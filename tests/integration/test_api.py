"""
Integration tests for the HTTP API.

Each test builds a fresh application so the in-memory stores and the
audit log start empty.
"""
import pytest
from fastapi.testclient import TestClient

from clinic_ops.config.settings import Settings
from clinic_ops.main import CORRELATION_HEADER, create_app
from tests.utils import CLINICAL_PURPOSE, TEST_PHI_KEY

pytestmark = pytest.mark.integration

ADMIN = {"user_id": "admin-1", "role": "admin", "purpose": CLINICAL_PURPOSE}
READONLY = {"user_id": "viewer-1", "role": "readonly", "purpose": CLINICAL_PURPOSE}


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def create_patient(client, **overrides):
    body = {
        "actor": ADMIN,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "date_of_birth": "1990-12-10",
        "phone": "(555) 010-0100",
        "email": "ada@example.com",
    }
    body.update(overrides)
    response = client.post("/api/v1/patients/upsert", json=body)
    assert response.status_code == 200
    return response.json()["patient"]


class TestSystemEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["data_backend"] == "memory"

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Clinic Operations Engine"

    def test_readiness(self, client):
        response = client.get("/api/v1/admin/readiness")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["data_backend"] == "memory"
        assert data["database_configured"] is False
        assert data["phi_encryption_enabled"] is True
        assert data["require_purpose_on_sensitive_reads"] is True

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={CORRELATION_HEADER: "corr-123"})
        assert response.headers[CORRELATION_HEADER] == "corr-123"

    def test_correlation_id_is_generated(self, client):
        response = client.get("/health")
        assert response.headers[CORRELATION_HEADER]


class TestErrorMapping:

    def test_unauthorized_write_returns_403(self, client):
        response = client.post(
            "/api/v1/patients/upsert",
            json={"actor": READONLY, "first_name": "Ada", "last_name": "Lovelace", "date_of_birth": "1990-12-10"},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "AuthorizationError"

    def test_missing_purpose_returns_400(self, client):
        response = client.post(
            "/api/v1/patients/search",
            json={"actor": {"user_id": "fd-1", "role": "front-desk"}, "query": "ada"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_unknown_plan_returns_404(self, client):
        response = client.post(
            "/api/v1/billing/treatment-plans/estimate",
            json={"actor": ADMIN, "plan_id": "missing"},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "NotFoundError", "detail": "Treatment plan missing not found"}

    def test_malformed_body_returns_422(self, client):
        response = client.post("/api/v1/patients/upsert", json={"first_name": "Ada"})
        assert response.status_code == 422

    def test_inverted_interval_returns_400(self, client):
        patient = create_patient(client)
        response = client.post(
            "/api/v1/scheduling/book",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "provider": "dr-smith",
                "reason": "Exam",
                "start_at": "2025-03-10T10:00:00Z",
                "end_at": "2025-03-10T09:00:00Z",
            },
        )
        assert response.status_code == 400


class TestPatients:

    def test_upsert_and_search(self, client):
        patient = create_patient(client)
        assert patient["first_name"] == "Ada"

        response = client.post("/api/v1/patients/search", json={"actor": ADMIN, "phone": "5550100100"})
        data = response.json()
        assert data["count"] == 1
        assert data["patients"][0]["email"] == "ada@example.com"

    def test_readonly_search_is_redacted(self, client):
        create_patient(client)
        response = client.post("/api/v1/patients/search", json={"actor": READONLY, "last_name": "lovelace"})
        assert response.status_code == 200
        assert set(response.json()["patients"][0]) == {"id", "first_name", "last_name", "date_of_birth"}

    def test_family_and_workspace(self, client):
        guarantor = create_patient(client)
        child = create_patient(client, first_name="Byron", date_of_birth="2012-05-01")

        response = client.post(
            "/api/v1/patients/family",
            json={
                "actor": ADMIN,
                "guarantor_patient_id": guarantor["id"],
                "member_patient_id": child["id"],
                "relation_to_guarantor": "child",
            },
        )
        assert response.status_code == 200
        family = response.json()["family"]
        assert family["guarantor_patient_id"] == guarantor["id"]
        assert len(family["members"]) == 2

        workspace = client.post(
            "/api/v1/patients/workspace",
            json={"actor": ADMIN, "patient_id": child["id"]},
        ).json()
        assert workspace["patient"]["id"] == child["id"]
        assert workspace["family"]["id"] == family["id"]


class TestSchedulingFlow:

    def test_book_then_slot_is_taken(self, client):
        patient = create_patient(client)
        booking = client.post(
            "/api/v1/scheduling/book",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "provider": "dr-smith",
                "reason": "Crown prep",
                "start_at": "2025-03-10T09:00:00Z",
                "end_at": "2025-03-10T10:00:00Z",
                "operatory": "op-1",
            },
        ).json()
        assert booking["appointment"]["status"] == "scheduled"
        assert booking["schedule_block"]["block_type"] == "booked"
        assert booking["schedule_block"]["appointment_id"] == booking["appointment"]["id"]

        slots = client.post(
            "/api/v1/scheduling/open-slots",
            json={
                "actor": ADMIN,
                "provider": "dr-smith",
                "day": "2025-03-10",
                "duration_minutes": 60,
                "interval_minutes": 60,
            },
        ).json()
        starts = [slot["start_at"] for slot in slots["slots"]]
        assert slots["count"] == 8
        assert "2025-03-10T09:00:00+00:00" not in starts

        status = client.post(
            "/api/v1/scheduling/appointments/status",
            json={"actor": ADMIN, "appointment_id": booking["appointment"]["id"], "status": "completed"},
        )
        assert status.json()["appointment"]["status"] == "completed"

        dashboard = client.post("/api/v1/scheduling/dashboard", json={"actor": ADMIN, "day": "2025-03-10"}).json()
        assert dashboard["date"] == "2025-03-10"
        assert len(dashboard["schedule"]) == 1


class TestBillingFlow:

    @pytest.mark.parametrize("key", ["oral_surgery", "oralSurgery"])
    def test_unknown_benefit_category_returns_422(self, client, key):
        patient = create_patient(client)
        response = client.post(
            "/api/v1/billing/insurance-plans",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "tier": "primary",
                "carrier": "Delta Dental",
                "subscriber_name": "Ada Lovelace",
                "subscriber_id": "DD-1",
                "relation_to_subscriber": "self",
                "benefit_percentages": {key: 0},
            },
        )
        assert response.status_code == 422

        plans = client.post(
            "/api/v1/billing/insurance-plans/list",
            json={"actor": ADMIN, "patient_id": patient["id"]},
        ).json()
        assert plans["count"] == 0

    def test_category_keys_are_stored(self, client):
        patient = create_patient(client)
        plan = client.post(
            "/api/v1/billing/insurance-plans",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "tier": "primary",
                "carrier": "Delta Dental",
                "subscriber_name": "Ada Lovelace",
                "subscriber_id": "DD-1",
                "relation_to_subscriber": "self",
                "benefit_percentages": {"oral-surgery": 0},
            },
        ).json()["plan"]
        assert plan["benefit_percentages"]["oral-surgery"] == 0.0
        assert plan["benefit_percentages"]["preventive"] == 100.0

    def test_estimate_and_account(self, client):
        patient = create_patient(client)
        client.post(
            "/api/v1/billing/insurance-plans",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "tier": "primary",
                "carrier": "Delta Dental",
                "subscriber_name": "Ada Lovelace",
                "subscriber_id": "DD-1",
                "relation_to_subscriber": "self",
                "benefit_percentages": {"preventive": 100, "restorative": 80},
            },
        )
        plan = client.post(
            "/api/v1/billing/treatment-plans",
            json={"actor": ADMIN, "patient_id": patient["id"], "heading": "Phase 1"},
        ).json()["plan"]
        for code, fee in (("D1110", 120.0), ("D2391", 200.0)):
            client.post(
                "/api/v1/billing/treatment-plans/items",
                json={
                    "actor": ADMIN,
                    "plan_id": plan["id"],
                    "patient_id": patient["id"],
                    "ada_code": code,
                    "description": code,
                    "fee": fee,
                },
            )

        estimate = client.post(
            "/api/v1/billing/treatment-plans/estimate",
            json={"actor": ADMIN, "plan_id": plan["id"]},
        ).json()
        assert estimate["totals"]["fee_total"] == 320.0
        assert estimate["totals"]["primary_estimate_total"] == 280.0
        assert estimate["totals"]["patient_estimate_total"] == 40.0

        client.post(
            "/api/v1/billing/ledger",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "type": "charge",
                "amount": 120.0,
                "description": "Prophylaxis",
            },
        )
        account = client.post(
            "/api/v1/billing/account",
            json={"actor": ADMIN, "patient_id": patient["id"]},
        ).json()
        assert account["totals"]["charges"] == 120.0
        assert account["totals"]["estimated_balance"] == 120.0
        assert account["entries"][0]["created_by"] == "admin-1"


class TestClinicalFlow:

    def test_communication_notes_round_trip(self, client):
        patient = create_patient(client)
        created = client.post(
            "/api/v1/clinical/communications",
            json={
                "actor": ADMIN,
                "patient_id": patient["id"],
                "communication_type": "phone",
                "direction": "inbound",
                "note": "Asked about crown cost",
            },
        ).json()["log"]
        assert created["note_ciphertext"] != "Asked about crown cost"

        logs = client.post(
            "/api/v1/clinical/communications/list",
            json={"actor": ADMIN, "patient_id": patient["id"]},
        ).json()
        assert logs["count"] == 1
        assert logs["logs"][0]["note"] == "Asked about crown cost"

    def test_tasks(self, client):
        client.post(
            "/api/v1/clinical/tasks",
            json={"actor": ADMIN, "title": "Verify benefits", "priority": "urgent", "details": "Call carrier"},
        )
        tasks = client.post("/api/v1/clinical/tasks/list", json={"actor": ADMIN, "status": "open"}).json()
        assert tasks["count"] == 1
        assert tasks["tasks"][0]["priority"] == "urgent"
        assert tasks["tasks"][0]["details"] == "Call carrier"


class TestAdministration:

    def test_import_snapshot_and_audit(self, client):
        response = client.post(
            "/api/v1/admin/import-snapshot",
            json={
                "actor": ADMIN,
                "snapshot": {
                    "patients": [
                        {"pat_num": "10", "first_name": "Grace", "last_name": "Hopper", "birthdate": "1906-12-09"},
                    ],
                    "appointments": [
                        {
                            "apt_num": "1",
                            "pat_num": "10",
                            "provider": "dr-smith",
                            "reason": "Recall",
                            "start_at": "2025-03-11T14:00:00Z",
                            "end_at": "2025-03-11T15:00:00Z",
                        },
                    ],
                },
            },
        )
        assert response.status_code == 200
        result = response.json()
        assert result["patients_imported"] == 1
        assert result["appointments_imported"] == 1
        assert result["actor"] == "admin-1"

        events = client.post("/api/v1/admin/audit-events", json={"actor": ADMIN, "limit": 5}).json()
        assert events["count"] == 1
        assert events["events"][0]["action"] == "import-opendental-snapshot"
        assert events["events"][0]["metadata"] == {"patients": "1"}

    def test_audit_events_record_denials(self, client):
        client.post(
            "/api/v1/admin/import-snapshot",
            json={"actor": READONLY, "snapshot": {}},
        )
        events = client.post("/api/v1/admin/audit-events", json={"actor": ADMIN}).json()["events"]
        assert events[0]["success"] is False
        assert events[0]["actor_role"] == "readonly"


def test_sql_backend_persists_through_api(tmp_path):
    settings = Settings(
        data_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        phi_encryption_key=TEST_PHI_KEY,
        log_level="WARNING",
    )
    with TestClient(create_app(settings)) as client:
        assert client.get("/api/v1/admin/readiness").json()["data_backend"] == "sql"
        patient = create_patient(client)
        found = client.post("/api/v1/patients/search", json={"actor": ADMIN, "query": "lovelace"}).json()
        assert [p["id"] for p in found["patients"]] == [patient["id"]]
