"""Tests for legacy snapshot import."""
import pytest

from clinic_ops.models.enums import AppointmentStatus, UserRole
from clinic_ops.models.records import Actor
from clinic_ops.models.snapshot import PracticeSnapshot
from clinic_ops.services.migration import LEGACY_CHART_NUMBER_KEY, LEGACY_PATNUM_KEY, SnapshotImporter

SNAPSHOT = {
    "patients": [
        {"pat_num": "100", "first_name": "Ada", "last_name": "Lovelace", "birthdate": "1980-12-10",
         "chart_number": "CH-100"},
        {"pat_num": "101", "first_name": "Byron", "last_name": "Lovelace", "birthdate": "2010-05-01",
         "guarantor_pat_num": "100"},
    ],
    "appointments": [
        {"apt_num": "1", "pat_num": "100", "provider": "dr-a", "reason": "Exam",
         "start_at": "2025-03-10T09:00:00Z", "end_at": "2025-03-10T10:00:00Z", "status": "completed"},
        {"apt_num": "2", "pat_num": "999", "provider": "dr-a", "reason": "Orphan",
         "start_at": "2025-03-10T11:00:00Z", "end_at": "2025-03-10T12:00:00Z"},
    ],
    "insurance_plans": [
        {"plan_num": "1", "pat_num": "100", "tier": "primary", "carrier": "Delta", "subscriber_name": "Ada",
         "subscriber_id": "S1", "relation_to_subscriber": "self", "restorative": 70, "crowns": 0},
    ],
    "treatment_plans": [
        {"plan_num": "1", "pat_num": "100", "heading": "Phase 1", "items": [
            {"item_num": "1", "ada_code": "D2391", "description": "Composite", "fee": 200.0},
            {"item_num": "2", "ada_code": "D2740", "description": "Crown", "fee": 1000.0, "priority": 2},
        ]},
    ],
    "ledger_entries": [
        {"entry_num": "1", "pat_num": "100", "type": "charge", "amount": 120.0, "description": "Exam",
         "entry_date": "2025-03-10T10:00:00Z"},
        {"entry_num": "2", "pat_num": "999", "type": "charge", "amount": 5.0, "description": "Orphan",
         "entry_date": "2025-03-10T10:00:00Z"},
    ],
}


@pytest.fixture
def importer(store, family, benefits, ledger):
    return SnapshotImporter(store, family, benefits, ledger)


@pytest.fixture
def actor():
    return Actor(user_id="admin-1", role=UserRole.ADMIN, purpose="practice migration")


class TestSnapshotImporter:

    @pytest.mark.asyncio
    async def test_counts_skip_unknown_patients(self, importer, actor):
        result = await importer.import_snapshot(PracticeSnapshot.model_validate(SNAPSHOT), actor)

        assert result.patients_imported == 2
        assert result.appointments_imported == 1
        assert result.insurance_plans_imported == 1
        assert result.treatment_plans_imported == 1
        assert result.treatment_plan_items_imported == 2
        assert result.ledger_entries_imported == 1
        assert result.actor == "admin-1"

    @pytest.mark.asyncio
    async def test_imported_records(self, importer, actor, store, benefits, ledger, family):
        await importer.import_snapshot(PracticeSnapshot.model_validate(SNAPSHOT), actor)

        patients = {p.first_name: p for p in await store.list_patients()}
        ada, byron = patients["Ada"], patients["Byron"]
        assert ada.external_ids == {LEGACY_PATNUM_KEY: "100", LEGACY_CHART_NUMBER_KEY: "CH-100"}
        assert byron.external_ids == {LEGACY_PATNUM_KEY: "101"}

        household = await family.find_family_by_patient(byron.id)
        assert household.guarantor_patient_id == ada.id
        assert household.find_member(byron.id).relation_to_guarantor == "family"

        appointments = await store.list_appointments(ada.id)
        assert [a.status for a in appointments] == [AppointmentStatus.COMPLETED]

        plans = await benefits.list_insurance_plans(ada.id)
        assert plans[0].benefit_percentages["restorative"] == 70.0
        assert plans[0].benefit_percentages["crowns"] == 50
        assert plans[0].benefit_percentages["preventive"] == 100

        treatment = await benefits.list_treatment_plans(ada.id)
        items = {i.ada_code: i for i in treatment[0].items}
        assert items["D2391"].insurance_est_primary == 140.0
        assert items["D2391"].patient_est == 60.0

        snapshot = await ledger.get_account_snapshot(ada.id)
        assert snapshot.totals.charges == 120.0
        assert snapshot.entries[0].created_by == "admin-1"

    @pytest.mark.asyncio
    async def test_empty_snapshot(self, importer, actor):
        result = await importer.import_snapshot(PracticeSnapshot(), actor)
        assert result.patients_imported == 0
        assert result.ledger_entries_imported == 0
