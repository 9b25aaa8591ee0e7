"""Tests for patient, appointment, recall, communication and task operations."""
from datetime import date

import pytest

from clinic_ops.exceptions import NotFoundError, ValidationError
from clinic_ops.models.enums import (
    AppointmentStatus,
    CommunicationDirection,
    CommunicationType,
    DentalModality,
    InsuranceTier,
    LedgerEntryType,
    RecallStatus,
    TaskPriority,
    TaskStatus,
)
from clinic_ops.security.cipher import ENVELOPE_PREFIX
from clinic_ops.services.clinic_ops_service import add_months, clamp_limit, digits_only
from tests.utils import utc


async def add_patient(clinic, first_name="Ada", last_name="Lovelace", **extra):
    return await clinic.upsert_patient(
        first_name=first_name,
        last_name=last_name,
        date_of_birth=extra.pop("date_of_birth", "1990-12-10"),
        **extra,
    )


class TestHelpers:

    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (utc(2025, 1, 15), 6, utc(2025, 7, 15)),
            (utc(2025, 1, 31), 1, utc(2025, 2, 28)),
            (utc(2024, 1, 31), 1, utc(2024, 2, 29)),
            (utc(2025, 8, 31), 6, utc(2026, 2, 28)),
            (utc(2025, 11, 30), 3, utc(2026, 2, 28)),
            (utc(2025, 12, 1), 12, utc(2026, 12, 1)),
        ],
    )
    def test_add_months_clamps_day(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_clamp_limit(self):
        assert clamp_limit(None) == 50
        assert clamp_limit(0) == 50
        assert clamp_limit(500) == 200
        assert clamp_limit(-3) == 1
        assert clamp_limit(7) == 7

    def test_digits_only(self):
        assert digits_only("(555) 010-0199") == "5550100199"
        assert digits_only(None) == ""


class TestPatients:

    @pytest.mark.asyncio
    async def test_upsert_merges_metadata_and_keeps_created_at(self, clinic):
        patient = await add_patient(clinic, metadata={"preferred": "morning"}, external_ids={"legacy": "42"})
        updated = await clinic.upsert_patient(
            patient_id=patient.id,
            first_name="Ada",
            last_name="King",
            date_of_birth="1990-12-10",
            metadata={"language": "en"},
        )
        assert updated.last_name == "King"
        assert updated.metadata == {"preferred": "morning", "language": "en"}
        assert updated.external_ids == {"legacy": "42"}
        assert updated.created_at == patient.created_at

    @pytest.mark.asyncio
    async def test_search_criteria_all_must_match(self, clinic):
        await add_patient(clinic, "Ada", "Lovelace", phone="(555) 010-0100", external_ids={"opendental_patnum": "77"})
        await add_patient(clinic, "Charles", "Babbage", phone="555-010-0200", date_of_birth="1971-12-26")
        await add_patient(clinic, "Annabella", "Lovelace", phone="555 010 0300")

        assert len(await clinic.search_patients(last_name="lovelace")) == 2
        assert [p.first_name for p in await clinic.search_patients(last_name="lovelace", first_name="ada")] == ["Ada"]
        assert [p.first_name for p in await clinic.search_patients(phone="5550100200")] == ["Charles"]
        assert [p.first_name for p in await clinic.search_patients(date_of_birth="1971-12-26")] == ["Charles"]
        assert [p.first_name for p in await clinic.search_patients(external_id="77")] == ["Ada"]
        assert [p.first_name for p in await clinic.search_patients(query="BABB")] == ["Charles"]
        assert await clinic.search_patients(query="nobody") == []

    @pytest.mark.asyncio
    async def test_search_limit(self, clinic):
        for i in range(5):
            await add_patient(clinic, f"P{i}", "Smith")
        assert len(await clinic.search_patients(last_name="smith", limit=3)) == 3


class TestAppointments:

    @pytest.mark.asyncio
    async def test_schedule_requires_patient(self, clinic):
        with pytest.raises(NotFoundError):
            await clinic.schedule_appointment(
                patient_id="missing",
                provider="dr-smith",
                reason="Exam",
                start_at=utc(2025, 3, 10, 9),
                end_at=utc(2025, 3, 10, 10),
            )

    @pytest.mark.asyncio
    async def test_schedule_requires_start_before_end(self, clinic):
        patient = await add_patient(clinic)
        with pytest.raises(ValidationError):
            await clinic.schedule_appointment(
                patient_id=patient.id,
                provider="dr-smith",
                reason="Exam",
                start_at=utc(2025, 3, 10, 10),
                end_at=utc(2025, 3, 10, 9),
            )

    @pytest.mark.asyncio
    async def test_set_status(self, clinic):
        patient = await add_patient(clinic)
        appointment = await clinic.schedule_appointment(
            patient_id=patient.id,
            provider="dr-smith",
            reason="Exam",
            start_at=utc(2025, 3, 10, 9),
            end_at=utc(2025, 3, 10, 10),
        )
        updated = await clinic.set_appointment_status(appointment.id, AppointmentStatus.CHECKED_IN)
        assert updated.status == AppointmentStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_set_status_unknown_appointment(self, clinic):
        with pytest.raises(NotFoundError):
            await clinic.set_appointment_status("missing", AppointmentStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_ingest_image_requires_patient(self, clinic):
        with pytest.raises(NotFoundError):
            await clinic.ingest_dental_image(
                patient_id="missing",
                modality=DentalModality.BITEWING,
                image_url="s3://images/bw.png",
            )


class TestRecalls:

    @pytest.mark.asyncio
    async def test_due_date_from_last_visit(self, clinic):
        recall = await clinic.upsert_recall(
            patient_id="p-1",
            recall_type="prophy",
            interval_months=6,
            last_visit_date=utc(2025, 1, 31, 9),
        )
        assert recall.due_date == utc(2025, 7, 31, 9)
        assert recall.status == RecallStatus.DUE

    @pytest.mark.asyncio
    async def test_explicit_due_date_wins(self, clinic):
        recall = await clinic.upsert_recall(
            patient_id="p-1",
            recall_type="perio",
            interval_months=3,
            last_visit_date=utc(2025, 1, 1),
            due_date=utc(2025, 2, 1),
        )
        assert recall.due_date == utc(2025, 2, 1)

    @pytest.mark.asyncio
    async def test_list_due_is_inclusive_of_whole_days(self, clinic):
        await clinic.upsert_recall(patient_id="p-1", recall_type="a", interval_months=6, due_date=utc(2025, 5, 1, 0))
        await clinic.upsert_recall(patient_id="p-2", recall_type="b", interval_months=6, due_date=utc(2025, 5, 3, 23, 59))
        await clinic.upsert_recall(patient_id="p-3", recall_type="c", interval_months=6, due_date=utc(2025, 5, 4, 0))

        due = await clinic.list_recall_due(date(2025, 5, 1), date(2025, 5, 3))
        assert [r.patient_id for r in due] == ["p-1", "p-2"]


class TestCommunicationAndTasks:

    @pytest.mark.asyncio
    async def test_notes_are_encrypted_at_rest(self, clinic, repository):
        await clinic.add_communication_log(
            patient_id="p-1",
            communication_type=CommunicationType.PHONE,
            direction=CommunicationDirection.OUTBOUND,
            note="Reminded about crown seat",
            created_by="fd-1",
        )
        stored = await repository.list_communication_logs_by_patient("p-1")
        assert stored[0].note_ciphertext.startswith(ENVELOPE_PREFIX)

        logs = await clinic.list_communication_logs("p-1")
        assert logs[0]["note"] == "Reminded about crown seat"
        assert logs[0]["communication_type"] == "phone"

    @pytest.mark.asyncio
    async def test_task_update_keeps_unspecified_fields(self, clinic):
        task = await clinic.upsert_task(
            title="Call insurer",
            actor_user_id="billing-1",
            details="Verify frequency limits",
            priority=TaskPriority.HIGH,
        )
        updated = await clinic.upsert_task(
            task_id=task.id,
            title="Call insurer again",
            actor_user_id="fd-2",
            status=TaskStatus.IN_PROGRESS,
        )
        assert updated.created_by == "billing-1"
        assert updated.created_at == task.created_at
        assert updated.priority == TaskPriority.HIGH
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.details_ciphertext == task.details_ciphertext

        views = await clinic.list_tasks()
        assert views[0]["details"] == "Verify frequency limits"
        assert "details_ciphertext" in views[0]

    @pytest.mark.asyncio
    async def test_task_defaults_and_filters(self, clinic):
        await clinic.upsert_task(title="A", actor_user_id="u", assigned_to="fd-1")
        await clinic.upsert_task(title="B", actor_user_id="u", assigned_to="fd-2", status=TaskStatus.DONE)
        open_tasks = await clinic.list_tasks(status=TaskStatus.OPEN)
        assert [t["title"] for t in open_tasks] == ["A"]
        assert open_tasks[0]["priority"] == "medium"
        assert [t["title"] for t in await clinic.list_tasks(assigned_to="fd-2")] == ["B"]


class TestAggregateViews:

    @pytest.mark.asyncio
    async def test_dashboard(self, clinic):
        patient = await add_patient(clinic)
        await clinic.schedule_appointment(
            patient_id=patient.id,
            provider="dr-smith",
            reason="Exam",
            start_at=utc(2025, 3, 10, 9),
            end_at=utc(2025, 3, 10, 10),
        )
        await clinic.schedule_appointment(
            patient_id=patient.id,
            provider="dr-smith",
            reason="Next day",
            start_at=utc(2025, 3, 11, 9),
            end_at=utc(2025, 3, 11, 10),
        )
        await clinic.upsert_recall(patient_id=patient.id, recall_type="prophy", interval_months=6, due_date=utc(2025, 3, 10, 15))
        await clinic.upsert_task(title="Urgent", actor_user_id="u", priority=TaskPriority.URGENT)
        await clinic.upsert_task(title="Normal", actor_user_id="u")
        await clinic.upsert_task(title="Done", actor_user_id="u", priority=TaskPriority.URGENT, status=TaskStatus.DONE)

        dashboard = await clinic.get_dashboard(date(2025, 3, 10))

        assert [a.reason for a in dashboard.schedule] == ["Exam"]
        assert len(dashboard.recalls_due) == 1
        assert dashboard.open_tasks == 2
        assert dashboard.urgent_tasks == 1
        assert dashboard.to_dict()["date"] == "2025-03-10"

    @pytest.mark.asyncio
    async def test_patient_workspace(self, clinic, benefits, ledger, family):
        patient = await add_patient(clinic)
        child = await add_patient(clinic, "Byron")
        await family.upsert_family(
            guarantor_patient_id=patient.id, member_patient_id=child.id, relation_to_guarantor="child",
        )
        await benefits.upsert_insurance_plan(
            patient_id=patient.id,
            tier=InsuranceTier.PRIMARY,
            carrier="Delta Dental",
            subscriber_name="Ada Lovelace",
            subscriber_id="S1",
            relation_to_subscriber="self",
        )
        plan = await benefits.create_treatment_plan(patient_id=patient.id, heading="Phase 1")
        await benefits.add_treatment_plan_item(
            plan_id=plan.id, patient_id=patient.id, ada_code="D1110", description="Prophy", fee=90.0,
        )
        await ledger.post_ledger_entry(
            patient_id=patient.id, type=LedgerEntryType.CHARGE, amount=90.0, description="Prophy", created_by="u",
        )
        await clinic.add_chart_entry(patient_id=patient.id, note="Healthy gingiva", provider="dr-smith")
        await clinic.ingest_dental_image(
            patient_id=patient.id, modality=DentalModality.PANORAMIC, image_url="s3://pano.png",
        )

        workspace = await clinic.get_patient_workspace(patient.id)

        assert workspace.patient.id == patient.id
        assert workspace.family.guarantor_patient_id == patient.id
        assert len(workspace.insurance_plans) == 1
        assert len(workspace.treatment_plans[0].items) == 1
        assert workspace.account.totals.charges == 90.0
        assert workspace.chart[0].note == "Healthy gingiva"
        assert workspace.images[0].modality == DentalModality.PANORAMIC
        assert workspace.appointments == []

    @pytest.mark.asyncio
    async def test_workspace_for_unknown_patient(self, clinic):
        with pytest.raises(NotFoundError):
            await clinic.get_patient_workspace("missing")
