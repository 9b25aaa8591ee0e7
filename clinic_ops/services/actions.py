"""Authorized entry points for every engine operation.

Each method names its permission, audit action and resource type, and
marks purpose-of-use reads as sensitive. Callers outside the engine
should go through this facade rather than the underlying services.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from clinic_ops.models.audit import AuditEvent
from clinic_ops.models.enums import AppointmentStatus, TaskStatus
from clinic_ops.models.records import (
    Actor,
    AppointmentRecord,
    ChartEntryRecord,
    CommunicationLogRecord,
    DentalImageRecord,
    FamilyRecord,
    InsurancePlanRecord,
    LedgerEntryRecord,
    PatientRecord,
    RecallRecord,
    ScheduleBlockRecord,
    TaskRecord,
    TreatmentPlanItemRecord,
    TreatmentPlanRecord,
)
from clinic_ops.models.snapshot import PracticeSnapshot
from clinic_ops.security.permissions import Permission, redact_patient_for_role
from clinic_ops.services.authorized_action import AuthorizedActionRunner
from clinic_ops.services.benefits import BenefitEstimationService, PlanEstimate
from clinic_ops.services.clinic_ops_service import ClinicOpsService, Dashboard
from clinic_ops.services.family import FamilyLinker
from clinic_ops.services.ledger import AccountLedgerService, AccountSnapshot
from clinic_ops.services.migration import ImportResult, SnapshotImporter
from clinic_ops.services.scheduling import BookingResult, SchedulingService, TimeSlot
from clinic_ops.storage.audit_log import AuditLog


class ClinicActions:
    """Runs each operation through the authorized-action wrapper."""

    def __init__(
        self,
        runner: AuthorizedActionRunner,
        audit_log: AuditLog,
        clinic: ClinicOpsService,
        scheduling: SchedulingService,
        benefits: BenefitEstimationService,
        ledger: AccountLedgerService,
        family: FamilyLinker,
        importer: SnapshotImporter,
    ):
        self.runner = runner
        self.audit_log = audit_log
        self.clinic = clinic
        self.scheduling = scheduling
        self.benefits = benefits
        self.ledger = ledger
        self.family = family
        self.importer = importer

    # Patients

    async def upsert_patient(self, actor: Actor, **fields: Any) -> PatientRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.PATIENT_WRITE,
            action="upsert-patient",
            resource_type="patient",
            resource_id=fields.get("patient_id"),
            work=lambda: self.clinic.upsert_patient(**fields),
        )

    async def search_patients(self, actor: Actor, **criteria: Any) -> List[Dict[str, Any]]:
        """Search patients; results are redacted for roles without full demographics."""
        patients = await self.runner.run(
            actor=actor,
            permission=Permission.PATIENT_READ,
            action="search-patients",
            resource_type="patient",
            sensitive=True,
            work=lambda: self.clinic.search_patients(**criteria),
        )
        return [redact_patient_for_role(actor, p.to_dict()) for p in patients]

    async def upsert_family_member(self, actor: Actor, **fields: Any) -> FamilyRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.PATIENT_WRITE,
            action="upsert-family-member",
            resource_type="family",
            resource_id=fields.get("family_id"),
            work=lambda: self.family.upsert_family(**fields),
        )

    # Scheduling

    async def schedule_appointment(self, actor: Actor, **fields: Any) -> AppointmentRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_WRITE,
            action="schedule-appointment",
            resource_type="appointment",
            work=lambda: self.clinic.schedule_appointment(**fields),
        )

    async def set_appointment_status(
        self,
        actor: Actor,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> AppointmentRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_WRITE,
            action="set-appointment-status",
            resource_type="appointment",
            resource_id=appointment_id,
            metadata={"status": status},
            work=lambda: self.clinic.set_appointment_status(appointment_id, status),
        )

    async def add_provider_schedule_block(self, actor: Actor, **fields: Any) -> ScheduleBlockRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_WRITE,
            action="add-provider-schedule-block",
            resource_type="schedule-block",
            resource_id=fields.get("block_id"),
            work=lambda: self.scheduling.upsert_schedule_block(**fields),
        )

    async def find_open_slots(self, actor: Actor, **criteria: Any) -> List[TimeSlot]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_READ,
            action="find-open-slots",
            resource_type="schedule",
            metadata={"provider": criteria.get("provider"), "day": criteria.get("day")},
            work=lambda: self.scheduling.find_open_slots(**criteria),
        )

    async def book_appointment_slot(self, actor: Actor, **fields: Any) -> BookingResult:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_WRITE,
            action="book-appointment-slot",
            resource_type="appointment",
            metadata={"provider": fields.get("provider")},
            work=lambda: self.scheduling.book_appointment_from_slot(**fields),
        )

    # Imaging

    async def ingest_dental_image(self, actor: Actor, **fields: Any) -> DentalImageRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.IMAGE_WRITE,
            action="ingest-dental-image",
            resource_type="image",
            work=lambda: self.clinic.ingest_dental_image(**fields),
        )

    # Insurance and treatment plans

    async def add_insurance_plan(self, actor: Actor, **fields: Any) -> InsurancePlanRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.INSURANCE_WRITE,
            action="add-insurance-plan",
            resource_type="insurance-plan",
            resource_id=fields.get("plan_id"),
            work=lambda: self.benefits.upsert_insurance_plan(**fields),
        )

    async def list_insurance_plans(self, actor: Actor, patient_id: str) -> List[InsurancePlanRecord]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.INSURANCE_READ,
            action="list-insurance-plans",
            resource_type="insurance-plan",
            resource_id=patient_id,
            sensitive=True,
            work=lambda: self.benefits.list_insurance_plans(patient_id),
        )

    async def create_treatment_plan(self, actor: Actor, **fields: Any) -> TreatmentPlanRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.TREATMENT_WRITE,
            action="create-treatment-plan",
            resource_type="treatment-plan",
            resource_id=fields.get("plan_id"),
            work=lambda: self.benefits.create_treatment_plan(**fields),
        )

    async def add_treatment_plan_item(self, actor: Actor, **fields: Any) -> TreatmentPlanItemRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.TREATMENT_WRITE,
            action="add-treatment-plan-item",
            resource_type="treatment-plan-item",
            resource_id=fields.get("item_id"),
            metadata={"plan_id": fields.get("plan_id")},
            work=lambda: self.benefits.add_treatment_plan_item(**fields),
        )

    async def estimate_treatment_plan(self, actor: Actor, plan_id: str) -> PlanEstimate:
        return await self.runner.run(
            actor=actor,
            permission=Permission.TREATMENT_READ,
            action="estimate-treatment-plan",
            resource_type="treatment-plan",
            resource_id=plan_id,
            sensitive=True,
            work=lambda: self.benefits.estimate_treatment_plan(plan_id),
        )

    # Ledger

    async def post_ledger_entry(self, actor: Actor, **fields: Any) -> LedgerEntryRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.LEDGER_WRITE,
            action="post-ledger-entry",
            resource_type="ledger",
            resource_id=fields.get("patient_id"),
            metadata={"type": fields.get("type")},
            work=lambda: self.ledger.post_ledger_entry(created_by=actor.user_id, **fields),
        )

    async def get_account_snapshot(self, actor: Actor, patient_id: str) -> AccountSnapshot:
        return await self.runner.run(
            actor=actor,
            permission=Permission.LEDGER_READ,
            action="get-account-snapshot",
            resource_type="ledger",
            resource_id=patient_id,
            sensitive=True,
            work=lambda: self.ledger.get_account_snapshot(patient_id),
        )

    # Chart and recall

    async def add_chart_entry(self, actor: Actor, **fields: Any) -> ChartEntryRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.CHART_WRITE,
            action="add-chart-entry",
            resource_type="chart",
            resource_id=fields.get("patient_id"),
            work=lambda: self.clinic.add_chart_entry(**fields),
        )

    async def get_chart(self, actor: Actor, patient_id: str) -> List[ChartEntryRecord]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.CHART_READ,
            action="get-chart",
            resource_type="chart",
            resource_id=patient_id,
            sensitive=True,
            work=lambda: self.clinic.list_chart_entries(patient_id),
        )

    async def set_recall(self, actor: Actor, **fields: Any) -> RecallRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.RECALL_WRITE,
            action="set-recall",
            resource_type="recall",
            resource_id=fields.get("recall_id"),
            work=lambda: self.clinic.upsert_recall(**fields),
        )

    async def list_recall_due(self, actor: Actor, from_date: date, to_date: date) -> List[RecallRecord]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.RECALL_READ,
            action="list-recall-due",
            resource_type="recall",
            metadata={"from_date": from_date, "to_date": to_date},
            work=lambda: self.clinic.list_recall_due(from_date, to_date),
        )

    # Communication and tasks

    async def add_communication_log(self, actor: Actor, **fields: Any) -> CommunicationLogRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.COMMUNICATION_WRITE,
            action="add-communication-log",
            resource_type="communication",
            resource_id=fields.get("patient_id"),
            work=lambda: self.clinic.add_communication_log(created_by=actor.user_id, **fields),
        )

    async def list_communication_log(self, actor: Actor, patient_id: str) -> List[Dict[str, Any]]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.COMMUNICATION_READ,
            action="list-communication-log",
            resource_type="communication",
            resource_id=patient_id,
            sensitive=True,
            work=lambda: self.clinic.list_communication_logs(patient_id),
        )

    async def upsert_task(self, actor: Actor, **fields: Any) -> TaskRecord:
        return await self.runner.run(
            actor=actor,
            permission=Permission.TASK_WRITE,
            action="upsert-task",
            resource_type="task",
            resource_id=fields.get("task_id"),
            work=lambda: self.clinic.upsert_task(actor_user_id=actor.user_id, **fields),
        )

    async def list_tasks(
        self,
        actor: Actor,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.TASK_READ,
            action="list-tasks",
            resource_type="task",
            work=lambda: self.clinic.list_tasks(status=status, assigned_to=assigned_to, limit=limit),
        )

    # Aggregate views and administration

    async def get_dashboard(self, actor: Actor, day: date) -> Dashboard:
        return await self.runner.run(
            actor=actor,
            permission=Permission.APPOINTMENT_READ,
            action="get-dashboard",
            resource_type="dashboard",
            metadata={"day": day},
            work=lambda: self.clinic.get_dashboard(day),
        )

    async def import_snapshot(self, actor: Actor, snapshot: PracticeSnapshot) -> ImportResult:
        return await self.runner.run(
            actor=actor,
            permission=Permission.MIGRATION_WRITE,
            action="import-opendental-snapshot",
            resource_type="migration",
            metadata={"patients": len(snapshot.patients)},
            work=lambda: self.importer.import_snapshot(snapshot, actor),
        )

    async def list_audit_events(self, actor: Actor, limit: Optional[int] = None) -> List[AuditEvent]:
        return await self.runner.run(
            actor=actor,
            permission=Permission.AUDIT_READ,
            action="list-audit-events",
            resource_type="audit",
            sensitive=True,
            work=lambda: self.audit_log.list(limit),
        )

    async def get_patient_workspace(self, actor: Actor, patient_id: str) -> Dict[str, Any]:
        """Full patient view; demographics are redacted for roles without full access."""
        workspace = await self.runner.run(
            actor=actor,
            permission=Permission.PATIENT_READ,
            action="get-patient-workspace",
            resource_type="patient-workspace",
            resource_id=patient_id,
            sensitive=True,
            work=lambda: self.clinic.get_patient_workspace(patient_id),
        )
        view = workspace.to_dict()
        view["patient"] = redact_patient_for_role(actor, view["patient"])
        return view
