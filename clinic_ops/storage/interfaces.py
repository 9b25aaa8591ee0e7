"""Abstract storage contracts consumed by the engine.

Two interchangeable implementations exist for each contract: an
in-memory map store and a SQLAlchemy-backed store.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from clinic_ops.models.enums import AppointmentStatus, DentalModality, RiskLevel, TaskStatus
from clinic_ops.models.records import (
    AppointmentRecord,
    ChartEntryRecord,
    CommunicationLogRecord,
    DentalImageRecord,
    FamilyRecord,
    ImageFinding,
    InsurancePlanRecord,
    LedgerEntryRecord,
    PatientRecord,
    RecallRecord,
    ScheduleBlockRecord,
    TaskRecord,
    TreatmentPlanItemRecord,
    TreatmentPlanRecord,
    utcnow,
)


def new_id() -> str:
    """Generate a string primary key."""
    return str(uuid4())


def overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def merge_patient(
    existing: Optional[PatientRecord],
    *,
    patient_id: str,
    first_name: str,
    last_name: str,
    date_of_birth: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    insurance_carrier: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
    external_ids: Optional[Dict[str, str]] = None,
) -> PatientRecord:
    """
    Build the record an upsert should persist.

    Metadata and external ids merge over the existing record; created_at
    is preserved.
    """
    now = utcnow()
    return PatientRecord(
        id=patient_id,
        first_name=first_name,
        last_name=last_name,
        date_of_birth=date_of_birth,
        phone=phone,
        email=email,
        insurance_carrier=insurance_carrier,
        metadata={**(existing.metadata if existing else {}), **(metadata or {})},
        external_ids={**(existing.external_ids if existing else {}), **(external_ids or {})},
        created_at=existing.created_at if existing else now,
        updated_at=now,
    )


@dataclass
class ListTasksFilter:
    """Filter for task listing."""
    limit: int
    status: Optional[TaskStatus] = None
    assigned_to: Optional[str] = None


class DentalStore(ABC):
    """Patients, appointments and dental images."""

    @abstractmethod
    async def upsert_patient(
        self,
        *,
        first_name: str,
        last_name: str,
        date_of_birth: str,
        patient_id: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        insurance_carrier: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        external_ids: Optional[Dict[str, str]] = None,
    ) -> PatientRecord:
        """Create a patient or update one in place, merging metadata maps."""
        pass

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        pass

    @abstractmethod
    async def list_patients(self) -> List[PatientRecord]:
        """All patients ordered by last name."""
        pass

    @abstractmethod
    async def create_appointment(
        self,
        *,
        patient_id: str,
        provider: str,
        reason: str,
        start_at: datetime,
        end_at: datetime,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> AppointmentRecord:
        pass

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        pass

    @abstractmethod
    async def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Optional[AppointmentRecord]:
        """Return the updated appointment, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        """A patient's appointments ordered by start time."""
        pass

    @abstractmethod
    async def list_appointments_by_range(
        self,
        start_at: datetime,
        end_at: datetime,
        provider: Optional[str] = None,
    ) -> List[AppointmentRecord]:
        """Appointments overlapping [start_at, end_at), ordered by start time."""
        pass

    @abstractmethod
    async def create_dental_image(
        self,
        *,
        patient_id: str,
        modality: DentalModality,
        image_url: str,
        captured_at: Optional[datetime] = None,
        tooth_numbers: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> DentalImageRecord:
        pass

    @abstractmethod
    async def get_dental_image(self, image_id: str) -> Optional[DentalImageRecord]:
        pass

    @abstractmethod
    async def list_dental_images(self, patient_id: str) -> List[DentalImageRecord]:
        """A patient's images, most recently captured first."""
        pass

    @abstractmethod
    async def save_image_analysis(
        self,
        image_id: str,
        findings: List[ImageFinding],
        risk_level: RiskLevel,
        analyzed_at: Optional[datetime] = None,
    ) -> DentalImageRecord:
        """
        Attach analysis results to an image.

        Raises:
            NotFoundError: If the image does not exist
        """
        pass


class ClinicOpsRepository(ABC):
    """Families, insurance, treatment plans, ledger and clinical records."""

    @abstractmethod
    async def find_family_by_id(self, family_id: str) -> Optional[FamilyRecord]:
        pass

    @abstractmethod
    async def find_family_by_guarantor(self, guarantor_patient_id: str) -> Optional[FamilyRecord]:
        pass

    @abstractmethod
    async def find_family_by_patient(self, patient_id: str) -> Optional[FamilyRecord]:
        pass

    @abstractmethod
    async def save_family(self, family: FamilyRecord) -> FamilyRecord:
        pass

    @abstractmethod
    async def get_insurance_plan(self, plan_id: str) -> Optional[InsurancePlanRecord]:
        pass

    @abstractmethod
    async def save_insurance_plan(self, plan: InsurancePlanRecord) -> InsurancePlanRecord:
        pass

    @abstractmethod
    async def list_insurance_plans_by_patient(self, patient_id: str) -> List[InsurancePlanRecord]:
        """Plans ordered by tier (primary first)."""
        pass

    @abstractmethod
    async def save_treatment_plan(self, plan: TreatmentPlanRecord) -> TreatmentPlanRecord:
        pass

    @abstractmethod
    async def get_treatment_plan(self, plan_id: str) -> Optional[TreatmentPlanRecord]:
        pass

    @abstractmethod
    async def list_treatment_plans_by_patient(self, patient_id: str) -> List[TreatmentPlanRecord]:
        """Plans newest first."""
        pass

    @abstractmethod
    async def save_treatment_plan_item(self, item: TreatmentPlanItemRecord) -> TreatmentPlanItemRecord:
        pass

    @abstractmethod
    async def list_treatment_plan_items_by_plan(self, plan_id: str) -> List[TreatmentPlanItemRecord]:
        """Items ordered by priority."""
        pass

    @abstractmethod
    async def save_ledger_entry(self, entry: LedgerEntryRecord) -> LedgerEntryRecord:
        pass

    @abstractmethod
    async def list_ledger_entries_by_patient(self, patient_id: str) -> List[LedgerEntryRecord]:
        """Entries ordered by entry date ascending."""
        pass

    @abstractmethod
    async def save_chart_entry(self, entry: ChartEntryRecord) -> ChartEntryRecord:
        pass

    @abstractmethod
    async def list_chart_entries_by_patient(self, patient_id: str) -> List[ChartEntryRecord]:
        """Entries newest first."""
        pass

    @abstractmethod
    async def save_recall(self, recall: RecallRecord) -> RecallRecord:
        pass

    @abstractmethod
    async def list_recalls_due(self, from_at: datetime, to_at: datetime) -> List[RecallRecord]:
        """Recalls with from_at <= due_date <= to_at, ordered by due date."""
        pass

    @abstractmethod
    async def save_schedule_block(self, block: ScheduleBlockRecord) -> ScheduleBlockRecord:
        pass

    @abstractmethod
    async def list_schedule_blocks_by_provider_in_range(
        self,
        provider: str,
        start_at: datetime,
        end_at: datetime,
    ) -> List[ScheduleBlockRecord]:
        """A provider's blocks overlapping [start_at, end_at), ordered by start time."""
        pass

    @abstractmethod
    async def save_communication_log(self, log: CommunicationLogRecord) -> CommunicationLogRecord:
        pass

    @abstractmethod
    async def list_communication_logs_by_patient(self, patient_id: str) -> List[CommunicationLogRecord]:
        """Logs newest first."""
        pass

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[TaskRecord]:
        pass

    @abstractmethod
    async def save_task(self, task: TaskRecord) -> TaskRecord:
        pass

    @abstractmethod
    async def list_tasks(self, task_filter: ListTasksFilter) -> List[TaskRecord]:
        """Tasks most recently updated first, truncated to the filter limit."""
        pass
