"""Request models for API endpoints."""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from clinic_ops.models.enums import (
    AppointmentStatus,
    BenefitCategory,
    CommunicationDirection,
    CommunicationType,
    DentalModality,
    InsuranceTier,
    LedgerEntryType,
    RecallStatus,
    ScheduleBlockType,
    TaskPriority,
    TaskStatus,
    TreatmentPlanStatus,
    UserRole,
)
from clinic_ops.models.fields import UtcDatetime
from clinic_ops.models.records import Actor
from clinic_ops.models.snapshot import PracticeSnapshot


class ActorModel(BaseModel):
    """Caller identity presented with every request."""
    user_id: str = Field(..., min_length=1)
    role: UserRole
    purpose: Optional[str] = Field(default=None, description="Purpose of use for sensitive reads")

    def to_actor(self) -> Actor:
        return Actor(user_id=self.user_id, role=self.role, purpose=self.purpose)


class ActorRequest(BaseModel):
    """Base for requests carrying an actor."""
    actor: ActorModel

    def operation_fields(self) -> Dict[str, Any]:
        """Everything except the actor, as keyword arguments for the engine."""
        return {name: getattr(self, name) for name in type(self).model_fields if name != "actor"}


class PatientQueryRequest(ActorRequest):
    patient_id: str


# Patients

class UpsertPatientRequest(ActorRequest):
    patient_id: Optional[str] = None
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: str = Field(..., description="YYYY-MM-DD", pattern=r"^\d{4}-\d{2}-\d{2}$")
    phone: Optional[str] = None
    email: Optional[str] = None
    insurance_carrier: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    external_ids: Optional[Dict[str, str]] = None


class SearchPatientsRequest(ActorRequest):
    query: Optional[str] = None
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    external_id: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=200)


class UpsertFamilyMemberRequest(ActorRequest):
    family_id: Optional[str] = None
    guarantor_patient_id: str
    member_patient_id: str
    relation_to_guarantor: str = Field(..., min_length=1)


# Scheduling

class ScheduleAppointmentRequest(ActorRequest):
    patient_id: str
    provider: str
    reason: str
    start_at: UtcDatetime
    end_at: UtcDatetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED


class SetAppointmentStatusRequest(ActorRequest):
    appointment_id: str
    status: AppointmentStatus


class AddScheduleBlockRequest(ActorRequest):
    block_id: Optional[str] = None
    provider: str
    operatory: Optional[str] = None
    start_at: UtcDatetime
    end_at: UtcDatetime
    block_type: ScheduleBlockType
    patient_id: Optional[str] = None
    appointment_id: Optional[str] = None
    notes: Optional[str] = None


class FindOpenSlotsRequest(ActorRequest):
    provider: str
    day: date = Field(..., description="YYYY-MM-DD")
    duration_minutes: int = Field(..., ge=5, le=480)
    interval_minutes: int = Field(default=15, ge=5, le=120)
    start_hour: int = Field(default=8, ge=0, le=23)
    end_hour: int = Field(default=17, ge=1, le=24)


class BookAppointmentSlotRequest(ActorRequest):
    patient_id: str
    provider: str
    reason: str
    start_at: UtcDatetime
    end_at: UtcDatetime
    operatory: Optional[str] = None


# Imaging

class IngestDentalImageRequest(ActorRequest):
    patient_id: str
    modality: DentalModality
    image_url: str = Field(..., min_length=1)
    captured_at: Optional[UtcDatetime] = None
    tooth_numbers: Optional[List[str]] = None
    notes: Optional[str] = None


# Billing

class AddInsurancePlanRequest(ActorRequest):
    plan_id: Optional[str] = None
    patient_id: str
    tier: InsuranceTier
    carrier: str
    employer: Optional[str] = None
    subscriber_name: str
    subscriber_id: str
    relation_to_subscriber: str
    group_name: Optional[str] = None
    group_number: Optional[str] = None
    annual_max: Optional[float] = None
    deductible: Optional[float] = None
    benefit_percentages: Optional[Dict[BenefitCategory, float]] = Field(
        default=None,
        description="Keyed by benefit category: preventive, restorative, endodontic, "
                    "periodontal, oral-surgery, crowns, prosthodontics",
    )
    notes: Optional[str] = None


class CreateTreatmentPlanRequest(ActorRequest):
    plan_id: Optional[str] = None
    patient_id: str
    heading: str
    status: TreatmentPlanStatus = TreatmentPlanStatus.ACTIVE
    signed: bool = False


class AddTreatmentPlanItemRequest(ActorRequest):
    item_id: Optional[str] = None
    plan_id: str
    patient_id: str
    tooth: Optional[str] = None
    surface: Optional[str] = None
    diagnosis: Optional[str] = None
    ada_code: str = Field(..., min_length=1)
    description: str
    fee: float = Field(..., ge=0)
    allowed_fee: Optional[float] = Field(default=None, ge=0)
    priority: int = 0


class EstimateTreatmentPlanRequest(ActorRequest):
    plan_id: str


class PostLedgerEntryRequest(ActorRequest):
    patient_id: str
    family_id: Optional[str] = None
    type: LedgerEntryType
    amount: float
    description: str
    entry_date: Optional[UtcDatetime] = None
    related_plan_item_id: Optional[str] = None
    claim_status: Optional[str] = None


# Clinical

class AddChartEntryRequest(ActorRequest):
    patient_id: str
    entry_date: Optional[UtcDatetime] = None
    tooth: Optional[str] = None
    surface: Optional[str] = None
    diagnosis: Optional[str] = None
    procedure_code: Optional[str] = None
    note: str
    provider: str


class SetRecallRequest(ActorRequest):
    recall_id: Optional[str] = None
    patient_id: str
    recall_type: str
    interval_months: int = Field(..., ge=1, le=60)
    last_visit_date: Optional[UtcDatetime] = None
    due_date: Optional[UtcDatetime] = None
    status: RecallStatus = RecallStatus.DUE


class ListRecallDueRequest(ActorRequest):
    from_date: date
    to_date: date


class AddCommunicationLogRequest(ActorRequest):
    patient_id: str
    communication_type: CommunicationType
    direction: CommunicationDirection
    note: str = Field(..., min_length=1)


class UpsertTaskRequest(ActorRequest):
    task_id: Optional[str] = None
    patient_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    details: Optional[str] = None
    assigned_to: Optional[str] = None
    due_at: Optional[UtcDatetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None


class ListTasksRequest(ActorRequest):
    status: Optional[TaskStatus] = None
    assigned_to: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=200)


class DashboardRequest(ActorRequest):
    day: date


# Administration

class ImportSnapshotRequest(ActorRequest):
    snapshot: PracticeSnapshot


class ListAuditEventsRequest(ActorRequest):
    limit: Optional[int] = Field(default=None, ge=1, le=500)
