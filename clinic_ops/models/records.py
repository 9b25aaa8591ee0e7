"""Domain records owned by the storage layer.

Records are plain dataclasses. Temporal fields are timezone-aware UTC
datetimes in memory and ISO-8601 strings on the wire and in SQL storage.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .enums import (
    AppointmentStatus,
    CommunicationDirection,
    CommunicationType,
    DentalModality,
    InsuranceTier,
    LedgerEntryType,
    RecallStatus,
    RiskLevel,
    ScheduleBlockType,
    TaskPriority,
    TaskStatus,
    TreatmentPlanItemStatus,
    TreatmentPlanStatus,
    UserRole,
)


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def serialize_value(value: Any) -> Any:
    """Recursively convert records, enums and datetimes into JSON-safe values."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: serialize_value(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "model_dump"):  # Pydantic model
        return serialize_value(value.model_dump())
    return value


class RecordMixin:
    """Adds dictionary serialization to record dataclasses."""

    def to_dict(self) -> Dict[str, Any]:
        return serialize_value(self)


@dataclass
class Actor(RecordMixin):
    """Caller identity presented with each operation. Never persisted."""
    user_id: str
    role: UserRole
    purpose: Optional[str] = None


@dataclass
class PatientRecord(RecordMixin):
    id: str
    first_name: str
    last_name: str
    date_of_birth: str
    phone: Optional[str] = None
    email: Optional[str] = None
    insurance_carrier: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    external_ids: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class AppointmentRecord(RecordMixin):
    id: str
    patient_id: str
    provider: str
    reason: str
    start_at: datetime
    end_at: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ImageFinding(RecordMixin):
    code: str
    label: str
    summary: str
    confidence: float
    risk: RiskLevel
    tooth_numbers: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageFinding":
        return cls(
            code=data["code"],
            label=data["label"],
            summary=data["summary"],
            confidence=float(data["confidence"]),
            risk=RiskLevel(data["risk"]),
            tooth_numbers=list(data.get("tooth_numbers") or []),
        )


@dataclass
class DentalImageRecord(RecordMixin):
    id: str
    patient_id: str
    modality: DentalModality
    image_url: str
    captured_at: datetime
    tooth_numbers: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    findings: List[ImageFinding] = field(default_factory=list)
    risk_level: Optional[RiskLevel] = None
    analyzed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class FamilyMember(RecordMixin):
    patient_id: str
    relation_to_guarantor: str
    is_guarantor: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FamilyMember":
        return cls(
            patient_id=data["patient_id"],
            relation_to_guarantor=data["relation_to_guarantor"],
            is_guarantor=bool(data.get("is_guarantor", False)),
        )


@dataclass
class FamilyRecord(RecordMixin):
    """
    Guarantor-based household.

    Exactly one member is the guarantor and its patient_id equals
    guarantor_patient_id.
    """
    id: str
    guarantor_patient_id: str
    members: List[FamilyMember] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def find_member(self, patient_id: str) -> Optional[FamilyMember]:
        return next((m for m in self.members if m.patient_id == patient_id), None)

    def has_member(self, patient_id: str) -> bool:
        return self.find_member(patient_id) is not None


@dataclass
class InsurancePlanRecord(RecordMixin):
    id: str
    patient_id: str
    tier: InsuranceTier
    carrier: str
    subscriber_name: str
    subscriber_id: str
    relation_to_subscriber: str
    employer: Optional[str] = None
    group_name: Optional[str] = None
    group_number: Optional[str] = None
    annual_max: Optional[float] = None
    deductible: Optional[float] = None
    # Keyed by BenefitCategory value
    benefit_percentages: Dict[str, float] = field(default_factory=dict)
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class TreatmentPlanRecord(RecordMixin):
    id: str
    patient_id: str
    heading: str
    status: TreatmentPlanStatus = TreatmentPlanStatus.ACTIVE
    signed: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class TreatmentPlanItemRecord(RecordMixin):
    """
    A proposed procedure on a treatment plan.

    insurance_est_primary, insurance_est_secondary and patient_est are
    derived values; they are only meaningful after estimation has run.
    """
    id: str
    plan_id: str
    patient_id: str
    ada_code: str
    description: str
    fee: float
    tooth: Optional[str] = None
    surface: Optional[str] = None
    diagnosis: Optional[str] = None
    allowed_fee: Optional[float] = None
    priority: int = 0
    status: TreatmentPlanItemStatus = TreatmentPlanItemStatus.PROPOSED
    insurance_est_primary: float = 0.0
    insurance_est_secondary: float = 0.0
    patient_est: float = 0.0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class LedgerEntryRecord(RecordMixin):
    """Append-only account posting."""
    id: str
    patient_id: str
    type: LedgerEntryType
    amount: float
    description: str
    entry_date: datetime
    created_by: str
    family_id: Optional[str] = None
    related_plan_item_id: Optional[str] = None
    claim_status: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ChartEntryRecord(RecordMixin):
    id: str
    patient_id: str
    entry_date: datetime
    note: str
    provider: str
    tooth: Optional[str] = None
    surface: Optional[str] = None
    diagnosis: Optional[str] = None
    procedure_code: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class RecallRecord(RecordMixin):
    id: str
    patient_id: str
    recall_type: str
    interval_months: int
    due_date: datetime
    last_visit_date: Optional[datetime] = None
    status: RecallStatus = RecallStatus.DUE
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ScheduleBlockRecord(RecordMixin):
    id: str
    provider: str
    start_at: datetime
    end_at: datetime
    block_type: ScheduleBlockType
    operatory: Optional[str] = None
    patient_id: Optional[str] = None
    appointment_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class CommunicationLogRecord(RecordMixin):
    id: str
    patient_id: str
    communication_type: CommunicationType
    direction: CommunicationDirection
    note_ciphertext: str
    created_by: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class TaskRecord(RecordMixin):
    id: str
    title: str
    created_by: str
    patient_id: Optional[str] = None
    details_ciphertext: Optional[str] = None
    assigned_to: Optional[str] = None
    due_at: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.OPEN
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
