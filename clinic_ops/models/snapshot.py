"""Legacy practice-management export consumed by the snapshot importer."""
from typing import List, Optional

from pydantic import BaseModel, Field

from .enums import AppointmentStatus, InsuranceTier, LedgerEntryType, TreatmentPlanStatus
from .fields import UtcDatetime


class SnapshotPatient(BaseModel):
    pat_num: str
    first_name: str
    last_name: str
    birthdate: str = Field(..., description="YYYY-MM-DD")
    phone: Optional[str] = None
    email: Optional[str] = None
    chart_number: Optional[str] = None
    guarantor_pat_num: Optional[str] = None


class SnapshotAppointment(BaseModel):
    apt_num: str
    pat_num: str
    provider: str
    reason: str
    start_at: UtcDatetime
    end_at: UtcDatetime
    status: Optional[AppointmentStatus] = None


class SnapshotInsurancePlan(BaseModel):
    plan_num: str
    pat_num: str
    tier: InsuranceTier
    carrier: str
    subscriber_name: str
    subscriber_id: str
    relation_to_subscriber: str
    group_name: Optional[str] = None
    group_number: Optional[str] = None
    annual_max: Optional[float] = None
    deductible: Optional[float] = None
    preventive: Optional[float] = None
    restorative: Optional[float] = None
    endodontic: Optional[float] = None
    periodontal: Optional[float] = None
    oral_surgery: Optional[float] = None
    crowns: Optional[float] = None
    prosthodontics: Optional[float] = None


class SnapshotTreatmentPlanItem(BaseModel):
    item_num: str
    ada_code: str
    description: str
    fee: float = Field(..., ge=0)
    tooth: Optional[str] = None
    surface: Optional[str] = None
    diagnosis: Optional[str] = None
    allowed_fee: Optional[float] = None
    priority: Optional[int] = None


class SnapshotTreatmentPlan(BaseModel):
    plan_num: str
    pat_num: str
    heading: str
    status: Optional[TreatmentPlanStatus] = None
    signed: Optional[bool] = None
    items: List[SnapshotTreatmentPlanItem] = Field(default_factory=list)


class SnapshotLedgerEntry(BaseModel):
    entry_num: str
    pat_num: str
    type: LedgerEntryType
    amount: float
    description: str
    entry_date: UtcDatetime
    claim_status: Optional[str] = None


class PracticeSnapshot(BaseModel):
    """An export keyed by legacy patient numbers (pat_num)."""
    patients: List[SnapshotPatient] = Field(default_factory=list)
    appointments: List[SnapshotAppointment] = Field(default_factory=list)
    insurance_plans: List[SnapshotInsurancePlan] = Field(default_factory=list)
    treatment_plans: List[SnapshotTreatmentPlan] = Field(default_factory=list)
    ledger_entries: List[SnapshotLedgerEntry] = Field(default_factory=list)
