"""Data models for clinic operations."""
from .enums import (
    UserRole,
    AppointmentStatus,
    ScheduleBlockType,
    BLOCKING_BLOCK_TYPES,
    DentalModality,
    RiskLevel,
    InsuranceTier,
    BenefitCategory,
    TreatmentPlanStatus,
    TreatmentPlanItemStatus,
    LedgerEntryType,
    AgingBucket,
    CommunicationType,
    CommunicationDirection,
    TaskPriority,
    TaskStatus,
    RecallStatus,
)
from .records import (
    Actor,
    PatientRecord,
    AppointmentRecord,
    ImageFinding,
    DentalImageRecord,
    FamilyMember,
    FamilyRecord,
    InsurancePlanRecord,
    TreatmentPlanRecord,
    TreatmentPlanItemRecord,
    LedgerEntryRecord,
    ChartEntryRecord,
    RecallRecord,
    ScheduleBlockRecord,
    CommunicationLogRecord,
    TaskRecord,
    utcnow,
)
from .audit import AuditEvent
from .snapshot import PracticeSnapshot

__all__ = [
    # Enums
    "UserRole",
    "AppointmentStatus",
    "ScheduleBlockType",
    "BLOCKING_BLOCK_TYPES",
    "DentalModality",
    "RiskLevel",
    "InsuranceTier",
    "BenefitCategory",
    "TreatmentPlanStatus",
    "TreatmentPlanItemStatus",
    "LedgerEntryType",
    "AgingBucket",
    "CommunicationType",
    "CommunicationDirection",
    "TaskPriority",
    "TaskStatus",
    "RecallStatus",
    # Records
    "Actor",
    "PatientRecord",
    "AppointmentRecord",
    "ImageFinding",
    "DentalImageRecord",
    "FamilyMember",
    "FamilyRecord",
    "InsurancePlanRecord",
    "TreatmentPlanRecord",
    "TreatmentPlanItemRecord",
    "LedgerEntryRecord",
    "ChartEntryRecord",
    "RecallRecord",
    "ScheduleBlockRecord",
    "CommunicationLogRecord",
    "TaskRecord",
    "utcnow",
    # Audit
    "AuditEvent",
    # Import
    "PracticeSnapshot",
]
