"""Enumeration types for clinic operations."""
from enum import Enum


class UserRole(str, Enum):
    """Roles an actor can present."""
    ADMIN = "admin"
    DENTIST = "dentist"
    HYGIENIST = "hygienist"
    ASSISTANT = "assistant"
    FRONT_DESK = "front-desk"
    BILLING = "billing"
    READONLY = "readonly"
    SYSTEM = "system"


class AppointmentStatus(str, Enum):
    """Lifecycle of an appointment."""
    SCHEDULED = "scheduled"
    CHECKED_IN = "checked-in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScheduleBlockType(str, Enum):
    """Provider time-range markers. Only AVAILABLE opens time; the rest block it."""
    AVAILABLE = "available"
    BOOKED = "booked"
    BREAK = "break"
    HOLD = "hold"


BLOCKING_BLOCK_TYPES = frozenset({
    ScheduleBlockType.BOOKED,
    ScheduleBlockType.BREAK,
    ScheduleBlockType.HOLD,
})


class DentalModality(str, Enum):
    """Imaging modalities."""
    BITEWING = "bitewing"
    PERIAPICAL = "periapical"
    PANORAMIC = "panoramic"
    CBCT = "cbct"
    INTRAORAL_PHOTO = "intraoral-photo"


class RiskLevel(str, Enum):
    """Triage risk of an image finding."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class InsuranceTier(str, Enum):
    """Coordination-of-benefits order."""
    PRIMARY = "primary"
    SECONDARY = "secondary"


class BenefitCategory(str, Enum):
    """Billing categories used to look up a coverage percentage."""
    PREVENTIVE = "preventive"
    RESTORATIVE = "restorative"
    ENDODONTIC = "endodontic"
    PERIODONTAL = "periodontal"
    ORAL_SURGERY = "oral-surgery"
    CROWNS = "crowns"
    PROSTHODONTICS = "prosthodontics"


class TreatmentPlanStatus(str, Enum):
    ACTIVE = "active"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TreatmentPlanItemStatus(str, Enum):
    PROPOSED = "proposed"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    REMOVED = "removed"


class LedgerEntryType(str, Enum):
    """Kinds of account ledger postings."""
    CHARGE = "charge"
    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"
    CLAIM = "claim"
    INSURANCE_PAYMENT = "insurance-payment"


class AgingBucket(str, Enum):
    """Day-count ranges for outstanding charges."""
    CURRENT = "0-30"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    OVER_90 = "over-90"


class CommunicationType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    LETTER = "letter"
    IN_PERSON = "in-person"


class CommunicationDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class RecallStatus(str, Enum):
    DUE = "due"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
