"""Engine services."""
from .authorized_action import AuthorizedActionRunner
from .scheduling import SchedulingService, TimeSlot, BookingResult, overlap, generate_time_slots
from .benefits import BenefitEstimationService, PlanEstimate, category_for_ada_code, clamp_percent
from .ledger import AccountLedgerService, AccountSnapshot, bucket_by_age
from .family import FamilyLinker
from .clinic_ops_service import ClinicOpsService, Dashboard, PatientWorkspace
from .migration import SnapshotImporter, ImportResult
from .actions import ClinicActions
from .engine import ClinicEngine, build_engine

__all__ = [
    "AuthorizedActionRunner",
    "SchedulingService",
    "TimeSlot",
    "BookingResult",
    "overlap",
    "generate_time_slots",
    "BenefitEstimationService",
    "PlanEstimate",
    "category_for_ada_code",
    "clamp_percent",
    "AccountLedgerService",
    "AccountSnapshot",
    "bucket_by_age",
    "FamilyLinker",
    "ClinicOpsService",
    "Dashboard",
    "PatientWorkspace",
    "SnapshotImporter",
    "ImportResult",
    "ClinicActions",
    "ClinicEngine",
    "build_engine",
]
