"""Storage module for clinic records and the audit log."""
from .interfaces import DentalStore, ClinicOpsRepository, ListTasksFilter
from .audit_log import AuditLog
from .database import Database
from .factory import create_database, create_dental_store, create_clinic_ops_repository

__all__ = [
    "DentalStore",
    "ClinicOpsRepository",
    "ListTasksFilter",
    "AuditLog",
    "Database",
    "create_database",
    "create_dental_store",
    "create_clinic_ops_repository",
]
