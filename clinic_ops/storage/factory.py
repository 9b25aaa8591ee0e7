"""Backend selection for the dental store and clinic repository."""
from typing import Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.config.settings import Settings
from clinic_ops.storage.database import Database
from clinic_ops.storage.interfaces import ClinicOpsRepository, DentalStore
from clinic_ops.storage.memory_repository import InMemoryClinicOpsRepository
from clinic_ops.storage.memory_store import InMemoryDentalStore
from clinic_ops.storage.sql_repository import SqlClinicOpsRepository
from clinic_ops.storage.sql_store import SqlDentalStore

logger = get_logger(__name__)


def create_database(settings: Settings) -> Optional[Database]:
    """
    Build the SQL database handle when the sql backend is configured.

    Falls back to the in-memory backend, with a warning, when no
    database URL is available.
    """
    if settings.data_backend != "sql":
        return None
    if not settings.database_url:
        logger.warning("DATA_BACKEND=sql but DATABASE_URL is not set; using in-memory storage")
        return None
    return Database(settings.database_url)


def create_dental_store(database: Optional[Database]) -> DentalStore:
    if database is None:
        logger.info("Using in-memory dental store")
        return InMemoryDentalStore()
    logger.info("Using SQL dental store")
    return SqlDentalStore(database)


def create_clinic_ops_repository(database: Optional[Database]) -> ClinicOpsRepository:
    if database is None:
        logger.info("Using in-memory clinic operations repository")
        return InMemoryClinicOpsRepository()
    logger.info("Using SQL clinic operations repository")
    return SqlClinicOpsRepository(database)
