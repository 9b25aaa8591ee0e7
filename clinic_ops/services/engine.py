"""Wiring of stores, cipher, audit log and services into one engine."""
from dataclasses import dataclass
from typing import Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.config.settings import Settings
from clinic_ops.security.cipher import TextCipher, create_text_cipher
from clinic_ops.services.actions import ClinicActions
from clinic_ops.services.authorized_action import AuthorizedActionRunner
from clinic_ops.services.benefits import BenefitEstimationService
from clinic_ops.services.clinic_ops_service import ClinicOpsService
from clinic_ops.services.family import FamilyLinker
from clinic_ops.services.ledger import AccountLedgerService
from clinic_ops.services.migration import SnapshotImporter
from clinic_ops.services.scheduling import SchedulingService
from clinic_ops.storage.audit_log import AuditLog
from clinic_ops.storage.database import Database
from clinic_ops.storage.factory import create_clinic_ops_repository, create_database, create_dental_store
from clinic_ops.storage.interfaces import ClinicOpsRepository, DentalStore

logger = get_logger(__name__)


@dataclass
class ClinicEngine:
    """One engine per hosting process; nothing here is a module global."""
    settings: Settings
    store: DentalStore
    repository: ClinicOpsRepository
    database: Optional[Database]
    text_cipher: TextCipher
    audit_log: AuditLog
    actions: ClinicActions

    @property
    def data_backend(self) -> str:
        return "sql" if self.database is not None else "memory"

    async def startup(self) -> None:
        if self.database is not None:
            await self.database.init_db()

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.dispose()


def build_engine(
    settings: Settings,
    store: Optional[DentalStore] = None,
    repository: Optional[ClinicOpsRepository] = None,
) -> ClinicEngine:
    """
    Assemble the engine from settings.

    Args:
        settings: Process configuration
        store: Pre-built dental store, overriding the configured backend
        repository: Pre-built repository, overriding the configured backend

    Returns:
        A ready engine; call ``startup()`` before serving SQL-backed traffic
    """
    database = None
    if store is None or repository is None:
        database = create_database(settings)
    store = store or create_dental_store(database)
    repository = repository or create_clinic_ops_repository(database)

    text_cipher = create_text_cipher(settings.phi_encryption_key)
    audit_log = AuditLog(default_limit=settings.audit_list_default_limit)
    runner = AuthorizedActionRunner(
        audit_log,
        require_purpose_on_sensitive_reads=settings.require_purpose_on_sensitive_reads,
    )

    scheduling = SchedulingService(store, repository)
    benefits = BenefitEstimationService(repository)
    ledger = AccountLedgerService(repository)
    family = FamilyLinker(store, repository)
    clinic = ClinicOpsService(store, repository, text_cipher, scheduling, benefits, ledger, family)
    importer = SnapshotImporter(store, family, benefits, ledger)

    actions = ClinicActions(
        runner=runner,
        audit_log=audit_log,
        clinic=clinic,
        scheduling=scheduling,
        benefits=benefits,
        ledger=ledger,
        family=family,
        importer=importer,
    )
    logger.info(
        "Clinic engine built",
        data_backend="sql" if database is not None else "memory",
        phi_encryption=text_cipher.enabled,
        require_purpose=settings.require_purpose_on_sensitive_reads,
    )
    return ClinicEngine(
        settings=settings,
        store=store,
        repository=repository,
        database=database,
        text_cipher=text_cipher,
        audit_log=audit_log,
        actions=actions,
    )
