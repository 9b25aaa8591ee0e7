"""
Shared fixtures for the clinic operations test suite.

Engine fixtures use the in-memory backend; SQL store tests build their own
sqlite+aiosqlite database per test.
"""
from typing import Callable, Optional

import pytest

from clinic_ops.config.settings import Settings
from clinic_ops.models.enums import UserRole
from clinic_ops.models.records import Actor
from clinic_ops.security.cipher import create_text_cipher
from clinic_ops.services.benefits import BenefitEstimationService
from clinic_ops.services.clinic_ops_service import ClinicOpsService
from clinic_ops.services.engine import ClinicEngine, build_engine
from clinic_ops.services.family import FamilyLinker
from clinic_ops.services.ledger import AccountLedgerService
from clinic_ops.services.scheduling import SchedulingService
from clinic_ops.storage.memory_repository import InMemoryClinicOpsRepository
from clinic_ops.storage.memory_store import InMemoryDentalStore
from tests.utils import CLINICAL_PURPOSE, TEST_PHI_KEY


@pytest.fixture
def settings() -> Settings:
    return Settings(
        data_backend="memory",
        phi_encryption_key=TEST_PHI_KEY,
        require_purpose_on_sensitive_reads=True,
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings) -> ClinicEngine:
    return build_engine(settings)


@pytest.fixture
def actions(engine):
    return engine.actions


@pytest.fixture
def make_actor() -> Callable[..., Actor]:
    """Factory for actors; admins carry a purpose of use unless told otherwise."""

    def _make(role: UserRole = UserRole.ADMIN, purpose: Optional[str] = CLINICAL_PURPOSE, user_id: str = "") -> Actor:
        return Actor(user_id=user_id or f"{role.value}-user", role=role, purpose=purpose)

    return _make


@pytest.fixture
def admin(make_actor) -> Actor:
    return make_actor(UserRole.ADMIN)


@pytest.fixture
def store() -> InMemoryDentalStore:
    return InMemoryDentalStore()


@pytest.fixture
def repository() -> InMemoryClinicOpsRepository:
    return InMemoryClinicOpsRepository()


@pytest.fixture
def scheduling(store, repository) -> SchedulingService:
    return SchedulingService(store, repository)


@pytest.fixture
def benefits(repository) -> BenefitEstimationService:
    return BenefitEstimationService(repository)


@pytest.fixture
def ledger(repository) -> AccountLedgerService:
    return AccountLedgerService(repository)


@pytest.fixture
def family(store, repository) -> FamilyLinker:
    return FamilyLinker(store, repository)


@pytest.fixture
def clinic(store, repository, scheduling, benefits, ledger, family) -> ClinicOpsService:
    return ClinicOpsService(
        store,
        repository,
        create_text_cipher(TEST_PHI_KEY),
        scheduling,
        benefits,
        ledger,
        family,
    )
