"""Role-based authorization policy and purpose-of-use checks.

The policy is a static role -> permission-set table. It is evaluated,
never mutated, at runtime.
"""
from enum import Enum
from typing import Dict, FrozenSet

from clinic_ops.exceptions import AuthorizationError, ValidationError
from clinic_ops.models.enums import UserRole
from clinic_ops.models.records import Actor

MIN_PURPOSE_LENGTH = 8


class Permission(str, Enum):
    """Permission tags, formatted as resource:verb."""
    PATIENT_READ = "patient:read"
    PATIENT_WRITE = "patient:write"
    APPOINTMENT_READ = "appointment:read"
    APPOINTMENT_WRITE = "appointment:write"
    INSURANCE_READ = "insurance:read"
    INSURANCE_WRITE = "insurance:write"
    TREATMENT_READ = "treatment:read"
    TREATMENT_WRITE = "treatment:write"
    LEDGER_READ = "ledger:read"
    LEDGER_WRITE = "ledger:write"
    CHART_READ = "chart:read"
    CHART_WRITE = "chart:write"
    RECALL_READ = "recall:read"
    RECALL_WRITE = "recall:write"
    TASK_READ = "task:read"
    TASK_WRITE = "task:write"
    COMMUNICATION_READ = "communication:read"
    COMMUNICATION_WRITE = "communication:write"
    IMAGE_READ = "image:read"
    IMAGE_WRITE = "image:write"
    IMAGE_ANALYZE = "image:analyze"
    MIGRATION_WRITE = "migration:write"
    AUDIT_READ = "audit:read"


ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

_P = Permission

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.ADMIN: ALL_PERMISSIONS,
    UserRole.SYSTEM: ALL_PERMISSIONS,
    UserRole.DENTIST: frozenset({
        _P.PATIENT_READ, _P.PATIENT_WRITE,
        _P.APPOINTMENT_READ, _P.APPOINTMENT_WRITE,
        _P.INSURANCE_READ,
        _P.TREATMENT_READ, _P.TREATMENT_WRITE,
        _P.LEDGER_READ,
        _P.CHART_READ, _P.CHART_WRITE,
        _P.RECALL_READ, _P.RECALL_WRITE,
        _P.TASK_READ, _P.TASK_WRITE,
        _P.COMMUNICATION_READ, _P.COMMUNICATION_WRITE,
        _P.IMAGE_READ, _P.IMAGE_WRITE, _P.IMAGE_ANALYZE,
    }),
    UserRole.HYGIENIST: frozenset({
        _P.PATIENT_READ,
        _P.APPOINTMENT_READ, _P.APPOINTMENT_WRITE,
        _P.INSURANCE_READ,
        _P.TREATMENT_READ,
        _P.CHART_READ, _P.CHART_WRITE,
        _P.RECALL_READ, _P.RECALL_WRITE,
        _P.TASK_READ, _P.TASK_WRITE,
        _P.COMMUNICATION_READ, _P.COMMUNICATION_WRITE,
        _P.IMAGE_READ, _P.IMAGE_WRITE, _P.IMAGE_ANALYZE,
    }),
    UserRole.ASSISTANT: frozenset({
        _P.PATIENT_READ,
        _P.APPOINTMENT_READ, _P.APPOINTMENT_WRITE,
        _P.TREATMENT_READ,
        _P.CHART_READ, _P.CHART_WRITE,
        _P.TASK_READ, _P.TASK_WRITE,
        _P.COMMUNICATION_READ, _P.COMMUNICATION_WRITE,
        _P.IMAGE_READ, _P.IMAGE_WRITE, _P.IMAGE_ANALYZE,
    }),
    UserRole.FRONT_DESK: frozenset({
        _P.PATIENT_READ, _P.PATIENT_WRITE,
        _P.APPOINTMENT_READ, _P.APPOINTMENT_WRITE,
        _P.INSURANCE_READ,
        _P.RECALL_READ, _P.RECALL_WRITE,
        _P.TASK_READ, _P.TASK_WRITE,
        _P.COMMUNICATION_READ, _P.COMMUNICATION_WRITE,
    }),
    UserRole.BILLING: frozenset({
        _P.PATIENT_READ,
        _P.APPOINTMENT_READ,
        _P.INSURANCE_READ, _P.INSURANCE_WRITE,
        _P.TREATMENT_READ,
        _P.LEDGER_READ, _P.LEDGER_WRITE,
        _P.COMMUNICATION_READ, _P.COMMUNICATION_WRITE,
        _P.TASK_READ, _P.TASK_WRITE,
    }),
    UserRole.READONLY: frozenset({
        _P.PATIENT_READ,
        _P.APPOINTMENT_READ,
        _P.INSURANCE_READ,
        _P.TREATMENT_READ,
        _P.LEDGER_READ,
        _P.CHART_READ,
        _P.RECALL_READ,
        _P.TASK_READ,
        _P.COMMUNICATION_READ,
        _P.IMAGE_READ,
    }),
}

# Roles that see full patient demographics; everyone else gets the redacted view.
FULL_DEMOGRAPHIC_ROLES: FrozenSet[UserRole] = frozenset({
    UserRole.ADMIN,
    UserRole.DENTIST,
    UserRole.HYGIENIST,
    UserRole.ASSISTANT,
    UserRole.FRONT_DESK,
    UserRole.BILLING,
    UserRole.SYSTEM,
})

REDACTED_PATIENT_FIELDS = ("id", "first_name", "last_name", "date_of_birth")


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Return True when the role's permission set contains the permission."""
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def assert_authorized(actor: Actor, permission: Permission) -> None:
    """
    Fail closed when the actor's role lacks the permission.

    Raises:
        AuthorizationError: If the role's set excludes the permission
    """
    if not has_permission(actor.role, permission):
        raise AuthorizationError(
            f"Actor {actor.user_id} ({actor.role.value}) is not authorized for {permission.value}"
        )


def require_purpose(actor: Actor, reason: str) -> None:
    """
    Require a purpose-of-use statement of at least eight characters.

    Raises:
        ValidationError: If actor.purpose is missing or too short
    """
    if not actor.purpose or len(actor.purpose.strip()) < MIN_PURPOSE_LENGTH:
        raise ValidationError(
            f"Purpose of use is required ({reason}). "
            f"Provide actor.purpose with at least {MIN_PURPOSE_LENGTH} characters."
        )


def redact_patient_for_role(actor: Actor, patient: dict) -> dict:
    """Strip contact, insurance and metadata fields for roles without full access."""
    if actor.role in FULL_DEMOGRAPHIC_ROLES:
        return patient
    return {key: patient.get(key) for key in REDACTED_PATIENT_FIELDS}
