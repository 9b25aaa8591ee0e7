"""Tests for the role policy, purpose-of-use checks and redaction."""
import pytest

from clinic_ops.exceptions import AuthorizationError, ValidationError
from clinic_ops.models.enums import UserRole
from clinic_ops.models.records import Actor
from clinic_ops.security.permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    Permission,
    assert_authorized,
    has_permission,
    redact_patient_for_role,
    require_purpose,
)


class TestRolePolicy:

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SYSTEM])
    def test_admin_and_system_hold_every_permission(self, role):
        assert ROLE_PERMISSIONS[role] == ALL_PERMISSIONS

    def test_every_role_has_a_policy_entry(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_readonly_has_no_write_permissions(self):
        writes = {p for p in ROLE_PERMISSIONS[UserRole.READONLY] if p.value.endswith((":write", ":analyze"))}
        assert writes == set()

    def test_front_desk_cannot_write_ledger(self):
        assert not has_permission(UserRole.FRONT_DESK, Permission.LEDGER_WRITE)

    def test_billing_can_write_ledger_and_insurance(self):
        assert has_permission(UserRole.BILLING, Permission.LEDGER_WRITE)
        assert has_permission(UserRole.BILLING, Permission.INSURANCE_WRITE)

    def test_only_admin_and_system_import_snapshots(self):
        holders = {role for role in UserRole if has_permission(role, Permission.MIGRATION_WRITE)}
        assert holders == {UserRole.ADMIN, UserRole.SYSTEM}

    def test_assert_authorized_fails_closed(self):
        actor = Actor(user_id="ro-1", role=UserRole.READONLY)
        with pytest.raises(AuthorizationError) as exc_info:
            assert_authorized(actor, Permission.PATIENT_WRITE)
        assert "patient:write" in str(exc_info.value)

    def test_assert_authorized_passes_for_granted_permission(self):
        assert_authorized(Actor(user_id="dr-1", role=UserRole.DENTIST), Permission.CHART_WRITE)


class TestRequirePurpose:

    @pytest.mark.parametrize("purpose", [None, "", "short", "   spaced   "])
    def test_missing_or_short_purpose_is_rejected(self, purpose):
        actor = Actor(user_id="u", role=UserRole.ADMIN, purpose=purpose)
        with pytest.raises(ValidationError):
            require_purpose(actor, "sensitive read operation")

    def test_eight_characters_is_enough(self):
        require_purpose(Actor(user_id="u", role=UserRole.ADMIN, purpose="billing1"), "sensitive read operation")


class TestRedaction:

    PATIENT = {
        "id": "p-1",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "date_of_birth": "1990-12-10",
        "phone": "555-0100",
        "email": "ada@example.com",
        "metadata": {"note": "x"},
    }

    def test_readonly_sees_only_identity_fields(self):
        actor = Actor(user_id="ro", role=UserRole.READONLY)
        assert redact_patient_for_role(actor, self.PATIENT) == {
            "id": "p-1",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "date_of_birth": "1990-12-10",
        }

    def test_clinical_roles_see_everything(self):
        actor = Actor(user_id="dr", role=UserRole.DENTIST)
        assert redact_patient_for_role(actor, self.PATIENT) == self.PATIENT
