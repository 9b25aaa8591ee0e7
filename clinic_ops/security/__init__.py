"""Authorization policy and PHI protection."""
from .permissions import (
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    assert_authorized,
    require_purpose,
    redact_patient_for_role,
)
from .cipher import TextCipher, NoOpTextCipher, AesGcmTextCipher, create_text_cipher

__all__ = [
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "assert_authorized",
    "require_purpose",
    "redact_patient_for_role",
    "TextCipher",
    "NoOpTextCipher",
    "AesGcmTextCipher",
    "create_text_cipher",
]
