"""Test helpers shared across unit and integration tests."""
from datetime import datetime, timezone

TEST_PHI_KEY = "test-phi-encryption-key"
CLINICAL_PURPOSE = "treatment planning review"


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
