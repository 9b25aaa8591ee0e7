"""Tests for the appointment status transition table."""
import itertools

import pytest

from clinic_ops.exceptions import ValidationError
from clinic_ops.models.enums import AppointmentStatus
from clinic_ops.services import transitions
from clinic_ops.services.transitions import can_transition, check_transition


@pytest.mark.parametrize("current,target", list(itertools.product(AppointmentStatus, repeat=2)))
def test_every_transition_is_allowed(current, target):
    assert can_transition(current, target)
    check_transition(current, target)


def test_tightened_table_rejects_transition(monkeypatch):
    monkeypatch.setitem(
        transitions.ALLOWED_APPOINTMENT_TRANSITIONS,
        AppointmentStatus.COMPLETED,
        frozenset({AppointmentStatus.COMPLETED}),
    )
    with pytest.raises(ValidationError) as exc_info:
        check_transition(AppointmentStatus.COMPLETED, AppointmentStatus.SCHEDULED)
    assert "completed" in str(exc_info.value)
