"""Appointment status transition table."""
from typing import Dict, FrozenSet

from clinic_ops.exceptions import ValidationError
from clinic_ops.models.enums import AppointmentStatus

# Every status may currently move to every status, including itself.
ALLOWED_APPOINTMENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    status: frozenset(AppointmentStatus) for status in AppointmentStatus
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_APPOINTMENT_TRANSITIONS.get(current, frozenset())


def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Validate an appointment status change.

    Raises:
        ValidationError: If the table does not allow current -> target
    """
    if not can_transition(current, target):
        allowed = ", ".join(sorted(s.value for s in ALLOWED_APPOINTMENT_TRANSITIONS.get(current, ())))
        raise ValidationError(
            f"Appointment cannot move from {current.value} to {target.value}. "
            f"Allowed: {allowed or 'none'}"
        )
