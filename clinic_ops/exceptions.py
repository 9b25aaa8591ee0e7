"""Error taxonomy for clinic operations.

Engine code raises these and never masks them; the HTTP layer maps each
type to a status code and passes the message through unchanged.
"""


class ClinicOpsError(Exception):
    """Base class for all engine errors."""
    pass


class AuthorizationError(ClinicOpsError):
    """Raised when an actor's role lacks the required permission."""
    pass


class ValidationError(ClinicOpsError):
    """Raised for missing purpose-of-use or malformed input."""
    pass


class NotFoundError(ClinicOpsError):
    """Raised when a referenced patient, plan, appointment or image does not exist."""
    pass


class ConflictError(ClinicOpsError):
    """Raised when a write collides with concurrent state.

    Not raised by the engine today: schedule writes are last-write-wins.
    """
    pass
