"""Correlation id carried through one HTTP request and merged into its log lines."""
from contextvars import ContextVar
import uuid
from typing import Optional

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def resolve_correlation_id(incoming: Optional[str]) -> str:
    """Reuse the caller's id when it sent one, otherwise mint a new one."""
    if incoming and incoming.strip():
        return incoming.strip()
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Return the current request's correlation ID, or None outside a request."""
    return correlation_id_var.get()
