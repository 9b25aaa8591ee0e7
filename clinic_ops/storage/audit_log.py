"""Append-only audit log of authorized-action outcomes."""
from typing import Dict, List, Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.models.audit import AuditEvent
from clinic_ops.models.enums import UserRole

logger = get_logger(__name__)


class AuditLog:
    """
    In-memory audit sink.

    Events are never mutated or removed once appended. The log does not
    survive a process restart.
    """

    def __init__(self, default_limit: int = 100):
        self._events: List[AuditEvent] = []
        self.default_limit = default_limit

    async def log(
        self,
        actor_user_id: str,
        actor_role: UserRole,
        action: str,
        resource_type: str,
        success: bool,
        resource_id: Optional[str] = None,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> AuditEvent:
        """
        Append an event stamped with a fresh id and the current time.

        Args:
            actor_user_id: User that invoked the action
            actor_role: Role the user presented
            action: Operation name
            resource_type: Kind of resource touched
            success: Whether the unit of work completed
            resource_id: Resource identifier, if known
            reason: Error message for failures
            metadata: String-valued context

        Returns:
            The appended event
        """
        event = AuditEvent(
            actor_user_id=actor_user_id,
            actor_role=actor_role,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            success=success,
            reason=reason,
            metadata=metadata or {},
        )
        self._events.append(event)

        log = logger.info if success else logger.warning
        log(
            "Audit event recorded",
            audit_id=event.id,
            action=action,
            actor=actor_user_id,
            role=actor_role.value,
            resource_type=resource_type,
            resource_id=resource_id,
            success=success,
        )
        return event

    async def list(self, limit: Optional[int] = None) -> List[AuditEvent]:
        """Return up to ``limit`` events, most recent first. Limit is floored at 1."""
        limit = max(1, limit if limit is not None else self.default_limit)
        return list(reversed(self._events))[:limit]

    def __len__(self) -> int:
        return len(self._events)
