"""Authorization, purpose-of-use and audit around every engine operation."""
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from clinic_ops.config.logging_config import get_logger
from clinic_ops.models.records import Actor
from clinic_ops.security.permissions import Permission, assert_authorized, require_purpose
from clinic_ops.storage.audit_log import AuditLog

logger = get_logger(__name__)

T = TypeVar("T")


def metadata_to_strings(metadata: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Stringify metadata values for the audit record. None becomes an empty string."""
    if not metadata:
        return {}
    converted = {}
    for key, value in metadata.items():
        if value is None:
            converted[key] = ""
        elif isinstance(value, bool):
            converted[key] = "true" if value else "false"
        elif isinstance(value, Enum):
            converted[key] = str(value.value)
        else:
            converted[key] = str(value)
    return converted


class AuthorizedActionRunner:
    """
    Single entry point for mutating and sensitive-read operations.

    Each call appends exactly one audit event for any outcome, cancellation
    included. Errors are re-raised unchanged; partial writes made by the
    unit of work are not undone.
    """

    def __init__(self, audit_log: AuditLog, require_purpose_on_sensitive_reads: bool = True):
        self.audit_log = audit_log
        self.require_purpose_on_sensitive_reads = require_purpose_on_sensitive_reads

    async def run(
        self,
        *,
        actor: Actor,
        permission: Permission,
        action: str,
        resource_type: str,
        work: Callable[[], Awaitable[T]],
        resource_id: Optional[str] = None,
        sensitive: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> T:
        """
        Authorize, optionally check purpose-of-use, run the work and audit it.

        Args:
            actor: Caller identity
            permission: Permission the operation requires
            action: Operation name recorded in the audit trail
            resource_type: Kind of resource touched
            work: Zero-argument coroutine factory performing the operation
            resource_id: Resource identifier, if known up front
            sensitive: Whether this is a purpose-of-use read
            metadata: Extra context; values are stringified

        Returns:
            Whatever the unit of work returns

        Raises:
            AuthorizationError: If the actor's role lacks the permission
            ValidationError: If a required purpose-of-use is missing
        """
        audit_metadata = metadata_to_strings(metadata)
        try:
            assert_authorized(actor, permission)
            if sensitive and self.require_purpose_on_sensitive_reads:
                require_purpose(actor, "sensitive read operation")
            result = await work()
        except BaseException as e:
            await self.audit_log.log(
                actor_user_id=actor.user_id,
                actor_role=actor.role,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                success=False,
                reason=str(e) or type(e).__name__,
                metadata=audit_metadata,
            )
            logger.warning(
                "Action failed",
                action=action,
                actor=actor.user_id,
                role=actor.role.value,
                resource_type=resource_type,
                resource_id=resource_id,
                error_type=type(e).__name__,
            )
            raise

        await self.audit_log.log(
            actor_user_id=actor.user_id,
            actor_role=actor.role,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            success=True,
            metadata=audit_metadata,
        )
        logger.debug("Action completed", action=action, actor=actor.user_id, resource_type=resource_type)
        return result
