"""Audit trail models for action tracking."""
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .enums import UserRole


class AuditEvent(BaseModel):
    """An immutable record of one authorized-action outcome."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Who
    actor_user_id: str = Field(..., description="User that invoked the action")
    actor_role: UserRole = Field(..., description="Role presented by the actor")

    # What
    action: str = Field(..., description="Operation name, e.g. book-appointment-slot")
    resource_type: str = Field(..., description="Kind of resource touched")
    resource_id: Optional[str] = Field(default=None, description="Identifier of the resource, if known")

    # Outcome
    success: bool = Field(..., description="Whether the unit of work completed")
    reason: Optional[str] = Field(default=None, description="Error message when success is false")
    metadata: Dict[str, str] = Field(default_factory=dict)
