"""Response helpers for API endpoints."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from clinic_ops.models.records import serialize_value


def to_response(**payload: Any) -> Dict[str, Any]:
    """Serialize engine records, enums and datetimes into a JSON-safe body."""
    return {key: serialize_value(value) for key, value in payload.items()}


class ErrorResponse(BaseModel):
    """Error body returned for engine errors."""
    error: str = Field(..., description="Error type")
    detail: str = Field(..., description="Original error message")
    error_id: Optional[str] = None


class ReadinessResponse(BaseModel):
    """Deployment readiness report."""
    status: str
    app_name: str
    data_backend: str
    database_configured: bool
    phi_encryption_enabled: bool
    require_purpose_on_sensitive_reads: bool
    timestamp: str
    version: str
