"""Migration, audit and readiness API routes."""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops import __version__
from clinic_ops.api.dependencies import get_actions, get_engine
from clinic_ops.api.requests import ImportSnapshotRequest, ListAuditEventsRequest
from clinic_ops.api.responses import ReadinessResponse, to_response
from clinic_ops.services.actions import ClinicActions
from clinic_ops.services.engine import ClinicEngine

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/import-snapshot")
async def import_snapshot(
    request: ImportSnapshotRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Import a legacy practice-management export."""
    result = await actions.import_snapshot(request.actor.to_actor(), request.snapshot)
    return result.to_dict()


@router.post("/audit-events")
async def list_audit_events(
    request: ListAuditEventsRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Recent audit events, most recent first."""
    events = await actions.list_audit_events(request.actor.to_actor(), request.limit)
    return to_response(events=events, count=len(events))


@router.get("/readiness", response_model=ReadinessResponse)
async def system_readiness(engine: ClinicEngine = Depends(get_engine)) -> ReadinessResponse:
    """Backend mode and PHI guardrail settings. No actor required."""
    return ReadinessResponse(
        status="ready",
        app_name=engine.settings.app_name,
        data_backend=engine.data_backend,
        database_configured=bool(engine.settings.database_url),
        phi_encryption_enabled=engine.text_cipher.enabled,
        require_purpose_on_sensitive_reads=engine.settings.require_purpose_on_sensitive_reads,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )
