"""Dental imaging API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops.api.dependencies import get_actions
from clinic_ops.api.requests import IngestDentalImageRequest
from clinic_ops.api.responses import to_response
from clinic_ops.services.actions import ClinicActions

router = APIRouter(prefix="/imaging", tags=["Imaging"])


@router.post("/ingest")
async def ingest_dental_image(
    request: IngestDentalImageRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Register an image and its modality for a patient."""
    image = await actions.ingest_dental_image(request.actor.to_actor(), **request.operation_fields())
    return to_response(image=image)
