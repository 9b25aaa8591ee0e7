"""Patient and family API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops.api.dependencies import get_actions
from clinic_ops.api.requests import (
    PatientQueryRequest,
    SearchPatientsRequest,
    UpsertFamilyMemberRequest,
    UpsertPatientRequest,
)
from clinic_ops.api.responses import to_response
from clinic_ops.services.actions import ClinicActions

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.post("/upsert")
async def upsert_patient(
    request: UpsertPatientRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Create or update patient demographics."""
    patient = await actions.upsert_patient(request.actor.to_actor(), **request.operation_fields())
    return to_response(patient=patient)


@router.post("/search")
async def search_patients(
    request: SearchPatientsRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """
    Search patients by name, phone, date of birth or external id.

    Requires a purpose of use when sensitive-read enforcement is on.
    """
    patients = await actions.search_patients(request.actor.to_actor(), **request.operation_fields())
    return to_response(patients=patients, count=len(patients))


@router.post("/family")
async def upsert_family_member(
    request: UpsertFamilyMemberRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Link a patient to a guarantor's family."""
    family = await actions.upsert_family_member(request.actor.to_actor(), **request.operation_fields())
    return to_response(family=family)


@router.post("/workspace")
async def get_patient_workspace(
    request: PatientQueryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Everything on file for one patient."""
    return await actions.get_patient_workspace(request.actor.to_actor(), request.patient_id)
