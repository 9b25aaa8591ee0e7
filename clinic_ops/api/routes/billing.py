"""Insurance, treatment plan and ledger API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops.api.dependencies import get_actions
from clinic_ops.api.requests import (
    AddInsurancePlanRequest,
    AddTreatmentPlanItemRequest,
    CreateTreatmentPlanRequest,
    EstimateTreatmentPlanRequest,
    PatientQueryRequest,
    PostLedgerEntryRequest,
)
from clinic_ops.api.responses import to_response
from clinic_ops.services.actions import ClinicActions

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post("/insurance-plans")
async def add_insurance_plan(
    request: AddInsurancePlanRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    plan = await actions.add_insurance_plan(request.actor.to_actor(), **request.operation_fields())
    return to_response(plan=plan)


@router.post("/insurance-plans/list")
async def list_insurance_plans(
    request: PatientQueryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    plans = await actions.list_insurance_plans(request.actor.to_actor(), request.patient_id)
    return to_response(plans=plans, count=len(plans))


@router.post("/treatment-plans")
async def create_treatment_plan(
    request: CreateTreatmentPlanRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    plan = await actions.create_treatment_plan(request.actor.to_actor(), **request.operation_fields())
    return to_response(plan=plan)


@router.post("/treatment-plans/items")
async def add_treatment_plan_item(
    request: AddTreatmentPlanItemRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    item = await actions.add_treatment_plan_item(request.actor.to_actor(), **request.operation_fields())
    return to_response(item=item)


@router.post("/treatment-plans/estimate")
async def estimate_treatment_plan(
    request: EstimateTreatmentPlanRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Recompute primary, secondary and patient portions for every item."""
    estimate = await actions.estimate_treatment_plan(request.actor.to_actor(), request.plan_id)
    return estimate.to_dict()


@router.post("/ledger")
async def post_ledger_entry(
    request: PostLedgerEntryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    entry = await actions.post_ledger_entry(request.actor.to_actor(), **request.operation_fields())
    return to_response(entry=entry)


@router.post("/account")
async def get_account_snapshot(
    request: PatientQueryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    """Ledger entries, aging buckets and balance totals."""
    snapshot = await actions.get_account_snapshot(request.actor.to_actor(), request.patient_id)
    return snapshot.to_dict()
