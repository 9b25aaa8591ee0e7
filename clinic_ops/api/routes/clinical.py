"""Chart, recall, communication and task API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from clinic_ops.api.dependencies import get_actions
from clinic_ops.api.requests import (
    AddChartEntryRequest,
    AddCommunicationLogRequest,
    ListRecallDueRequest,
    ListTasksRequest,
    PatientQueryRequest,
    SetRecallRequest,
    UpsertTaskRequest,
)
from clinic_ops.api.responses import to_response
from clinic_ops.services.actions import ClinicActions

router = APIRouter(prefix="/clinical", tags=["Clinical"])


@router.post("/chart")
async def add_chart_entry(
    request: AddChartEntryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    entry = await actions.add_chart_entry(request.actor.to_actor(), **request.operation_fields())
    return to_response(entry=entry)


@router.post("/chart/list")
async def get_chart(
    request: PatientQueryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    entries = await actions.get_chart(request.actor.to_actor(), request.patient_id)
    return to_response(entries=entries, count=len(entries))


@router.post("/recalls")
async def set_recall(
    request: SetRecallRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    recall = await actions.set_recall(request.actor.to_actor(), **request.operation_fields())
    return to_response(recall=recall)


@router.post("/recalls/due")
async def list_recall_due(
    request: ListRecallDueRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    recalls = await actions.list_recall_due(request.actor.to_actor(), request.from_date, request.to_date)
    return to_response(recalls=recalls, count=len(recalls))


@router.post("/communications")
async def add_communication_log(
    request: AddCommunicationLogRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    log = await actions.add_communication_log(request.actor.to_actor(), **request.operation_fields())
    return to_response(log=log)


@router.post("/communications/list")
async def list_communication_log(
    request: PatientQueryRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    logs = await actions.list_communication_log(request.actor.to_actor(), request.patient_id)
    return to_response(logs=logs, count=len(logs))


@router.post("/tasks")
async def upsert_task(
    request: UpsertTaskRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    task = await actions.upsert_task(request.actor.to_actor(), **request.operation_fields())
    return to_response(task=task)


@router.post("/tasks/list")
async def list_tasks(
    request: ListTasksRequest,
    actions: ClinicActions = Depends(get_actions),
) -> Dict[str, Any]:
    tasks = await actions.list_tasks(request.actor.to_actor(), **request.operation_fields())
    return to_response(tasks=tasks, count=len(tasks))
