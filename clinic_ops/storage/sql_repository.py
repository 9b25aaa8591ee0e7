"""SQLAlchemy-backed clinic operations repository.

Saves are whole-record upserts through ``session.merge``; the last write
for a given id wins.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from clinic_ops.models.enums import (
    CommunicationDirection,
    CommunicationType,
    InsuranceTier,
    LedgerEntryType,
    RecallStatus,
    ScheduleBlockType,
    TaskPriority,
    TaskStatus,
    TreatmentPlanItemStatus,
    TreatmentPlanStatus,
)
from clinic_ops.models.records import (
    ChartEntryRecord,
    CommunicationLogRecord,
    FamilyMember,
    FamilyRecord,
    InsurancePlanRecord,
    LedgerEntryRecord,
    RecallRecord,
    ScheduleBlockRecord,
    TaskRecord,
    TreatmentPlanItemRecord,
    TreatmentPlanRecord,
)
from clinic_ops.storage.database import Database
from clinic_ops.storage.interfaces import ClinicOpsRepository, ListTasksFilter
from clinic_ops.storage.models import (
    ChartEntryModel,
    CommunicationLogModel,
    FamilyModel,
    InsurancePlanModel,
    LedgerEntryModel,
    RecallModel,
    ScheduleBlockModel,
    TaskModel,
    TreatmentPlanItemModel,
    TreatmentPlanModel,
)


def _family_from_row(row: FamilyModel) -> FamilyRecord:
    return FamilyRecord(
        id=row.id,
        guarantor_patient_id=row.guarantor_patient_id,
        members=[FamilyMember.from_dict(m) for m in (row.members or [])],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _family_to_row(family: FamilyRecord) -> FamilyModel:
    return FamilyModel(
        id=family.id,
        guarantor_patient_id=family.guarantor_patient_id,
        members=[m.to_dict() for m in family.members],
        created_at=family.created_at,
        updated_at=family.updated_at,
    )


def _insurance_plan_from_row(row: InsurancePlanModel) -> InsurancePlanRecord:
    return InsurancePlanRecord(
        id=row.id,
        patient_id=row.patient_id,
        tier=InsuranceTier(row.tier),
        carrier=row.carrier,
        subscriber_name=row.subscriber_name,
        subscriber_id=row.subscriber_id,
        relation_to_subscriber=row.relation_to_subscriber,
        employer=row.employer,
        group_name=row.group_name,
        group_number=row.group_number,
        annual_max=row.annual_max,
        deductible=row.deductible,
        benefit_percentages=dict(row.benefit_percentages or {}),
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _insurance_plan_to_row(plan: InsurancePlanRecord) -> InsurancePlanModel:
    return InsurancePlanModel(
        id=plan.id,
        patient_id=plan.patient_id,
        tier=plan.tier.value,
        carrier=plan.carrier,
        subscriber_name=plan.subscriber_name,
        subscriber_id=plan.subscriber_id,
        relation_to_subscriber=plan.relation_to_subscriber,
        employer=plan.employer,
        group_name=plan.group_name,
        group_number=plan.group_number,
        annual_max=plan.annual_max,
        deductible=plan.deductible,
        benefit_percentages=dict(plan.benefit_percentages),
        notes=plan.notes,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


def _treatment_plan_from_row(row: TreatmentPlanModel) -> TreatmentPlanRecord:
    return TreatmentPlanRecord(
        id=row.id,
        patient_id=row.patient_id,
        heading=row.heading,
        status=TreatmentPlanStatus(row.status),
        signed=bool(row.signed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _treatment_plan_to_row(plan: TreatmentPlanRecord) -> TreatmentPlanModel:
    return TreatmentPlanModel(
        id=plan.id,
        patient_id=plan.patient_id,
        heading=plan.heading,
        status=plan.status.value,
        signed=plan.signed,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


def _plan_item_from_row(row: TreatmentPlanItemModel) -> TreatmentPlanItemRecord:
    return TreatmentPlanItemRecord(
        id=row.id,
        plan_id=row.plan_id,
        patient_id=row.patient_id,
        ada_code=row.ada_code,
        description=row.description,
        fee=row.fee,
        tooth=row.tooth,
        surface=row.surface,
        diagnosis=row.diagnosis,
        allowed_fee=row.allowed_fee,
        priority=row.priority,
        status=TreatmentPlanItemStatus(row.status),
        insurance_est_primary=row.insurance_est_primary,
        insurance_est_secondary=row.insurance_est_secondary,
        patient_est=row.patient_est,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _plan_item_to_row(item: TreatmentPlanItemRecord) -> TreatmentPlanItemModel:
    return TreatmentPlanItemModel(
        id=item.id,
        plan_id=item.plan_id,
        patient_id=item.patient_id,
        ada_code=item.ada_code,
        description=item.description,
        fee=item.fee,
        tooth=item.tooth,
        surface=item.surface,
        diagnosis=item.diagnosis,
        allowed_fee=item.allowed_fee,
        priority=item.priority,
        status=item.status.value,
        insurance_est_primary=item.insurance_est_primary,
        insurance_est_secondary=item.insurance_est_secondary,
        patient_est=item.patient_est,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _ledger_entry_from_row(row: LedgerEntryModel) -> LedgerEntryRecord:
    return LedgerEntryRecord(
        id=row.id,
        patient_id=row.patient_id,
        type=LedgerEntryType(row.type),
        amount=row.amount,
        description=row.description,
        entry_date=row.entry_date,
        created_by=row.created_by,
        family_id=row.family_id,
        related_plan_item_id=row.related_plan_item_id,
        claim_status=row.claim_status,
        created_at=row.created_at,
    )


def _ledger_entry_to_row(entry: LedgerEntryRecord) -> LedgerEntryModel:
    return LedgerEntryModel(
        id=entry.id,
        patient_id=entry.patient_id,
        family_id=entry.family_id,
        type=entry.type.value,
        amount=entry.amount,
        description=entry.description,
        entry_date=entry.entry_date,
        related_plan_item_id=entry.related_plan_item_id,
        claim_status=entry.claim_status,
        created_by=entry.created_by,
        created_at=entry.created_at,
    )


def _chart_entry_from_row(row: ChartEntryModel) -> ChartEntryRecord:
    return ChartEntryRecord(
        id=row.id,
        patient_id=row.patient_id,
        entry_date=row.entry_date,
        note=row.note,
        provider=row.provider,
        tooth=row.tooth,
        surface=row.surface,
        diagnosis=row.diagnosis,
        procedure_code=row.procedure_code,
        created_at=row.created_at,
    )


def _chart_entry_to_row(entry: ChartEntryRecord) -> ChartEntryModel:
    return ChartEntryModel(
        id=entry.id,
        patient_id=entry.patient_id,
        entry_date=entry.entry_date,
        tooth=entry.tooth,
        surface=entry.surface,
        diagnosis=entry.diagnosis,
        procedure_code=entry.procedure_code,
        note=entry.note,
        provider=entry.provider,
        created_at=entry.created_at,
    )


def _recall_from_row(row: RecallModel) -> RecallRecord:
    return RecallRecord(
        id=row.id,
        patient_id=row.patient_id,
        recall_type=row.recall_type,
        interval_months=row.interval_months,
        due_date=row.due_date,
        last_visit_date=row.last_visit_date,
        status=RecallStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _recall_to_row(recall: RecallRecord) -> RecallModel:
    return RecallModel(
        id=recall.id,
        patient_id=recall.patient_id,
        recall_type=recall.recall_type,
        interval_months=recall.interval_months,
        due_date=recall.due_date,
        last_visit_date=recall.last_visit_date,
        status=recall.status.value,
        created_at=recall.created_at,
        updated_at=recall.updated_at,
    )


def _schedule_block_from_row(row: ScheduleBlockModel) -> ScheduleBlockRecord:
    return ScheduleBlockRecord(
        id=row.id,
        provider=row.provider,
        start_at=row.start_at,
        end_at=row.end_at,
        block_type=ScheduleBlockType(row.block_type),
        operatory=row.operatory,
        patient_id=row.patient_id,
        appointment_id=row.appointment_id,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _schedule_block_to_row(block: ScheduleBlockRecord) -> ScheduleBlockModel:
    return ScheduleBlockModel(
        id=block.id,
        provider=block.provider,
        operatory=block.operatory,
        start_at=block.start_at,
        end_at=block.end_at,
        block_type=block.block_type.value,
        patient_id=block.patient_id,
        appointment_id=block.appointment_id,
        notes=block.notes,
        created_at=block.created_at,
        updated_at=block.updated_at,
    )


def _communication_log_from_row(row: CommunicationLogModel) -> CommunicationLogRecord:
    return CommunicationLogRecord(
        id=row.id,
        patient_id=row.patient_id,
        communication_type=CommunicationType(row.communication_type),
        direction=CommunicationDirection(row.direction),
        note_ciphertext=row.note_ciphertext,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _communication_log_to_row(log: CommunicationLogRecord) -> CommunicationLogModel:
    return CommunicationLogModel(
        id=log.id,
        patient_id=log.patient_id,
        communication_type=log.communication_type.value,
        direction=log.direction.value,
        note_ciphertext=log.note_ciphertext,
        created_by=log.created_by,
        created_at=log.created_at,
    )


def _task_from_row(row: TaskModel) -> TaskRecord:
    return TaskRecord(
        id=row.id,
        title=row.title,
        created_by=row.created_by,
        patient_id=row.patient_id,
        details_ciphertext=row.details_ciphertext,
        assigned_to=row.assigned_to,
        due_at=row.due_at,
        priority=TaskPriority(row.priority),
        status=TaskStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _task_to_row(task: TaskRecord) -> TaskModel:
    return TaskModel(
        id=task.id,
        patient_id=task.patient_id,
        title=task.title,
        details_ciphertext=task.details_ciphertext,
        assigned_to=task.assigned_to,
        due_at=task.due_at,
        priority=task.priority.value,
        status=task.status.value,
        created_by=task.created_by,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


class SqlClinicOpsRepository(ClinicOpsRepository):
    """Repository persisting clinic records through SQLAlchemy."""

    def __init__(self, database: Database):
        self.database = database

    async def _merge(self, row) -> None:
        async with self.database.get_db() as session:
            await session.merge(row)

    async def _get(self, model, record_id: str, from_row):
        async with self.database.get_db() as session:
            row = await session.get(model, record_id)
            return from_row(row) if row else None

    async def _select(self, query, from_row) -> list:
        async with self.database.get_db() as session:
            result = await session.execute(query)
            return [from_row(row) for row in result.scalars().all()]

    # Families

    async def find_family_by_id(self, family_id: str) -> Optional[FamilyRecord]:
        return await self._get(FamilyModel, family_id, _family_from_row)

    async def find_family_by_guarantor(self, guarantor_patient_id: str) -> Optional[FamilyRecord]:
        families = await self._select(
            select(FamilyModel)
            .where(FamilyModel.guarantor_patient_id == guarantor_patient_id)
            .order_by(FamilyModel.created_at)
            .limit(1),
            _family_from_row,
        )
        return families[0] if families else None

    async def find_family_by_patient(self, patient_id: str) -> Optional[FamilyRecord]:
        # Members live in a JSON column, so membership is resolved in Python.
        families = await self._select(
            select(FamilyModel).order_by(FamilyModel.created_at),
            _family_from_row,
        )
        return next((f for f in families if f.has_member(patient_id)), None)

    async def save_family(self, family: FamilyRecord) -> FamilyRecord:
        await self._merge(_family_to_row(family))
        return family

    # Insurance

    async def get_insurance_plan(self, plan_id: str) -> Optional[InsurancePlanRecord]:
        return await self._get(InsurancePlanModel, plan_id, _insurance_plan_from_row)

    async def save_insurance_plan(self, plan: InsurancePlanRecord) -> InsurancePlanRecord:
        await self._merge(_insurance_plan_to_row(plan))
        return plan

    async def list_insurance_plans_by_patient(self, patient_id: str) -> List[InsurancePlanRecord]:
        return await self._select(
            select(InsurancePlanModel)
            .where(InsurancePlanModel.patient_id == patient_id)
            .order_by(InsurancePlanModel.tier, InsurancePlanModel.created_at),
            _insurance_plan_from_row,
        )

    # Treatment plans

    async def save_treatment_plan(self, plan: TreatmentPlanRecord) -> TreatmentPlanRecord:
        await self._merge(_treatment_plan_to_row(plan))
        return plan

    async def get_treatment_plan(self, plan_id: str) -> Optional[TreatmentPlanRecord]:
        return await self._get(TreatmentPlanModel, plan_id, _treatment_plan_from_row)

    async def list_treatment_plans_by_patient(self, patient_id: str) -> List[TreatmentPlanRecord]:
        return await self._select(
            select(TreatmentPlanModel)
            .where(TreatmentPlanModel.patient_id == patient_id)
            .order_by(TreatmentPlanModel.created_at.desc()),
            _treatment_plan_from_row,
        )

    async def save_treatment_plan_item(self, item: TreatmentPlanItemRecord) -> TreatmentPlanItemRecord:
        await self._merge(_plan_item_to_row(item))
        return item

    async def list_treatment_plan_items_by_plan(self, plan_id: str) -> List[TreatmentPlanItemRecord]:
        return await self._select(
            select(TreatmentPlanItemModel)
            .where(TreatmentPlanItemModel.plan_id == plan_id)
            .order_by(TreatmentPlanItemModel.priority, TreatmentPlanItemModel.created_at),
            _plan_item_from_row,
        )

    # Ledger

    async def save_ledger_entry(self, entry: LedgerEntryRecord) -> LedgerEntryRecord:
        await self._merge(_ledger_entry_to_row(entry))
        return entry

    async def list_ledger_entries_by_patient(self, patient_id: str) -> List[LedgerEntryRecord]:
        return await self._select(
            select(LedgerEntryModel)
            .where(LedgerEntryModel.patient_id == patient_id)
            .order_by(LedgerEntryModel.entry_date),
            _ledger_entry_from_row,
        )

    # Chart

    async def save_chart_entry(self, entry: ChartEntryRecord) -> ChartEntryRecord:
        await self._merge(_chart_entry_to_row(entry))
        return entry

    async def list_chart_entries_by_patient(self, patient_id: str) -> List[ChartEntryRecord]:
        return await self._select(
            select(ChartEntryModel)
            .where(ChartEntryModel.patient_id == patient_id)
            .order_by(ChartEntryModel.entry_date.desc()),
            _chart_entry_from_row,
        )

    # Recalls

    async def save_recall(self, recall: RecallRecord) -> RecallRecord:
        await self._merge(_recall_to_row(recall))
        return recall

    async def list_recalls_due(self, from_at: datetime, to_at: datetime) -> List[RecallRecord]:
        return await self._select(
            select(RecallModel)
            .where(RecallModel.due_date >= from_at, RecallModel.due_date <= to_at)
            .order_by(RecallModel.due_date),
            _recall_from_row,
        )

    # Schedule blocks

    async def save_schedule_block(self, block: ScheduleBlockRecord) -> ScheduleBlockRecord:
        await self._merge(_schedule_block_to_row(block))
        return block

    async def list_schedule_blocks_by_provider_in_range(
        self,
        provider: str,
        start_at: datetime,
        end_at: datetime,
    ) -> List[ScheduleBlockRecord]:
        return await self._select(
            select(ScheduleBlockModel)
            .where(
                ScheduleBlockModel.provider == provider,
                ScheduleBlockModel.start_at < end_at,
                ScheduleBlockModel.end_at > start_at,
            )
            .order_by(ScheduleBlockModel.start_at),
            _schedule_block_from_row,
        )

    # Communication

    async def save_communication_log(self, log: CommunicationLogRecord) -> CommunicationLogRecord:
        await self._merge(_communication_log_to_row(log))
        return log

    async def list_communication_logs_by_patient(self, patient_id: str) -> List[CommunicationLogRecord]:
        return await self._select(
            select(CommunicationLogModel)
            .where(CommunicationLogModel.patient_id == patient_id)
            .order_by(CommunicationLogModel.created_at.desc()),
            _communication_log_from_row,
        )

    # Tasks

    async def get_task(self, task_id: str) -> Optional[TaskRecord]:
        return await self._get(TaskModel, task_id, _task_from_row)

    async def save_task(self, task: TaskRecord) -> TaskRecord:
        await self._merge(_task_to_row(task))
        return task

    async def list_tasks(self, task_filter: ListTasksFilter) -> List[TaskRecord]:
        query = select(TaskModel)
        if task_filter.status is not None:
            query = query.where(TaskModel.status == task_filter.status.value)
        if task_filter.assigned_to is not None:
            query = query.where(TaskModel.assigned_to == task_filter.assigned_to)
        query = query.order_by(TaskModel.updated_at.desc()).limit(task_filter.limit)
        return await self._select(query, _task_from_row)
