"""In-memory clinic operations repository."""
from copy import deepcopy
from datetime import datetime
from typing import Callable, Dict, List, Optional, TypeVar

from clinic_ops.models.enums import InsuranceTier
from clinic_ops.models.records import (
    ChartEntryRecord,
    CommunicationLogRecord,
    FamilyRecord,
    InsurancePlanRecord,
    LedgerEntryRecord,
    RecallRecord,
    ScheduleBlockRecord,
    TaskRecord,
    TreatmentPlanItemRecord,
    TreatmentPlanRecord,
)
from clinic_ops.storage.interfaces import ClinicOpsRepository, ListTasksFilter, overlap

T = TypeVar("T")

_TIER_ORDER = {InsuranceTier.PRIMARY: 0, InsuranceTier.SECONDARY: 1}


def _select(
    table: Dict[str, T],
    predicate: Callable[[T], bool],
    key: Callable[[T], object],
    reverse: bool = False,
) -> List[T]:
    return sorted((deepcopy(r) for r in table.values() if predicate(r)), key=key, reverse=reverse)


class InMemoryClinicOpsRepository(ClinicOpsRepository):
    """Dictionary-backed repository keyed by record id."""

    def __init__(self):
        self._families: Dict[str, FamilyRecord] = {}
        self._insurance_plans: Dict[str, InsurancePlanRecord] = {}
        self._treatment_plans: Dict[str, TreatmentPlanRecord] = {}
        self._plan_items: Dict[str, TreatmentPlanItemRecord] = {}
        self._ledger: Dict[str, LedgerEntryRecord] = {}
        self._chart: Dict[str, ChartEntryRecord] = {}
        self._recalls: Dict[str, RecallRecord] = {}
        self._schedule_blocks: Dict[str, ScheduleBlockRecord] = {}
        self._communication_logs: Dict[str, CommunicationLogRecord] = {}
        self._tasks: Dict[str, TaskRecord] = {}

    @staticmethod
    def _put(table: Dict[str, T], record: T) -> T:
        table[record.id] = deepcopy(record)
        return record

    @staticmethod
    def _get(table: Dict[str, T], record_id: str) -> Optional[T]:
        record = table.get(record_id)
        return deepcopy(record) if record else None

    # Families

    async def find_family_by_id(self, family_id: str) -> Optional[FamilyRecord]:
        return self._get(self._families, family_id)

    async def find_family_by_guarantor(self, guarantor_patient_id: str) -> Optional[FamilyRecord]:
        family = next(
            (f for f in self._families.values() if f.guarantor_patient_id == guarantor_patient_id),
            None,
        )
        return deepcopy(family) if family else None

    async def find_family_by_patient(self, patient_id: str) -> Optional[FamilyRecord]:
        family = next((f for f in self._families.values() if f.has_member(patient_id)), None)
        return deepcopy(family) if family else None

    async def save_family(self, family: FamilyRecord) -> FamilyRecord:
        return self._put(self._families, family)

    # Insurance

    async def get_insurance_plan(self, plan_id: str) -> Optional[InsurancePlanRecord]:
        return self._get(self._insurance_plans, plan_id)

    async def save_insurance_plan(self, plan: InsurancePlanRecord) -> InsurancePlanRecord:
        return self._put(self._insurance_plans, plan)

    async def list_insurance_plans_by_patient(self, patient_id: str) -> List[InsurancePlanRecord]:
        return _select(
            self._insurance_plans,
            lambda p: p.patient_id == patient_id,
            key=lambda p: _TIER_ORDER[p.tier],
        )

    # Treatment plans

    async def save_treatment_plan(self, plan: TreatmentPlanRecord) -> TreatmentPlanRecord:
        return self._put(self._treatment_plans, plan)

    async def get_treatment_plan(self, plan_id: str) -> Optional[TreatmentPlanRecord]:
        return self._get(self._treatment_plans, plan_id)

    async def list_treatment_plans_by_patient(self, patient_id: str) -> List[TreatmentPlanRecord]:
        return _select(
            self._treatment_plans,
            lambda p: p.patient_id == patient_id,
            key=lambda p: p.created_at,
            reverse=True,
        )

    async def save_treatment_plan_item(self, item: TreatmentPlanItemRecord) -> TreatmentPlanItemRecord:
        return self._put(self._plan_items, item)

    async def list_treatment_plan_items_by_plan(self, plan_id: str) -> List[TreatmentPlanItemRecord]:
        return _select(self._plan_items, lambda i: i.plan_id == plan_id, key=lambda i: i.priority)

    # Ledger

    async def save_ledger_entry(self, entry: LedgerEntryRecord) -> LedgerEntryRecord:
        return self._put(self._ledger, entry)

    async def list_ledger_entries_by_patient(self, patient_id: str) -> List[LedgerEntryRecord]:
        return _select(self._ledger, lambda e: e.patient_id == patient_id, key=lambda e: e.entry_date)

    # Chart

    async def save_chart_entry(self, entry: ChartEntryRecord) -> ChartEntryRecord:
        return self._put(self._chart, entry)

    async def list_chart_entries_by_patient(self, patient_id: str) -> List[ChartEntryRecord]:
        return _select(
            self._chart,
            lambda e: e.patient_id == patient_id,
            key=lambda e: e.entry_date,
            reverse=True,
        )

    # Recalls

    async def save_recall(self, recall: RecallRecord) -> RecallRecord:
        return self._put(self._recalls, recall)

    async def list_recalls_due(self, from_at: datetime, to_at: datetime) -> List[RecallRecord]:
        return _select(
            self._recalls,
            lambda r: from_at <= r.due_date <= to_at,
            key=lambda r: r.due_date,
        )

    # Schedule blocks

    async def save_schedule_block(self, block: ScheduleBlockRecord) -> ScheduleBlockRecord:
        return self._put(self._schedule_blocks, block)

    async def list_schedule_blocks_by_provider_in_range(
        self,
        provider: str,
        start_at: datetime,
        end_at: datetime,
    ) -> List[ScheduleBlockRecord]:
        return _select(
            self._schedule_blocks,
            lambda b: b.provider == provider and overlap(b.start_at, b.end_at, start_at, end_at),
            key=lambda b: b.start_at,
        )

    # Communication

    async def save_communication_log(self, log: CommunicationLogRecord) -> CommunicationLogRecord:
        return self._put(self._communication_logs, log)

    async def list_communication_logs_by_patient(self, patient_id: str) -> List[CommunicationLogRecord]:
        return _select(
            self._communication_logs,
            lambda c: c.patient_id == patient_id,
            key=lambda c: c.created_at,
            reverse=True,
        )

    # Tasks

    async def get_task(self, task_id: str) -> Optional[TaskRecord]:
        return self._get(self._tasks, task_id)

    async def save_task(self, task: TaskRecord) -> TaskRecord:
        return self._put(self._tasks, task)

    async def list_tasks(self, task_filter: ListTasksFilter) -> List[TaskRecord]:
        tasks = _select(
            self._tasks,
            lambda t: (task_filter.status is None or t.status == task_filter.status)
            and (task_filter.assigned_to is None or t.assigned_to == task_filter.assigned_to),
            key=lambda t: t.updated_at,
            reverse=True,
        )
        return tasks[: task_filter.limit]
