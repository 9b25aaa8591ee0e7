"""Patient, appointment, chart, recall, communication and task operations."""
import asyncio
import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.exceptions import NotFoundError
from clinic_ops.models.enums import (
    AppointmentStatus,
    CommunicationDirection,
    CommunicationType,
    DentalModality,
    RecallStatus,
    TaskPriority,
    TaskStatus,
)
from clinic_ops.models.records import (
    AppointmentRecord,
    ChartEntryRecord,
    CommunicationLogRecord,
    DentalImageRecord,
    FamilyRecord,
    InsurancePlanRecord,
    PatientRecord,
    RecallRecord,
    RecordMixin,
    TaskRecord,
    utcnow,
)
from clinic_ops.security.cipher import TextCipher
from clinic_ops.services.benefits import BenefitEstimationService, PlanWithItems
from clinic_ops.services.family import FamilyLinker
from clinic_ops.services.ledger import AccountLedgerService, AccountSnapshot
from clinic_ops.services.scheduling import SchedulingService, day_bounds, validate_interval
from clinic_ops.services.transitions import check_transition
from clinic_ops.storage.interfaces import ClinicOpsRepository, DentalStore, ListTasksFilter, new_id

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200
DASHBOARD_TASK_LIMIT = 500

_NON_DIGITS = re.compile(r"\D")


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIST_LIMIT, maximum: int = MAX_LIST_LIMIT) -> int:
    return max(1, min(maximum, limit or default))


def add_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def digits_only(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


@dataclass
class Dashboard(RecordMixin):
    date: date
    schedule: List[AppointmentRecord]
    recalls_due: List[RecallRecord]
    open_tasks: int
    urgent_tasks: int


@dataclass
class PatientWorkspace(RecordMixin):
    patient: PatientRecord
    family: Optional[FamilyRecord]
    appointments: List[AppointmentRecord]
    images: List[DentalImageRecord]
    insurance_plans: List[InsurancePlanRecord]
    treatment_plans: List[PlanWithItems]
    account: AccountSnapshot
    chart: List[ChartEntryRecord]
    communication_log: List[Dict[str, Any]] = field(default_factory=list)


class ClinicOpsService:
    """
    Front-office and clinical record operations.

    Composes the scheduling, benefit, ledger and family services for the
    dashboard and the patient workspace.
    """

    def __init__(
        self,
        store: DentalStore,
        repository: ClinicOpsRepository,
        text_cipher: TextCipher,
        scheduling: SchedulingService,
        benefits: BenefitEstimationService,
        ledger: AccountLedgerService,
        family: FamilyLinker,
    ):
        self.store = store
        self.repository = repository
        self.text_cipher = text_cipher
        self.scheduling = scheduling
        self.benefits = benefits
        self.ledger = ledger
        self.family = family

    async def _require_patient(self, patient_id: str) -> PatientRecord:
        patient = await self.store.get_patient(patient_id)
        if patient is None:
            raise NotFoundError(f"Patient {patient_id} not found")
        return patient

    # Patients

    async def upsert_patient(self, **fields) -> PatientRecord:
        patient = await self.store.upsert_patient(**fields)
        logger.info("Patient saved", patient_id=patient.id)
        return patient

    async def search_patients(
        self,
        *,
        query: Optional[str] = None,
        last_name: Optional[str] = None,
        first_name: Optional[str] = None,
        phone: Optional[str] = None,
        date_of_birth: Optional[str] = None,
        external_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[PatientRecord]:
        """
        Filter patients; every supplied criterion must match.

        ``query`` is a case-insensitive substring over names, phone, email,
        date of birth and external ids. Phone compares digits only; date of
        birth is exact.
        """
        q = (query or "").strip().lower()
        last = (last_name or "").strip().lower()
        first = (first_name or "").strip().lower()
        phone_digits = digits_only(phone)
        ext = (external_id or "").strip().lower()
        limit = clamp_limit(limit)

        def matches(patient: PatientRecord) -> bool:
            ids = " ".join(patient.external_ids.values()).lower()
            if q:
                haystack = " ".join([
                    patient.first_name,
                    patient.last_name,
                    patient.phone or "",
                    patient.email or "",
                    patient.date_of_birth,
                    ids,
                ]).lower()
                if q not in haystack:
                    return False
            if last and last not in patient.last_name.lower():
                return False
            if first and first not in patient.first_name.lower():
                return False
            if date_of_birth and patient.date_of_birth != date_of_birth:
                return False
            if phone_digits and phone_digits not in digits_only(patient.phone):
                return False
            if ext and ext not in ids:
                return False
            return True

        return [p for p in await self.store.list_patients() if matches(p)][:limit]

    # Appointments and imaging

    async def schedule_appointment(
        self,
        *,
        patient_id: str,
        provider: str,
        reason: str,
        start_at: datetime,
        end_at: datetime,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> AppointmentRecord:
        validate_interval(start_at, end_at, "Appointment")
        await self._require_patient(patient_id)
        return await self.store.create_appointment(
            patient_id=patient_id,
            provider=provider,
            reason=reason,
            start_at=start_at,
            end_at=end_at,
            status=status,
        )

    async def set_appointment_status(self, appointment_id: str, status: AppointmentStatus) -> AppointmentRecord:
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        check_transition(appointment.status, status)
        updated = await self.store.update_appointment_status(appointment_id, status)
        if updated is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return updated

    async def ingest_dental_image(
        self,
        *,
        patient_id: str,
        modality: DentalModality,
        image_url: str,
        captured_at: Optional[datetime] = None,
        tooth_numbers: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> DentalImageRecord:
        await self._require_patient(patient_id)
        return await self.store.create_dental_image(
            patient_id=patient_id,
            modality=modality,
            image_url=image_url,
            captured_at=captured_at,
            tooth_numbers=tooth_numbers,
            notes=notes,
        )

    # Chart

    async def add_chart_entry(
        self,
        *,
        patient_id: str,
        note: str,
        provider: str,
        entry_date: Optional[datetime] = None,
        tooth: Optional[str] = None,
        surface: Optional[str] = None,
        diagnosis: Optional[str] = None,
        procedure_code: Optional[str] = None,
    ) -> ChartEntryRecord:
        now = utcnow()
        entry = ChartEntryRecord(
            id=new_id(),
            patient_id=patient_id,
            entry_date=entry_date or now,
            note=note,
            provider=provider,
            tooth=tooth,
            surface=surface,
            diagnosis=diagnosis,
            procedure_code=procedure_code,
            created_at=now,
        )
        return await self.repository.save_chart_entry(entry)

    async def list_chart_entries(self, patient_id: str) -> List[ChartEntryRecord]:
        return await self.repository.list_chart_entries_by_patient(patient_id)

    # Recalls

    async def upsert_recall(
        self,
        *,
        patient_id: str,
        recall_type: str,
        interval_months: int,
        recall_id: Optional[str] = None,
        last_visit_date: Optional[datetime] = None,
        due_date: Optional[datetime] = None,
        status: RecallStatus = RecallStatus.DUE,
    ) -> RecallRecord:
        now = utcnow()
        if due_date is None:
            due_date = add_months(last_visit_date or now, interval_months)
        recall = RecallRecord(
            id=recall_id or new_id(),
            patient_id=patient_id,
            recall_type=recall_type,
            interval_months=interval_months,
            due_date=due_date,
            last_visit_date=last_visit_date,
            status=status,
            created_at=now,
            updated_at=now,
        )
        return await self.repository.save_recall(recall)

    async def list_recall_due(self, from_date: date, to_date: date) -> List[RecallRecord]:
        """Recalls due between the start of from_date and the end of to_date."""
        start, _ = day_bounds(from_date)
        _, end = day_bounds(to_date)
        return await self.repository.list_recalls_due(start, end)

    # Communication

    def _communication_view(self, log: CommunicationLogRecord) -> Dict[str, Any]:
        view = log.to_dict()
        view["note"] = self.text_cipher.decrypt(log.note_ciphertext)
        return view

    async def add_communication_log(
        self,
        *,
        patient_id: str,
        communication_type: CommunicationType,
        direction: CommunicationDirection,
        note: str,
        created_by: str,
    ) -> CommunicationLogRecord:
        log = CommunicationLogRecord(
            id=new_id(),
            patient_id=patient_id,
            communication_type=communication_type,
            direction=direction,
            note_ciphertext=self.text_cipher.encrypt(note),
            created_by=created_by,
        )
        return await self.repository.save_communication_log(log)

    async def list_communication_logs(self, patient_id: str) -> List[Dict[str, Any]]:
        """Logs newest first, each with its note decrypted."""
        logs = await self.repository.list_communication_logs_by_patient(patient_id)
        return [self._communication_view(log) for log in logs]

    # Tasks

    def _task_view(self, task: TaskRecord) -> Dict[str, Any]:
        view = task.to_dict()
        view["details"] = self.text_cipher.decrypt(task.details_ciphertext) if task.details_ciphertext else None
        return view

    async def upsert_task(
        self,
        *,
        title: str,
        actor_user_id: str,
        task_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        details: Optional[str] = None,
        assigned_to: Optional[str] = None,
        due_at: Optional[datetime] = None,
        priority: Optional[TaskPriority] = None,
        status: Optional[TaskStatus] = None,
    ) -> TaskRecord:
        """
        Create or update a task.

        Fields not supplied on update keep their stored values: details,
        priority, status, creator and creation time.
        """
        existing = await self.repository.get_task(task_id) if task_id else None
        now = utcnow()
        if details is not None:
            details_ciphertext = self.text_cipher.encrypt(details)
        else:
            details_ciphertext = existing.details_ciphertext if existing else None

        task = TaskRecord(
            id=task_id or new_id(),
            title=title,
            created_by=existing.created_by if existing else actor_user_id,
            patient_id=patient_id,
            details_ciphertext=details_ciphertext,
            assigned_to=assigned_to,
            due_at=due_at,
            priority=priority or (existing.priority if existing else TaskPriority.MEDIUM),
            status=status or (existing.status if existing else TaskStatus.OPEN),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        return await self.repository.save_task(task)

    async def _list_task_records(
        self,
        status: Optional[TaskStatus],
        assigned_to: Optional[str],
        limit: int,
    ) -> List[TaskRecord]:
        return await self.repository.list_tasks(
            ListTasksFilter(limit=limit, status=status, assigned_to=assigned_to)
        )

    async def list_tasks(
        self,
        *,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Tasks most recently updated first, with details decrypted."""
        tasks = await self._list_task_records(status, assigned_to, clamp_limit(limit))
        return [self._task_view(task) for task in tasks]

    # Aggregate views

    async def get_dashboard(self, day: date) -> Dashboard:
        start, end = day_bounds(day)
        schedule = await self.store.list_appointments_by_range(start, end)
        recalls_due = await self.list_recall_due(day, day)
        open_tasks = await self._list_task_records(TaskStatus.OPEN, None, DASHBOARD_TASK_LIMIT)
        return Dashboard(
            date=day,
            schedule=schedule,
            recalls_due=recalls_due,
            open_tasks=len(open_tasks),
            urgent_tasks=sum(1 for t in open_tasks if t.priority == TaskPriority.URGENT),
        )

    async def get_patient_workspace(self, patient_id: str) -> PatientWorkspace:
        """
        Assemble everything on file for one patient.

        Raises:
            NotFoundError: If the patient does not exist
        """
        patient = await self._require_patient(patient_id)
        (
            family,
            appointments,
            images,
            insurance_plans,
            treatment_plans,
            account,
            chart,
            communication_log,
        ) = await asyncio.gather(
            self.family.find_family_by_patient(patient_id),
            self.store.list_appointments(patient_id),
            self.store.list_dental_images(patient_id),
            self.benefits.list_insurance_plans(patient_id),
            self.benefits.list_treatment_plans(patient_id),
            self.ledger.get_account_snapshot(patient_id),
            self.list_chart_entries(patient_id),
            self.list_communication_logs(patient_id),
        )
        return PatientWorkspace(
            patient=patient,
            family=family,
            appointments=appointments,
            images=images,
            insurance_plans=insurance_plans,
            treatment_plans=treatment_plans,
            account=account,
            chart=chart,
            communication_log=communication_log,
        )
