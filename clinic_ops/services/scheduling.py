"""Slot search and booking against appointments and provider schedule blocks."""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, List, Optional, Tuple

from clinic_ops.config.logging_config import get_logger
from clinic_ops.exceptions import ValidationError
from clinic_ops.models.enums import BLOCKING_BLOCK_TYPES, AppointmentStatus, ScheduleBlockType
from clinic_ops.models.records import (
    AppointmentRecord,
    RecordMixin,
    ScheduleBlockRecord,
    utcnow,
)
from clinic_ops.storage.interfaces import ClinicOpsRepository, DentalStore, new_id, overlap

logger = get_logger(__name__)

DEFAULT_INTERVAL_MINUTES = 15
DEFAULT_START_HOUR = 8
DEFAULT_END_HOUR = 17


@dataclass(frozen=True)
class TimeSlot(RecordMixin):
    """Half-open candidate interval [start_at, end_at)."""
    start_at: datetime
    end_at: datetime


@dataclass
class BookingResult(RecordMixin):
    appointment: AppointmentRecord
    schedule_block: ScheduleBlockRecord


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """First and last instant of a UTC calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    return start, end


def validate_interval(start_at: datetime, end_at: datetime, what: str) -> None:
    if start_at >= end_at:
        raise ValidationError(f"{what} must start before it ends")


def generate_time_slots(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    interval_minutes: int,
) -> Iterator[TimeSlot]:
    """
    Lazily yield slots of fixed duration stepping through a window.

    Generation stops before the first slot that would end after
    window_end.
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=interval_minutes)
    cursor = window_start
    while cursor + duration <= window_end:
        yield TimeSlot(start_at=cursor, end_at=cursor + duration)
        cursor += step


class SchedulingService:
    """Availability search and slot booking for providers."""

    def __init__(self, store: DentalStore, repository: ClinicOpsRepository):
        self.store = store
        self.repository = repository

    async def upsert_schedule_block(
        self,
        *,
        provider: str,
        start_at: datetime,
        end_at: datetime,
        block_type: ScheduleBlockType,
        block_id: Optional[str] = None,
        operatory: Optional[str] = None,
        patient_id: Optional[str] = None,
        appointment_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScheduleBlockRecord:
        validate_interval(start_at, end_at, "Schedule block")
        now = utcnow()
        block = ScheduleBlockRecord(
            id=block_id or new_id(),
            provider=provider,
            start_at=start_at,
            end_at=end_at,
            block_type=block_type,
            operatory=operatory,
            patient_id=patient_id,
            appointment_id=appointment_id,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        return await self.repository.save_schedule_block(block)

    async def find_open_slots(
        self,
        *,
        provider: str,
        day: date,
        duration_minutes: int,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        start_hour: int = DEFAULT_START_HOUR,
        end_hour: int = DEFAULT_END_HOUR,
    ) -> List[TimeSlot]:
        """
        Find bookable slots for a provider on one UTC day.

        When the provider has any available blocks that day, a slot must
        sit fully inside one of them; with none, the whole working-hour
        window is eligible. Slots overlapping an appointment or a booked,
        break or hold block are dropped.
        """
        if duration_minutes <= 0 or interval_minutes <= 0:
            raise ValidationError("duration_minutes and interval_minutes must be positive")
        if not (0 <= start_hour <= 24 and 0 <= end_hour <= 24):
            raise ValidationError("start_hour and end_hour must be within 0..24")

        day_start, day_end = day_bounds(day)
        window_start = day_start + timedelta(hours=start_hour)
        window_end = day_start + timedelta(hours=end_hour)

        appointments = await self.store.list_appointments_by_range(day_start, day_end, provider)
        blocks = await self.repository.list_schedule_blocks_by_provider_in_range(provider, day_start, day_end)

        available = [b for b in blocks if b.block_type == ScheduleBlockType.AVAILABLE]
        blocking = [b for b in blocks if b.block_type in BLOCKING_BLOCK_TYPES]

        def is_open(slot: TimeSlot) -> bool:
            if available and not any(
                slot.start_at >= b.start_at and slot.end_at <= b.end_at for b in available
            ):
                return False
            if any(overlap(slot.start_at, slot.end_at, a.start_at, a.end_at) for a in appointments):
                return False
            if any(overlap(slot.start_at, slot.end_at, b.start_at, b.end_at) for b in blocking):
                return False
            return True

        slots = [
            slot
            for slot in generate_time_slots(window_start, window_end, duration_minutes, interval_minutes)
            if is_open(slot)
        ]
        logger.debug(
            "Open slots computed",
            provider=provider,
            day=day.isoformat(),
            appointments=len(appointments),
            blocks=len(blocks),
            slots=len(slots),
        )
        return slots

    async def book_appointment_from_slot(
        self,
        *,
        patient_id: str,
        provider: str,
        reason: str,
        start_at: datetime,
        end_at: datetime,
        operatory: Optional[str] = None,
    ) -> BookingResult:
        """
        Create a scheduled appointment, then a booked block referencing it.

        The two writes are independent; if the block write fails the
        appointment remains.
        """
        validate_interval(start_at, end_at, "Appointment")
        appointment = await self.store.create_appointment(
            patient_id=patient_id,
            provider=provider,
            reason=reason,
            start_at=start_at,
            end_at=end_at,
            status=AppointmentStatus.SCHEDULED,
        )
        block = await self.upsert_schedule_block(
            provider=provider,
            start_at=start_at,
            end_at=end_at,
            block_type=ScheduleBlockType.BOOKED,
            operatory=operatory,
            patient_id=patient_id,
            appointment_id=appointment.id,
            notes=reason,
        )
        logger.info("Slot booked", appointment_id=appointment.id, block_id=block.id, provider=provider)
        return BookingResult(appointment=appointment, schedule_block=block)
