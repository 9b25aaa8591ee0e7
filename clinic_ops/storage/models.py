"""SQLAlchemy ORM models for database tables."""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Float, Index, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class IsoDateTime(TypeDecorator):
    """
    Persist datetimes as fixed-width ISO-8601 UTC text.

    Values are normalized to UTC with microsecond precision, so string
    comparison in range queries matches chronological order.
    """
    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    def process_result_value(self, value: Optional[str], dialect) -> Optional[datetime]:
        if value is None:
            return None
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed


class PatientModel(Base):
    __tablename__ = "patients"

    id = Column(String(64), primary_key=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    date_of_birth = Column(String(10), nullable=False)
    phone = Column(String(40), nullable=True)
    email = Column(String(255), nullable=True)
    insurance_carrier = Column(String(255), nullable=True)
    metadata_json = Column(JSON, nullable=False, default=dict)
    external_ids = Column(JSON, nullable=False, default=dict)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_patients_last_name", "last_name"),
    )


class AppointmentModel(Base):
    __tablename__ = "appointments"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    provider = Column(String(120), nullable=False)
    reason = Column(Text, nullable=False)
    start_at = Column(IsoDateTime, nullable=False)
    end_at = Column(IsoDateTime, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    created_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_appointments_patient_start", "patient_id", "start_at"),
        Index("ix_appointments_provider_range", "provider", "start_at", "end_at"),
    )


class DentalImageModel(Base):
    __tablename__ = "dental_images"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    modality = Column(String(30), nullable=False)
    image_url = Column(Text, nullable=False)
    captured_at = Column(IsoDateTime, nullable=False)
    tooth_numbers = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    findings = Column(JSON, nullable=False, default=list)
    risk_level = Column(String(20), nullable=True)
    analyzed_at = Column(IsoDateTime, nullable=True)
    created_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_dental_images_patient_captured", "patient_id", "captured_at"),
    )


class FamilyModel(Base):
    __tablename__ = "families"

    id = Column(String(64), primary_key=True)
    guarantor_patient_id = Column(String(64), nullable=False)
    members = Column(JSON, nullable=False, default=list)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_families_guarantor", "guarantor_patient_id"),
    )


class InsurancePlanModel(Base):
    __tablename__ = "insurance_plans"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    tier = Column(String(20), nullable=False)
    carrier = Column(String(255), nullable=False)
    subscriber_name = Column(String(255), nullable=False)
    subscriber_id = Column(String(120), nullable=False)
    relation_to_subscriber = Column(String(60), nullable=False)
    employer = Column(String(255), nullable=True)
    group_name = Column(String(255), nullable=True)
    group_number = Column(String(120), nullable=True)
    annual_max = Column(Float, nullable=True)
    deductible = Column(Float, nullable=True)
    benefit_percentages = Column(JSON, nullable=False, default=dict)
    notes = Column(Text, nullable=True)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_insurance_plans_patient", "patient_id", "tier"),
    )


class TreatmentPlanModel(Base):
    __tablename__ = "treatment_plans"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    heading = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    signed = Column(Boolean, nullable=False, default=False)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_treatment_plans_patient", "patient_id", "created_at"),
    )


class TreatmentPlanItemModel(Base):
    __tablename__ = "treatment_plan_items"

    id = Column(String(64), primary_key=True)
    plan_id = Column(String(64), nullable=False)
    patient_id = Column(String(64), nullable=False)
    ada_code = Column(String(10), nullable=False)
    description = Column(Text, nullable=False)
    tooth = Column(String(10), nullable=True)
    surface = Column(String(10), nullable=True)
    diagnosis = Column(Text, nullable=True)
    fee = Column(Float, nullable=False)
    allowed_fee = Column(Float, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="proposed")
    insurance_est_primary = Column(Float, nullable=False, default=0.0)
    insurance_est_secondary = Column(Float, nullable=False, default=0.0)
    patient_est = Column(Float, nullable=False, default=0.0)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_treatment_plan_items_plan", "plan_id", "priority"),
    )


class LedgerEntryModel(Base):
    __tablename__ = "ledger_entries"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    family_id = Column(String(64), nullable=True)
    type = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=False)
    entry_date = Column(IsoDateTime, nullable=False)
    related_plan_item_id = Column(String(64), nullable=True)
    claim_status = Column(String(60), nullable=True)
    created_by = Column(String(120), nullable=False)
    created_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_ledger_entries_patient_date", "patient_id", "entry_date"),
    )


class ChartEntryModel(Base):
    __tablename__ = "chart_entries"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    entry_date = Column(IsoDateTime, nullable=False)
    tooth = Column(String(10), nullable=True)
    surface = Column(String(10), nullable=True)
    diagnosis = Column(Text, nullable=True)
    procedure_code = Column(String(10), nullable=True)
    note = Column(Text, nullable=False)
    provider = Column(String(120), nullable=False)
    created_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_chart_entries_patient_date", "patient_id", "entry_date"),
    )


class RecallModel(Base):
    __tablename__ = "recalls"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    recall_type = Column(String(60), nullable=False)
    interval_months = Column(Integer, nullable=False)
    due_date = Column(IsoDateTime, nullable=False)
    last_visit_date = Column(IsoDateTime, nullable=True)
    status = Column(String(20), nullable=False, default="due")
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_recalls_due", "due_date", "status"),
    )


class ScheduleBlockModel(Base):
    __tablename__ = "schedule_blocks"

    id = Column(String(64), primary_key=True)
    provider = Column(String(120), nullable=False)
    operatory = Column(String(60), nullable=True)
    start_at = Column(IsoDateTime, nullable=False)
    end_at = Column(IsoDateTime, nullable=False)
    block_type = Column(String(20), nullable=False)
    patient_id = Column(String(64), nullable=True)
    appointment_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_schedule_blocks_provider_range", "provider", "start_at", "end_at"),
    )


class CommunicationLogModel(Base):
    __tablename__ = "communication_logs"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=False)
    communication_type = Column(String(20), nullable=False)
    direction = Column(String(20), nullable=False)
    note_ciphertext = Column(Text, nullable=False)
    created_by = Column(String(120), nullable=False)
    created_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_communication_logs_patient", "patient_id", "created_at"),
    )


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    patient_id = Column(String(64), nullable=True)
    title = Column(String(255), nullable=False)
    details_ciphertext = Column(Text, nullable=True)
    assigned_to = Column(String(120), nullable=True)
    due_at = Column(IsoDateTime, nullable=True)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="open")
    created_by = Column(String(120), nullable=False)
    created_at = Column(IsoDateTime, nullable=False)
    updated_at = Column(IsoDateTime, nullable=False)

    __table_args__ = (
        Index("ix_tasks_status_assigned", "status", "assigned_to", "updated_at"),
    )
