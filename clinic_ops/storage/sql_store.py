"""SQLAlchemy-backed dental store."""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select

from clinic_ops.config.logging_config import get_logger
from clinic_ops.exceptions import NotFoundError
from clinic_ops.models.enums import AppointmentStatus, DentalModality, RiskLevel
from clinic_ops.models.records import (
    AppointmentRecord,
    DentalImageRecord,
    ImageFinding,
    PatientRecord,
    utcnow,
)
from clinic_ops.storage.database import Database
from clinic_ops.storage.interfaces import DentalStore, merge_patient, new_id
from clinic_ops.storage.models import AppointmentModel, DentalImageModel, PatientModel

logger = get_logger(__name__)


def patient_from_row(row: PatientModel) -> PatientRecord:
    return PatientRecord(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        date_of_birth=row.date_of_birth,
        phone=row.phone,
        email=row.email,
        insurance_carrier=row.insurance_carrier,
        metadata=dict(row.metadata_json or {}),
        external_ids=dict(row.external_ids or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def appointment_from_row(row: AppointmentModel) -> AppointmentRecord:
    return AppointmentRecord(
        id=row.id,
        patient_id=row.patient_id,
        provider=row.provider,
        reason=row.reason,
        start_at=row.start_at,
        end_at=row.end_at,
        status=AppointmentStatus(row.status),
        created_at=row.created_at,
    )


def image_from_row(row: DentalImageModel) -> DentalImageRecord:
    return DentalImageRecord(
        id=row.id,
        patient_id=row.patient_id,
        modality=DentalModality(row.modality),
        image_url=row.image_url,
        captured_at=row.captured_at,
        tooth_numbers=list(row.tooth_numbers or []),
        notes=row.notes,
        findings=[ImageFinding.from_dict(f) for f in (row.findings or [])],
        risk_level=RiskLevel(row.risk_level) if row.risk_level else None,
        analyzed_at=row.analyzed_at,
        created_at=row.created_at,
    )


class SqlDentalStore(DentalStore):
    """Dental store persisting to a relational database through SQLAlchemy."""

    def __init__(self, database: Database):
        self.database = database

    async def upsert_patient(
        self,
        *,
        first_name: str,
        last_name: str,
        date_of_birth: str,
        patient_id: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        insurance_carrier: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        external_ids: Optional[Dict[str, str]] = None,
    ) -> PatientRecord:
        patient_id = patient_id or new_id()
        async with self.database.get_db() as session:
            row = await session.get(PatientModel, patient_id)
            patient = merge_patient(
                patient_from_row(row) if row else None,
                patient_id=patient_id,
                first_name=first_name,
                last_name=last_name,
                date_of_birth=date_of_birth,
                phone=phone,
                email=email,
                insurance_carrier=insurance_carrier,
                metadata=metadata,
                external_ids=external_ids,
            )
            if row is None:
                row = PatientModel(id=patient_id, created_at=patient.created_at)
                session.add(row)
            row.first_name = patient.first_name
            row.last_name = patient.last_name
            row.date_of_birth = patient.date_of_birth
            row.phone = patient.phone
            row.email = patient.email
            row.insurance_carrier = patient.insurance_carrier
            row.metadata_json = patient.metadata
            row.external_ids = patient.external_ids
            row.updated_at = patient.updated_at
        return patient

    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        async with self.database.get_db() as session:
            row = await session.get(PatientModel, patient_id)
            return patient_from_row(row) if row else None

    async def list_patients(self) -> List[PatientRecord]:
        async with self.database.get_db() as session:
            result = await session.execute(select(PatientModel).order_by(PatientModel.last_name))
            return [patient_from_row(row) for row in result.scalars().all()]

    async def create_appointment(
        self,
        *,
        patient_id: str,
        provider: str,
        reason: str,
        start_at: datetime,
        end_at: datetime,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> AppointmentRecord:
        appointment = AppointmentRecord(
            id=new_id(),
            patient_id=patient_id,
            provider=provider,
            reason=reason,
            start_at=start_at,
            end_at=end_at,
            status=status,
        )
        async with self.database.get_db() as session:
            session.add(AppointmentModel(
                id=appointment.id,
                patient_id=appointment.patient_id,
                provider=appointment.provider,
                reason=appointment.reason,
                start_at=appointment.start_at,
                end_at=appointment.end_at,
                status=appointment.status.value,
                created_at=appointment.created_at,
            ))
        return appointment

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        async with self.database.get_db() as session:
            row = await session.get(AppointmentModel, appointment_id)
            return appointment_from_row(row) if row else None

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Optional[AppointmentRecord]:
        async with self.database.get_db() as session:
            row = await session.get(AppointmentModel, appointment_id)
            if row is None:
                return None
            row.status = status.value
            return appointment_from_row(row)

    async def list_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        async with self.database.get_db() as session:
            result = await session.execute(
                select(AppointmentModel)
                .where(AppointmentModel.patient_id == patient_id)
                .order_by(AppointmentModel.start_at)
            )
            return [appointment_from_row(row) for row in result.scalars().all()]

    async def list_appointments_by_range(
        self,
        start_at: datetime,
        end_at: datetime,
        provider: Optional[str] = None,
    ) -> List[AppointmentRecord]:
        query = select(AppointmentModel).where(
            AppointmentModel.start_at < end_at,
            AppointmentModel.end_at > start_at,
        )
        if provider is not None:
            query = query.where(AppointmentModel.provider == provider)
        query = query.order_by(AppointmentModel.start_at)

        async with self.database.get_db() as session:
            result = await session.execute(query)
            return [appointment_from_row(row) for row in result.scalars().all()]

    async def create_dental_image(
        self,
        *,
        patient_id: str,
        modality: DentalModality,
        image_url: str,
        captured_at: Optional[datetime] = None,
        tooth_numbers: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> DentalImageRecord:
        image = DentalImageRecord(
            id=new_id(),
            patient_id=patient_id,
            modality=modality,
            image_url=image_url,
            captured_at=captured_at or utcnow(),
            tooth_numbers=list(tooth_numbers or []),
            notes=notes,
        )
        async with self.database.get_db() as session:
            session.add(DentalImageModel(
                id=image.id,
                patient_id=image.patient_id,
                modality=image.modality.value,
                image_url=image.image_url,
                captured_at=image.captured_at,
                tooth_numbers=image.tooth_numbers,
                notes=image.notes,
                findings=[],
                created_at=image.created_at,
            ))
        return image

    async def get_dental_image(self, image_id: str) -> Optional[DentalImageRecord]:
        async with self.database.get_db() as session:
            row = await session.get(DentalImageModel, image_id)
            return image_from_row(row) if row else None

    async def list_dental_images(self, patient_id: str) -> List[DentalImageRecord]:
        async with self.database.get_db() as session:
            result = await session.execute(
                select(DentalImageModel)
                .where(DentalImageModel.patient_id == patient_id)
                .order_by(DentalImageModel.captured_at.desc())
            )
            return [image_from_row(row) for row in result.scalars().all()]

    async def save_image_analysis(
        self,
        image_id: str,
        findings: List[ImageFinding],
        risk_level: RiskLevel,
        analyzed_at: Optional[datetime] = None,
    ) -> DentalImageRecord:
        async with self.database.get_db() as session:
            row = await session.get(DentalImageModel, image_id)
            if row is None:
                raise NotFoundError(f"Dental image {image_id} not found")
            row.findings = [f.to_dict() for f in findings]
            row.risk_level = risk_level.value
            row.analyzed_at = analyzed_at or utcnow()
            logger.debug("Image analysis saved", image_id=image_id, findings=len(findings))
            return image_from_row(row)
