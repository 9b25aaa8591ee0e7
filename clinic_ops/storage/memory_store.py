"""In-memory dental store for local development and tests."""
from copy import deepcopy
from datetime import datetime
from typing import Dict, List, Optional

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
from clinic_ops.storage.interfaces import DentalStore, merge_patient, new_id, overlap

logger = get_logger(__name__)


class InMemoryDentalStore(DentalStore):
    """
    Dictionary-backed store.

    Records are copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self):
        self._patients: Dict[str, PatientRecord] = {}
        self._appointments: Dict[str, AppointmentRecord] = {}
        self._images: Dict[str, DentalImageRecord] = {}

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
        patient = merge_patient(
            self._patients.get(patient_id),
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
        self._patients[patient_id] = deepcopy(patient)
        return patient

    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        patient = self._patients.get(patient_id)
        return deepcopy(patient) if patient else None

    async def list_patients(self) -> List[PatientRecord]:
        return sorted(
            (deepcopy(p) for p in self._patients.values()),
            key=lambda p: p.last_name,
        )

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
        self._appointments[appointment.id] = deepcopy(appointment)
        return appointment

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        appointment = self._appointments.get(appointment_id)
        return deepcopy(appointment) if appointment else None

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Optional[AppointmentRecord]:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            return None
        appointment.status = status
        return deepcopy(appointment)

    async def list_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        return sorted(
            (deepcopy(a) for a in self._appointments.values() if a.patient_id == patient_id),
            key=lambda a: a.start_at,
        )

    async def list_appointments_by_range(
        self,
        start_at: datetime,
        end_at: datetime,
        provider: Optional[str] = None,
    ) -> List[AppointmentRecord]:
        matches = [
            deepcopy(a)
            for a in self._appointments.values()
            if overlap(a.start_at, a.end_at, start_at, end_at)
            and (provider is None or a.provider == provider)
        ]
        return sorted(matches, key=lambda a: a.start_at)

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
        self._images[image.id] = deepcopy(image)
        return image

    async def get_dental_image(self, image_id: str) -> Optional[DentalImageRecord]:
        image = self._images.get(image_id)
        return deepcopy(image) if image else None

    async def list_dental_images(self, patient_id: str) -> List[DentalImageRecord]:
        return sorted(
            (deepcopy(i) for i in self._images.values() if i.patient_id == patient_id),
            key=lambda i: i.captured_at,
            reverse=True,
        )

    async def save_image_analysis(
        self,
        image_id: str,
        findings: List[ImageFinding],
        risk_level: RiskLevel,
        analyzed_at: Optional[datetime] = None,
    ) -> DentalImageRecord:
        image = self._images.get(image_id)
        if image is None:
            raise NotFoundError(f"Dental image {image_id} not found")
        image.findings = deepcopy(findings)
        image.risk_level = risk_level
        image.analyzed_at = analyzed_at or utcnow()
        logger.debug("Image analysis saved", image_id=image_id, findings=len(findings))
        return deepcopy(image)
