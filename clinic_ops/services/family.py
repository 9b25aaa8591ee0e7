"""Guarantor-based household linking."""
from typing import Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.exceptions import NotFoundError
from clinic_ops.models.records import FamilyMember, FamilyRecord, utcnow
from clinic_ops.storage.interfaces import ClinicOpsRepository, DentalStore, new_id

logger = get_logger(__name__)

GUARANTOR_RELATION = "self"


class FamilyLinker:
    """Merges patients into guarantor-based families."""

    def __init__(self, store: DentalStore, repository: ClinicOpsRepository):
        self.store = store
        self.repository = repository

    async def upsert_family(
        self,
        *,
        guarantor_patient_id: str,
        member_patient_id: str,
        relation_to_guarantor: str,
        family_id: Optional[str] = None,
    ) -> FamilyRecord:
        """
        Link a member to the guarantor's family, creating it if needed.

        The family is resolved by family_id, then by guarantor. A member
        already present has its relation updated in place, so repeating a
        call does not add a duplicate.

        Raises:
            NotFoundError: If either patient does not exist
        """
        guarantor = await self.store.get_patient(guarantor_patient_id)
        member = await self.store.get_patient(member_patient_id)
        if guarantor is None or member is None:
            raise NotFoundError("Guarantor and member must both exist")

        now = utcnow()
        family = None
        if family_id:
            family = await self.repository.find_family_by_id(family_id)
        if family is None:
            family = await self.repository.find_family_by_guarantor(guarantor_patient_id)
        if family is None:
            family = FamilyRecord(
                id=family_id or new_id(),
                guarantor_patient_id=guarantor_patient_id,
                members=[
                    FamilyMember(
                        patient_id=guarantor_patient_id,
                        relation_to_guarantor=GUARANTOR_RELATION,
                        is_guarantor=True,
                    )
                ],
                created_at=now,
                updated_at=now,
            )
            logger.info("Family created", family_id=family.id, guarantor_patient_id=guarantor_patient_id)

        existing = family.find_member(member_patient_id)
        if existing is not None:
            existing.relation_to_guarantor = relation_to_guarantor
        else:
            family.members.append(
                FamilyMember(
                    patient_id=member_patient_id,
                    relation_to_guarantor=relation_to_guarantor,
                    is_guarantor=False,
                )
            )

        family.updated_at = now
        return await self.repository.save_family(family)

    async def find_family_by_patient(self, patient_id: str) -> Optional[FamilyRecord]:
        return await self.repository.find_family_by_patient(patient_id)
