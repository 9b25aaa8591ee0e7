"""Import of legacy practice-management snapshots."""
from dataclasses import dataclass
from typing import Dict

from clinic_ops.config.logging_config import get_logger
from clinic_ops.models.enums import AppointmentStatus, BenefitCategory, TreatmentPlanStatus
from clinic_ops.models.records import Actor, RecordMixin
from clinic_ops.models.snapshot import PracticeSnapshot, SnapshotInsurancePlan
from clinic_ops.services.benefits import DEFAULT_BENEFIT_PERCENTAGES, BenefitEstimationService
from clinic_ops.services.family import FamilyLinker
from clinic_ops.services.ledger import AccountLedgerService
from clinic_ops.storage.interfaces import DentalStore

logger = get_logger(__name__)

LEGACY_PATNUM_KEY = "opendental_patnum"
LEGACY_CHART_NUMBER_KEY = "opendental_chartnumber"
IMPORTED_FAMILY_RELATION = "family"


@dataclass
class ImportResult(RecordMixin):
    patients_imported: int = 0
    appointments_imported: int = 0
    insurance_plans_imported: int = 0
    treatment_plans_imported: int = 0
    treatment_plan_items_imported: int = 0
    ledger_entries_imported: int = 0
    actor: str = ""


def _snapshot_benefits(plan: SnapshotInsurancePlan) -> Dict[str, float]:
    # Missing or zero percentages fall back to the defaults.
    exported = {
        BenefitCategory.PREVENTIVE: plan.preventive,
        BenefitCategory.RESTORATIVE: plan.restorative,
        BenefitCategory.ENDODONTIC: plan.endodontic,
        BenefitCategory.PERIODONTAL: plan.periodontal,
        BenefitCategory.ORAL_SURGERY: plan.oral_surgery,
        BenefitCategory.CROWNS: plan.crowns,
        BenefitCategory.PROSTHODONTICS: plan.prosthodontics,
    }
    return {
        category.value: exported[category] or default
        for category, default in DEFAULT_BENEFIT_PERCENTAGES.items()
    }


class SnapshotImporter:
    """
    Loads a snapshot in dependency order: patients, family links,
    appointments, insurance, treatment plans (each estimated after its
    items), then ledger entries.

    Rows that reference an unknown pat_num are skipped. Nothing is rolled
    back if a later step fails.
    """

    def __init__(
        self,
        store: DentalStore,
        family: FamilyLinker,
        benefits: BenefitEstimationService,
        ledger: AccountLedgerService,
    ):
        self.store = store
        self.family = family
        self.benefits = benefits
        self.ledger = ledger

    async def import_snapshot(self, snapshot: PracticeSnapshot, actor: Actor) -> ImportResult:
        result = ImportResult(actor=actor.user_id)
        patient_ids: Dict[str, str] = {}

        for row in snapshot.patients:
            external_ids = {LEGACY_PATNUM_KEY: row.pat_num}
            if row.chart_number:
                external_ids[LEGACY_CHART_NUMBER_KEY] = row.chart_number
            patient = await self.store.upsert_patient(
                first_name=row.first_name,
                last_name=row.last_name,
                date_of_birth=row.birthdate,
                phone=row.phone,
                email=row.email,
                external_ids=external_ids,
            )
            patient_ids[row.pat_num] = patient.id
            result.patients_imported += 1

        for row in snapshot.patients:
            if not row.guarantor_pat_num or row.guarantor_pat_num == row.pat_num:
                continue
            guarantor_id = patient_ids.get(row.guarantor_pat_num)
            member_id = patient_ids.get(row.pat_num)
            if guarantor_id and member_id:
                await self.family.upsert_family(
                    guarantor_patient_id=guarantor_id,
                    member_patient_id=member_id,
                    relation_to_guarantor=IMPORTED_FAMILY_RELATION,
                )

        for row in snapshot.appointments:
            patient_id = patient_ids.get(row.pat_num)
            if not patient_id:
                continue
            await self.store.create_appointment(
                patient_id=patient_id,
                provider=row.provider,
                reason=row.reason,
                start_at=row.start_at,
                end_at=row.end_at,
                status=row.status or AppointmentStatus.SCHEDULED,
            )
            result.appointments_imported += 1

        for row in snapshot.insurance_plans:
            patient_id = patient_ids.get(row.pat_num)
            if not patient_id:
                continue
            await self.benefits.upsert_insurance_plan(
                patient_id=patient_id,
                tier=row.tier,
                carrier=row.carrier,
                subscriber_name=row.subscriber_name,
                subscriber_id=row.subscriber_id,
                relation_to_subscriber=row.relation_to_subscriber,
                group_name=row.group_name,
                group_number=row.group_number,
                annual_max=row.annual_max,
                deductible=row.deductible,
                benefit_percentages=_snapshot_benefits(row),
            )
            result.insurance_plans_imported += 1

        for row in snapshot.treatment_plans:
            patient_id = patient_ids.get(row.pat_num)
            if not patient_id:
                continue
            plan = await self.benefits.create_treatment_plan(
                patient_id=patient_id,
                heading=row.heading,
                status=row.status or TreatmentPlanStatus.ACTIVE,
                signed=bool(row.signed),
            )
            result.treatment_plans_imported += 1

            for item in row.items:
                await self.benefits.add_treatment_plan_item(
                    plan_id=plan.id,
                    patient_id=patient_id,
                    ada_code=item.ada_code,
                    description=item.description,
                    fee=item.fee,
                    tooth=item.tooth,
                    surface=item.surface,
                    diagnosis=item.diagnosis,
                    allowed_fee=item.allowed_fee,
                    priority=item.priority or 0,
                )
                result.treatment_plan_items_imported += 1

            await self.benefits.estimate_treatment_plan(plan.id)

        for row in snapshot.ledger_entries:
            patient_id = patient_ids.get(row.pat_num)
            if not patient_id:
                continue
            await self.ledger.post_ledger_entry(
                patient_id=patient_id,
                type=row.type,
                amount=row.amount,
                description=row.description,
                entry_date=row.entry_date,
                claim_status=row.claim_status,
                created_by=actor.user_id,
            )
            result.ledger_entries_imported += 1

        logger.info(
            "Snapshot imported",
            actor=actor.user_id,
            patients=result.patients_imported,
            appointments=result.appointments_imported,
            insurance_plans=result.insurance_plans_imported,
            treatment_plans=result.treatment_plans_imported,
            treatment_plan_items=result.treatment_plan_items_imported,
            ledger_entries=result.ledger_entries_imported,
        )
        return result
