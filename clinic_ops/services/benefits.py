"""Insurance plans, treatment plans and the benefit estimation waterfall."""
import math
from dataclasses import dataclass, field, replace
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from clinic_ops.config.logging_config import get_logger
from clinic_ops.exceptions import NotFoundError, ValidationError
from clinic_ops.models.enums import (
    BenefitCategory,
    InsuranceTier,
    TreatmentPlanItemStatus,
    TreatmentPlanStatus,
)
from clinic_ops.models.records import (
    InsurancePlanRecord,
    RecordMixin,
    TreatmentPlanItemRecord,
    TreatmentPlanRecord,
    utcnow,
)
from clinic_ops.services.money import round_money
from clinic_ops.storage.interfaces import ClinicOpsRepository, new_id

logger = get_logger(__name__)

DEFAULT_BENEFIT_PERCENTAGES: Dict[BenefitCategory, float] = {
    BenefitCategory.PREVENTIVE: 100,
    BenefitCategory.RESTORATIVE: 80,
    BenefitCategory.ENDODONTIC: 80,
    BenefitCategory.PERIODONTAL: 80,
    BenefitCategory.ORAL_SURGERY: 80,
    BenefitCategory.CROWNS: 50,
    BenefitCategory.PROSTHODONTICS: 50,
}

# Checked in order, first match wins. "D3" precedes "D33"/"D34" and "D2"
# precedes "D27", so those later rules only apply to codes that reach them.
ADA_CATEGORY_RULES = (
    (("D1", "T1"), BenefitCategory.PREVENTIVE),
    (("D3", "T3", "D2"), BenefitCategory.RESTORATIVE),
    (("D33", "D34"), BenefitCategory.ENDODONTIC),
    (("D4",), BenefitCategory.PERIODONTAL),
    (("D7",), BenefitCategory.ORAL_SURGERY),
    (("D27",), BenefitCategory.CROWNS),
    (("D5", "D6"), BenefitCategory.PROSTHODONTICS),
)


def category_for_ada_code(ada_code: str) -> BenefitCategory:
    """Map a procedure code to its benefit category by prefix."""
    code = ada_code.upper()
    for prefixes, category in ADA_CATEGORY_RULES:
        if code.startswith(prefixes):
            return category
    return BenefitCategory.RESTORATIVE


def clamp_percent(value: Any, fallback: float) -> float:
    """Clamp a finite number into [0, 100]; anything else yields the fallback."""
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        return fallback
    return max(0.0, min(100.0, float(value)))


def normalize_benefits(percentages: Optional[Mapping[Any, Any]]) -> Dict[str, float]:
    """
    Fill and clamp all seven categories, keyed by category value.

    Raises:
        ValidationError: If a key is not a benefit category
    """
    supplied: Dict[BenefitCategory, Any] = {}
    for key, value in (percentages or {}).items():
        try:
            supplied[BenefitCategory(key)] = value
        except ValueError:
            expected = ", ".join(c.value for c in BenefitCategory)
            raise ValidationError(f"Unknown benefit category {key!r}; expected one of: {expected}") from None
    return {
        category.value: clamp_percent(supplied.get(category), default)
        for category, default in DEFAULT_BENEFIT_PERCENTAGES.items()
    }


@dataclass
class EstimateTotals(RecordMixin):
    fee_total: float = 0.0
    primary_estimate_total: float = 0.0
    secondary_estimate_total: float = 0.0
    patient_estimate_total: float = 0.0


@dataclass
class PlanEstimate(RecordMixin):
    plan: TreatmentPlanRecord
    items: List[TreatmentPlanItemRecord]
    totals: EstimateTotals


@dataclass
class PlanWithItems(RecordMixin):
    plan: TreatmentPlanRecord
    items: List[TreatmentPlanItemRecord] = field(default_factory=list)


def estimate_item(
    item: TreatmentPlanItemRecord,
    primary: Optional[InsurancePlanRecord],
    secondary: Optional[InsurancePlanRecord],
) -> TreatmentPlanItemRecord:
    """
    Apply the primary-then-secondary waterfall to one item.

    A missing plan contributes 0%. Returns a copy with rounded estimates
    and a refreshed updated_at.
    """
    category = category_for_ada_code(item.ada_code).value
    allowed = item.allowed_fee if item.allowed_fee is not None else item.fee

    primary_pct = clamp_percent(primary.benefit_percentages.get(category) if primary else None, 0)
    primary_estimate = allowed * primary_pct / 100

    remaining = max(0.0, allowed - primary_estimate)
    secondary_pct = clamp_percent(secondary.benefit_percentages.get(category) if secondary else None, 0)
    secondary_estimate = remaining * secondary_pct / 100

    patient_estimate = max(0.0, item.fee - primary_estimate - secondary_estimate)

    return replace(
        item,
        insurance_est_primary=round_money(primary_estimate),
        insurance_est_secondary=round_money(secondary_estimate),
        patient_est=round_money(patient_estimate),
        updated_at=utcnow(),
    )


class BenefitEstimationService:
    """Coverage records, treatment plans and cost-split estimation."""

    def __init__(self, repository: ClinicOpsRepository):
        self.repository = repository

    async def upsert_insurance_plan(
        self,
        *,
        patient_id: str,
        tier: InsuranceTier,
        carrier: str,
        subscriber_name: str,
        subscriber_id: str,
        relation_to_subscriber: str,
        plan_id: Optional[str] = None,
        employer: Optional[str] = None,
        group_name: Optional[str] = None,
        group_number: Optional[str] = None,
        annual_max: Optional[float] = None,
        deductible: Optional[float] = None,
        benefit_percentages: Optional[Mapping[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> InsurancePlanRecord:
        plan_id = plan_id or new_id()
        existing = await self.repository.get_insurance_plan(plan_id)
        now = utcnow()
        plan = InsurancePlanRecord(
            id=plan_id,
            patient_id=patient_id,
            tier=tier,
            carrier=carrier,
            subscriber_name=subscriber_name,
            subscriber_id=subscriber_id,
            relation_to_subscriber=relation_to_subscriber,
            employer=employer,
            group_name=group_name,
            group_number=group_number,
            annual_max=annual_max,
            deductible=deductible,
            benefit_percentages=normalize_benefits(benefit_percentages),
            notes=notes,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        return await self.repository.save_insurance_plan(plan)

    async def list_insurance_plans(self, patient_id: str) -> List[InsurancePlanRecord]:
        return await self.repository.list_insurance_plans_by_patient(patient_id)

    async def create_treatment_plan(
        self,
        *,
        patient_id: str,
        heading: str,
        plan_id: Optional[str] = None,
        status: TreatmentPlanStatus = TreatmentPlanStatus.ACTIVE,
        signed: bool = False,
    ) -> TreatmentPlanRecord:
        now = utcnow()
        plan = TreatmentPlanRecord(
            id=plan_id or new_id(),
            patient_id=patient_id,
            heading=heading,
            status=status,
            signed=bool(signed),
            created_at=now,
            updated_at=now,
        )
        return await self.repository.save_treatment_plan(plan)

    async def add_treatment_plan_item(
        self,
        *,
        plan_id: str,
        patient_id: str,
        ada_code: str,
        description: str,
        fee: float,
        item_id: Optional[str] = None,
        tooth: Optional[str] = None,
        surface: Optional[str] = None,
        diagnosis: Optional[str] = None,
        allowed_fee: Optional[float] = None,
        priority: int = 0,
    ) -> TreatmentPlanItemRecord:
        """
        Add a proposed procedure to an existing plan.

        Raises:
            NotFoundError: If the plan does not exist
            ValidationError: If fee is negative
        """
        plan = await self.repository.get_treatment_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Treatment plan {plan_id} not found")
        if fee < 0:
            raise ValidationError("fee must be zero or greater")

        now = utcnow()
        item = TreatmentPlanItemRecord(
            id=item_id or new_id(),
            plan_id=plan_id,
            patient_id=patient_id,
            ada_code=ada_code,
            description=description,
            fee=fee,
            tooth=tooth,
            surface=surface,
            diagnosis=diagnosis,
            allowed_fee=allowed_fee,
            priority=priority or 0,
            status=TreatmentPlanItemStatus.PROPOSED,
            insurance_est_primary=0.0,
            insurance_est_secondary=0.0,
            patient_est=fee,
            created_at=now,
            updated_at=now,
        )
        return await self.repository.save_treatment_plan_item(item)

    async def list_treatment_plans(self, patient_id: str) -> List[PlanWithItems]:
        plans = await self.repository.list_treatment_plans_by_patient(patient_id)
        return [
            PlanWithItems(plan=plan, items=await self.repository.list_treatment_plan_items_by_plan(plan.id))
            for plan in plans
        ]

    async def estimate_treatment_plan(self, plan_id: str) -> PlanEstimate:
        """
        Recompute and persist estimates for every item on a plan.

        The first primary and first secondary plan on file for the patient
        drive the estimate. Totals are sums of the rounded per-item values.

        Raises:
            NotFoundError: If the plan does not exist
        """
        plan = await self.repository.get_treatment_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Treatment plan {plan_id} not found")

        coverage = await self.list_insurance_plans(plan.patient_id)
        primary = next((p for p in coverage if p.tier == InsuranceTier.PRIMARY), None)
        secondary = next((p for p in coverage if p.tier == InsuranceTier.SECONDARY), None)

        items = []
        for source in await self.repository.list_treatment_plan_items_by_plan(plan.id):
            items.append(await self.repository.save_treatment_plan_item(estimate_item(source, primary, secondary)))

        totals = EstimateTotals(
            fee_total=round_money(sum(i.fee for i in items)),
            primary_estimate_total=round_money(sum(i.insurance_est_primary for i in items)),
            secondary_estimate_total=round_money(sum(i.insurance_est_secondary for i in items)),
            patient_estimate_total=round_money(sum(i.patient_est for i in items)),
        )
        logger.info(
            "Treatment plan estimated",
            plan_id=plan.id,
            items=len(items),
            has_primary=primary is not None,
            has_secondary=secondary is not None,
        )
        return PlanEstimate(plan=plan, items=items, totals=totals)
