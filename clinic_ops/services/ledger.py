"""Account ledger postings, aging and balances."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from clinic_ops.models.enums import AgingBucket, LedgerEntryType
from clinic_ops.models.records import LedgerEntryRecord, RecordMixin, utcnow
from clinic_ops.services.money import round_money
from clinic_ops.storage.interfaces import ClinicOpsRepository, new_id

CHARGE_TYPES = frozenset({LedgerEntryType.CHARGE, LedgerEntryType.ADJUSTMENT})
CREDIT_TYPES = frozenset({LedgerEntryType.PAYMENT, LedgerEntryType.INSURANCE_PAYMENT})

_SECONDS_PER_DAY = 24 * 60 * 60


def bucket_by_age(entry_date: datetime, as_of: datetime) -> AgingBucket:
    """Classify by whole days elapsed; 30, 60 and 90 fall in the lower bucket."""
    age_days = int((as_of - entry_date).total_seconds() // _SECONDS_PER_DAY)
    if age_days <= 30:
        return AgingBucket.CURRENT
    if age_days <= 60:
        return AgingBucket.DAYS_31_60
    if age_days <= 90:
        return AgingBucket.DAYS_61_90
    return AgingBucket.OVER_90


@dataclass
class AccountTotals(RecordMixin):
    charges: float = 0.0
    credits: float = 0.0
    pending_insurance: float = 0.0
    estimated_balance: float = 0.0


@dataclass
class AccountSnapshot(RecordMixin):
    entries: List[LedgerEntryRecord]
    aging: Dict[str, float] = field(default_factory=dict)
    totals: AccountTotals = field(default_factory=AccountTotals)


class AccountLedgerService:
    """Append-only ledger with aging snapshot."""

    def __init__(self, repository: ClinicOpsRepository):
        self.repository = repository

    async def post_ledger_entry(
        self,
        *,
        patient_id: str,
        type: LedgerEntryType,
        amount: float,
        description: str,
        created_by: str,
        entry_date: Optional[datetime] = None,
        family_id: Optional[str] = None,
        related_plan_item_id: Optional[str] = None,
        claim_status: Optional[str] = None,
    ) -> LedgerEntryRecord:
        now = utcnow()
        entry = LedgerEntryRecord(
            id=new_id(),
            patient_id=patient_id,
            type=type,
            amount=round_money(amount),
            description=description,
            entry_date=entry_date or now,
            created_by=created_by,
            family_id=family_id,
            related_plan_item_id=related_plan_item_id,
            claim_status=claim_status,
            created_at=now,
        )
        return await self.repository.save_ledger_entry(entry)

    async def get_account_snapshot(self, patient_id: str, as_of: Optional[datetime] = None) -> AccountSnapshot:
        """
        Aggregate a patient's ledger into totals and aging buckets.

        Charges and adjustments are aged against ``as_of`` (default: now).
        Claims count as pending insurance and are not aged.
        """
        as_of = as_of or utcnow()
        entries = await self.repository.list_ledger_entries_by_patient(patient_id)

        aging = {bucket: 0.0 for bucket in AgingBucket}
        charges = credits = pending_insurance = 0.0

        for entry in entries:
            if entry.type in CHARGE_TYPES:
                charges += entry.amount
                aging[bucket_by_age(entry.entry_date, as_of)] += entry.amount
            elif entry.type in CREDIT_TYPES:
                credits += entry.amount
            elif entry.type == LedgerEntryType.CLAIM:
                pending_insurance += entry.amount

        return AccountSnapshot(
            entries=entries,
            aging={bucket.value: round_money(total) for bucket, total in aging.items()},
            totals=AccountTotals(
                charges=round_money(charges),
                credits=round_money(credits),
                pending_insurance=round_money(pending_insurance),
                estimated_balance=round_money(charges - credits - pending_insurance),
            ),
        )
