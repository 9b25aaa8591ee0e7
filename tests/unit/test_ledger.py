"""Tests for ledger postings, aging buckets and the account snapshot."""
from datetime import timedelta

import pytest

from clinic_ops.models.enums import AgingBucket, LedgerEntryType
from clinic_ops.services.ledger import bucket_by_age
from clinic_ops.services.money import round_money
from tests.utils import utc

AS_OF = utc(2025, 6, 30, 12)
PATIENT_ID = "p-1"


def days_ago(days: int):
    return AS_OF - timedelta(days=days)


class TestBucketByAge:

    @pytest.mark.parametrize(
        "days,bucket",
        [
            (0, AgingBucket.CURRENT),
            (30, AgingBucket.CURRENT),
            (31, AgingBucket.DAYS_31_60),
            (45, AgingBucket.DAYS_31_60),
            (60, AgingBucket.DAYS_31_60),
            (61, AgingBucket.DAYS_61_90),
            (90, AgingBucket.DAYS_61_90),
            (91, AgingBucket.OVER_90),
            (400, AgingBucket.OVER_90),
        ],
    )
    def test_boundaries(self, days, bucket):
        assert bucket_by_age(days_ago(days), AS_OF) == bucket

    def test_partial_days_are_floored(self):
        assert bucket_by_age(AS_OF - timedelta(days=30, hours=23), AS_OF) == AgingBucket.CURRENT


class TestRoundMoney:

    @pytest.mark.parametrize(
        "value,expected",
        [(10.005, 10.01), (2.675, 2.68), (1.004, 1.0), (-1.005, -1.01), (640, 640.0)],
    )
    def test_half_up(self, value, expected):
        assert round_money(value) == expected


class TestAccountLedgerService:

    @pytest.mark.asyncio
    async def test_post_rounds_amount_and_defaults_date(self, ledger):
        entry = await ledger.post_ledger_entry(
            patient_id=PATIENT_ID,
            type=LedgerEntryType.CHARGE,
            amount=10.005,
            description="Exam",
            created_by="billing-1",
        )
        assert entry.amount == 10.01
        assert entry.entry_date is not None
        assert entry.created_by == "billing-1"

    @pytest.mark.asyncio
    async def test_snapshot_totals_and_aging(self, ledger):
        postings = [
            (LedgerEntryType.CHARGE, 100.0, 45),
            (LedgerEntryType.CHARGE, 50.0, 5),
            (LedgerEntryType.PAYMENT, 40.0, 3),
            (LedgerEntryType.CLAIM, 50.0, 2),
        ]
        for entry_type, amount, age in postings:
            await ledger.post_ledger_entry(
                patient_id=PATIENT_ID,
                type=entry_type,
                amount=amount,
                description=entry_type.value,
                created_by="billing-1",
                entry_date=days_ago(age),
            )

        snapshot = await ledger.get_account_snapshot(PATIENT_ID, as_of=AS_OF)

        assert snapshot.totals.charges == 150.0
        assert snapshot.totals.credits == 40.0
        assert snapshot.totals.pending_insurance == 50.0
        assert snapshot.totals.estimated_balance == 60.0
        assert snapshot.aging == {"0-30": 50.0, "31-60": 100.0, "61-90": 0.0, "over-90": 0.0}
        assert [e.amount for e in snapshot.entries] == [100.0, 50.0, 40.0, 50.0]

    @pytest.mark.asyncio
    async def test_adjustments_count_as_charges_and_insurance_payments_as_credits(self, ledger):
        await ledger.post_ledger_entry(
            patient_id=PATIENT_ID,
            type=LedgerEntryType.ADJUSTMENT,
            amount=25.0,
            description="Late fee",
            created_by="billing-1",
            entry_date=days_ago(100),
        )
        await ledger.post_ledger_entry(
            patient_id=PATIENT_ID,
            type=LedgerEntryType.INSURANCE_PAYMENT,
            amount=20.0,
            description="EOB",
            created_by="billing-1",
            entry_date=days_ago(1),
        )
        snapshot = await ledger.get_account_snapshot(PATIENT_ID, as_of=AS_OF)
        assert snapshot.totals.charges == 25.0
        assert snapshot.totals.credits == 20.0
        assert snapshot.aging["over-90"] == 25.0
        assert snapshot.totals.estimated_balance == 5.0

    @pytest.mark.asyncio
    async def test_empty_account(self, ledger):
        snapshot = await ledger.get_account_snapshot("nobody", as_of=AS_OF)
        assert snapshot.entries == []
        assert snapshot.totals.estimated_balance == 0.0
        assert set(snapshot.aging) == {b.value for b in AgingBucket}

    @pytest.mark.asyncio
    async def test_snapshot_serializes_with_bucket_keys(self, ledger):
        await ledger.post_ledger_entry(
            patient_id=PATIENT_ID,
            type=LedgerEntryType.CHARGE,
            amount=80.0,
            description="Exam",
            created_by="billing-1",
            entry_date=days_ago(10),
        )
        data = (await ledger.get_account_snapshot(PATIENT_ID, as_of=AS_OF)).to_dict()
        assert data["aging"]["0-30"] == 80.0
        assert data["entries"][0]["type"] == "charge"
        assert data["totals"]["estimated_balance"] == 80.0
