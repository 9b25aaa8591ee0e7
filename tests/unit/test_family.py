"""Tests for guarantor-based family linking."""
import pytest

from clinic_ops.exceptions import NotFoundError


async def add_patient(store, first_name, last_name="Lovelace"):
    return await store.upsert_patient(first_name=first_name, last_name=last_name, date_of_birth="1980-01-01")


class TestFamilyLinker:

    @pytest.mark.asyncio
    async def test_first_link_creates_family_with_guarantor(self, store, family):
        guarantor = await add_patient(store, "Ada")
        child = await add_patient(store, "Byron")

        record = await family.upsert_family(
            guarantor_patient_id=guarantor.id,
            member_patient_id=child.id,
            relation_to_guarantor="child",
        )

        assert record.guarantor_patient_id == guarantor.id
        assert len(record.members) == 2
        head = record.find_member(guarantor.id)
        assert head.is_guarantor is True
        assert head.relation_to_guarantor == "self"
        member = record.find_member(child.id)
        assert member.is_guarantor is False
        assert member.relation_to_guarantor == "child"

    @pytest.mark.asyncio
    async def test_repeat_link_is_idempotent(self, store, family):
        guarantor = await add_patient(store, "Ada")
        child = await add_patient(store, "Byron")

        first = await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=child.id, relation_to_guarantor="child",
        )
        second = await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=child.id, relation_to_guarantor="dependent",
        )

        assert second.id == first.id
        assert len(second.members) == 2
        assert second.find_member(child.id).relation_to_guarantor == "dependent"

    @pytest.mark.asyncio
    async def test_members_accumulate_under_guarantor(self, store, family):
        guarantor = await add_patient(store, "Ada")
        spouse = await add_patient(store, "William", "King")
        child = await add_patient(store, "Byron")

        await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=spouse.id, relation_to_guarantor="spouse",
        )
        record = await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=child.id, relation_to_guarantor="child",
        )

        assert {m.patient_id for m in record.members} == {guarantor.id, spouse.id, child.id}
        assert sum(1 for m in record.members if m.is_guarantor) == 1

    @pytest.mark.asyncio
    async def test_linking_guarantor_to_itself_adds_no_duplicate(self, store, family):
        guarantor = await add_patient(store, "Ada")
        record = await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=guarantor.id, relation_to_guarantor="self",
        )
        assert len(record.members) == 1
        assert record.members[0].is_guarantor is True

    @pytest.mark.asyncio
    async def test_explicit_family_id_is_used_for_new_family(self, store, family):
        guarantor = await add_patient(store, "Ada")
        child = await add_patient(store, "Byron")
        record = await family.upsert_family(
            family_id="fam-1",
            guarantor_patient_id=guarantor.id,
            member_patient_id=child.id,
            relation_to_guarantor="child",
        )
        assert record.id == "fam-1"

    @pytest.mark.asyncio
    async def test_lookup_by_member(self, store, family):
        guarantor = await add_patient(store, "Ada")
        child = await add_patient(store, "Byron")
        created = await family.upsert_family(
            guarantor_patient_id=guarantor.id, member_patient_id=child.id, relation_to_guarantor="child",
        )
        found = await family.find_family_by_patient(child.id)
        assert found.id == created.id
        assert await family.find_family_by_patient("stranger") is None

    @pytest.mark.asyncio
    async def test_unknown_patients_are_rejected(self, store, family):
        guarantor = await add_patient(store, "Ada")
        with pytest.raises(NotFoundError):
            await family.upsert_family(
                guarantor_patient_id=guarantor.id, member_patient_id="missing", relation_to_guarantor="child",
            )
