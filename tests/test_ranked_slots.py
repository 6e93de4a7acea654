"""Tests for ranked recommendation slot assignment."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from bakumania.core.exceptions import NotFoundError, ValidationError
from bakumania.services import catalog
from bakumania.services.ranked_slots import (
    AssignmentCase,
    AssignmentOutcome,
    bakutech_recommendations,
    plan_assignment,
    recommendations,
    validate_rank,
)


def _slot(id: int):
    return SimpleNamespace(id=id)


async def _ranks(assigner=recommendations) -> dict[int, int]:
    """Current rank -> bakugan_id mapping."""
    return {s["rank"]: s["bakugan_id"] for s in await assigner.list_slots()}


class TestPlanAssignment:
    """Tests for the pure case classification."""

    def test_swap_when_both_exist_and_differ(self):
        assert plan_assignment(_slot(1), _slot(2)) is AssignmentCase.SWAP

    def test_overwrite_when_only_rank_taken(self):
        assert plan_assignment(_slot(1), None) is AssignmentCase.OVERWRITE

    def test_move_when_only_item_ranked(self):
        assert plan_assignment(None, _slot(2)) is AssignmentCase.MOVE

    def test_create_when_neither_exists(self):
        assert plan_assignment(None, None) is AssignmentCase.CREATE

    def test_reassert_when_same_slot(self):
        """The item already holds exactly that rank."""
        assert plan_assignment(_slot(3), _slot(3)) is AssignmentCase.REASSERT


class TestValidateRank:
    """Tests for rank validation."""

    @pytest.mark.parametrize("rank", [0, 6, -1, "abc", None, 2.5, True, "²", "３", "1.0"])
    def test_out_of_range_or_malformed(self, rank):
        with pytest.raises(ValidationError) as exc_info:
            validate_rank(rank)
        assert exc_info.value.error_code == "INVALID_RANK"

    def test_numeric_string_accepted(self):
        """Path parameters arrive as text."""
        assert validate_rank("4") == 4


class TestAssign:
    """Tests for assign against the database."""

    @pytest.mark.asyncio
    async def test_create_then_move(self, make_bakugan):
        """A new item gets a slot; assigning it elsewhere moves that slot."""
        a = await make_bakugan(name="Alpha")

        created = await recommendations.assign(a["id"], 3, reason="cheap")
        moved = await recommendations.assign(a["id"], 1)

        assert created.outcome is AssignmentOutcome.CREATED
        assert moved.case is AssignmentCase.MOVE
        assert moved.outcome is AssignmentOutcome.UPDATED
        assert moved.slot["reason"] == "cheap"
        assert await _ranks() == {1: a["id"]}

    @pytest.mark.asyncio
    async def test_swap_exchanges_ranks(self, make_bakugan):
        """A@1, B@2 then assign(B, 1) leaves A@2 and B@1."""
        a = await make_bakugan(name="Alpha")
        b = await make_bakugan(name="Bravo")
        await recommendations.assign(a["id"], 1, reason="first")
        await recommendations.assign(b["id"], 2, reason="second")

        result = await recommendations.assign(b["id"], 1)

        assert result.outcome is AssignmentOutcome.SWAPPED
        assert result.displaced["bakugan_id"] == a["id"]
        assert result.displaced["rank"] == 2
        assert result.displaced["reason"] == "first"
        assert await _ranks() == {1: b["id"], 2: a["id"]}

    @pytest.mark.asyncio
    async def test_repeat_is_idempotent(self, make_bakugan):
        """Assigning the same pair twice changes nothing the second time."""
        a = await make_bakugan(name="Alpha")
        b = await make_bakugan(name="Bravo")
        await recommendations.assign(a["id"], 1)
        await recommendations.assign(b["id"], 2)

        await recommendations.assign(b["id"], 1)
        before = await _ranks()
        again = await recommendations.assign(b["id"], 1)

        assert again.case is AssignmentCase.REASSERT
        assert await _ranks() == before

    @pytest.mark.asyncio
    async def test_reassert_keeps_reason_unless_given(self, make_bakugan):
        a = await make_bakugan(name="Alpha")
        await recommendations.assign(a["id"], 2, reason="original")

        kept = await recommendations.assign(a["id"], 2)
        replaced = await recommendations.assign(a["id"], 2, reason="updated")

        assert kept.slot["reason"] == "original"
        assert replaced.slot["reason"] == "updated"

    @pytest.mark.asyncio
    async def test_overwrite_evicts_occupant(self, make_bakugan):
        """The previous occupant loses its rank entirely."""
        a = await make_bakugan(name="Alpha")
        c = await make_bakugan(name="Charlie")
        await recommendations.assign(a["id"], 1, reason="old")

        result = await recommendations.assign(c["id"], 1)

        assert result.case is AssignmentCase.OVERWRITE
        assert result.evicted_bakugan_id == a["id"]
        assert result.slot["reason"] == ""
        assert a["id"] not in (await _ranks()).values()

    @pytest.mark.asyncio
    async def test_ranks_and_items_stay_unique(self, make_bakugan):
        """Every sequence leaves at most one slot per rank and per item."""
        items = [await make_bakugan(name=f"Item{i}") for i in range(4)]
        moves = [(0, 1), (1, 2), (2, 3), (0, 3), (3, 1), (1, 1), (2, 5), (0, 5)]

        for index, rank in moves:
            await recommendations.assign(items[index]["id"], rank)

        slots = await recommendations.list_slots()
        ranks = [s["rank"] for s in slots]
        owners = [s["bakugan_id"] for s in slots]
        assert len(ranks) == len(set(ranks))
        assert len(owners) == len(set(owners))
        assert all(1 <= r <= 5 for r in ranks)

    @pytest.mark.asyncio
    async def test_invalid_rank_rejected(self, make_bakugan):
        a = await make_bakugan()
        for rank in (0, 6):
            with pytest.raises(ValidationError):
                await recommendations.assign(a["id"], rank)

    @pytest.mark.asyncio
    async def test_unknown_bakugan_not_found(self, db):
        with pytest.raises(NotFoundError):
            await recommendations.assign(4242, 1)

    @pytest.mark.asyncio
    async def test_malformed_bakugan_id(self, db):
        with pytest.raises(ValidationError) as exc_info:
            await recommendations.assign("not-an-id", 1)
        assert exc_info.value.error_code == "INVALID_ID"

    @pytest.mark.asyncio
    async def test_partitions_are_independent(self, make_bakugan):
        """The same item can be ranked in both lists."""
        a = await make_bakugan()

        await recommendations.assign(a["id"], 1)
        await bakutech_recommendations.assign(a["id"], 4)

        assert await _ranks() == {1: a["id"]}
        assert await _ranks(bakutech_recommendations) == {4: a["id"]}


class TestReleaseAndList:
    """Tests for release, list_slots and list_with_latest_price."""

    @pytest.mark.asyncio
    async def test_release_leaves_gap(self, make_bakugan):
        """Ranks below a released slot are not compacted."""
        items = [await make_bakugan(name=f"Item{i}") for i in range(3)]
        for rank, item in enumerate(items, start=1):
            await recommendations.assign(item["id"], rank)

        released = await recommendations.release(2)

        assert released["bakugan_id"] == items[1]["id"]
        assert sorted(await _ranks()) == [1, 3]

    @pytest.mark.asyncio
    async def test_release_empty_rank_not_found(self, db):
        with pytest.raises(NotFoundError):
            await recommendations.release(4)

    @pytest.mark.asyncio
    async def test_dangling_slot_listed_without_bakugan(self, make_bakugan):
        """Deleting a ranked item leaves its slot with no joined record."""
        a = await make_bakugan()
        await recommendations.assign(a["id"], 2)

        await catalog.delete_bakugan(a["id"])
        slots = await recommendations.list_slots()

        assert len(slots) == 1
        assert slots[0]["bakugan_id"] == a["id"]
        assert slots[0]["bakugan"] is None

    @pytest.mark.asyncio
    async def test_list_ordered_by_rank(self, make_bakugan):
        a = await make_bakugan(name="Alpha")
        b = await make_bakugan(name="Bravo")
        await recommendations.assign(a["id"], 5)
        await recommendations.assign(b["id"], 2)

        slots = await recommendations.list_slots()

        assert [s["rank"] for s in slots] == [2, 5]
        assert slots[0]["bakugan"]["names"] == ["Bravo"]

    @pytest.mark.asyncio
    async def test_latest_price_attached(self, make_bakugan):
        """The gallery view carries the newest history entry only."""
        from bakumania.services import price_ledger

        a = await make_bakugan(price=100, date="2024-01-01")
        await price_ledger.record_price(a["id"], 150, "2024-02-01")
        await bakutech_recommendations.assign(a["id"], 1)

        slots = await bakutech_recommendations.list_with_latest_price()

        assert slots[0]["bakugan"]["price_history"] == [
            {"price": 150, "timestamp": "2024-02-01"}
        ]
