"""Ranked recommendation slots (ranks 1 to 5) with swap-on-conflict assignment.

Each slot list keeps rank -> Bakugan and Bakugan -> rank one-to-one. Assigning a
Bakugan to a rank looks up the slot holding that rank and the slot holding that
Bakugan, and ``plan_assignment`` turns the pair into one of five cases:

* SWAP: both exist and differ. The two Bakugan trade ranks; the displaced one
  keeps its reason.
* OVERWRITE: only the rank is taken. Its occupant is evicted and loses its
  rank entirely.
* MOVE: only the Bakugan is ranked. Its slot moves to the free rank.
* CREATE: neither exists.
* REASSERT: the Bakugan already holds exactly that rank.

Releasing a rank leaves a gap; lower ranks are not compacted.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select

from bakumania.core.exceptions import NotFoundError, ValidationError
from bakumania.core.identifiers import parse_id
from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session, lock_for_update
from bakumania.database.orm import (
    Bakugan,
    BakutechRecommendation,
    RankSlotMixin,
    Recommendation,
)
from bakumania.repositories import price_history_orm as history_repo
from bakumania.repositories.bakugan_orm import DISPLAY_FIELDS, GALLERY_FIELDS, project


logger = get_logger("services.ranked_slots")

MIN_RANK = 1
MAX_RANK = 5
# Temporary rank for one side of a swap; outside the valid range.
PARKED_RANK = 0
# ASCII digits only; int() rejects Unicode digits such as "²".
_RANK_PATTERN = re.compile(r"-?[0-9]+")


class AssignmentCase(str, enum.Enum):
    SWAP = "swap"
    OVERWRITE = "overwrite"
    MOVE = "move"
    CREATE = "create"
    REASSERT = "reassert"


class AssignmentOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SWAPPED = "swapped"


OUTCOME_BY_CASE = {
    AssignmentCase.SWAP: AssignmentOutcome.SWAPPED,
    AssignmentCase.OVERWRITE: AssignmentOutcome.UPDATED,
    AssignmentCase.MOVE: AssignmentOutcome.UPDATED,
    AssignmentCase.CREATE: AssignmentOutcome.CREATED,
    AssignmentCase.REASSERT: AssignmentOutcome.UPDATED,
}


@dataclass
class AssignmentResult:
    case: AssignmentCase
    slot: dict[str, Any]
    displaced: dict[str, Any] | None = None  # the other slot of a swap
    evicted_bakugan_id: int | None = None  # previous occupant on overwrite

    @property
    def outcome(self) -> AssignmentOutcome:
        return OUTCOME_BY_CASE[self.case]


def plan_assignment(slot_by_rank: Any | None, slot_by_item: Any | None) -> AssignmentCase:
    """Classify an assignment from the slot holding the rank and the slot holding the item."""
    if slot_by_rank is not None and slot_by_item is not None:
        if slot_by_rank.id == slot_by_item.id:
            return AssignmentCase.REASSERT
        return AssignmentCase.SWAP
    if slot_by_rank is not None:
        return AssignmentCase.OVERWRITE
    if slot_by_item is not None:
        return AssignmentCase.MOVE
    return AssignmentCase.CREATE


def validate_rank(rank: object) -> int:
    if isinstance(rank, bool) or not isinstance(rank, int):
        if isinstance(rank, str) and _RANK_PATTERN.fullmatch(rank.strip()):
            rank = int(rank)
        else:
            raise ValidationError(message="Rank must be an integer", error_code="INVALID_RANK")
    if not MIN_RANK <= rank <= MAX_RANK:
        raise ValidationError(
            message=f"Rank must be between {MIN_RANK} and {MAX_RANK}",
            error_code="INVALID_RANK",
            details={"rank": rank},
        )
    return rank


def slot_to_dict(slot: RankSlotMixin) -> dict[str, Any]:
    return {
        "id": slot.id,
        "rank": slot.rank,
        "bakugan_id": slot.bakugan_id,
        "reason": slot.reason,
        "created_at": slot.created_at,
        "updated_at": slot.updated_at,
    }


class RankedSlotAssigner:
    """Assign, release and list the ranked slots of one catalog partition."""

    def __init__(self, model: type[RankSlotMixin], partition: str):
        self.model = model
        self.partition = partition

    async def _slot_where(self, session, *criteria) -> RankSlotMixin | None:
        result = await session.execute(select(self.model).where(*criteria))
        return result.scalar_one_or_none()

    async def assign(
        self, bakugan_id: object, rank: object, reason: str | None = None
    ) -> AssignmentResult:
        """Give ``bakugan_id`` the slot at ``rank``, resolving conflicts by swap."""
        item_id = parse_id(bakugan_id, "bakugan_id")
        rank = validate_rank(rank)
        model = self.model

        async with get_session() as session:
            await lock_for_update(session, self.partition, "slots")

            if await session.get(Bakugan, item_id) is None:
                raise NotFoundError(message="Bakugan not found", details={"bakugan_id": item_id})

            slot_by_rank = await self._slot_where(session, model.rank == rank)
            slot_by_item = await self._slot_where(session, model.bakugan_id == item_id)
            case = plan_assignment(slot_by_rank, slot_by_item)

            displaced = None
            evicted = None
            if case is AssignmentCase.SWAP:
                former_rank = slot_by_item.rank
                slot_by_rank.rank = PARKED_RANK
                await session.flush()
                slot_by_item.rank = rank
                if reason:
                    slot_by_item.reason = reason
                await session.flush()
                slot_by_rank.rank = former_rank
                slot, displaced = slot_by_item, slot_by_rank
            elif case is AssignmentCase.OVERWRITE:
                evicted = slot_by_rank.bakugan_id
                slot_by_rank.bakugan_id = item_id
                slot_by_rank.reason = reason or ""
                slot = slot_by_rank
            elif case is AssignmentCase.MOVE:
                slot_by_item.rank = rank
                if reason:
                    slot_by_item.reason = reason
                slot = slot_by_item
            elif case is AssignmentCase.REASSERT:
                if reason:
                    slot_by_item.reason = reason
                slot = slot_by_item
            else:
                slot = model(rank=rank, bakugan_id=item_id, reason=reason or "")
                session.add(slot)

            await session.flush()
            result = AssignmentResult(
                case=case,
                slot=slot_to_dict(slot),
                displaced=slot_to_dict(displaced) if displaced is not None else None,
                evicted_bakugan_id=evicted,
            )
            await session.commit()

        logger.info(
            f"{self.partition}: bakugan {item_id} -> rank {rank} ({result.outcome.value})",
            extra={
                "partition": self.partition,
                "case": case.value,
                "evicted_bakugan_id": evicted,
            },
        )
        return result

    async def release(self, rank: object) -> dict[str, Any]:
        """Delete the slot at ``rank``; remaining ranks keep their positions."""
        rank = validate_rank(rank)
        model = self.model

        async with get_session() as session:
            await lock_for_update(session, self.partition, "slots")
            slot = await self._slot_where(session, model.rank == rank)
            if slot is None:
                raise NotFoundError(
                    message=f"No recommendation at rank {rank}",
                    details={"rank": rank},
                )
            released = slot_to_dict(slot)
            await session.execute(delete(model).where(model.id == slot.id))
            await session.commit()

        logger.info(
            f"{self.partition}: released rank {rank}",
            extra={"partition": self.partition, "bakugan_id": released["bakugan_id"]},
        )
        return released

    async def list_slots(
        self, fields: tuple[str, ...] = DISPLAY_FIELDS, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Slots by rank ascending, each joined with its Bakugan.

        A slot whose Bakugan no longer exists is kept with ``bakugan`` set to None.
        """
        model = self.model
        stmt = (
            select(model, Bakugan)
            .outerjoin(Bakugan, Bakugan.id == model.bakugan_id)
            .order_by(model.rank)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with get_session() as session:
            result = await session.execute(stmt)
            return [
                {**slot_to_dict(slot), "bakugan": project(bakugan, fields)}
                for slot, bakugan in result.all()
            ]

    async def list_with_latest_price(self, limit: int = MAX_RANK) -> list[dict[str, Any]]:
        """Gallery view of the top slots plus each Bakugan's latest price entry."""
        slots = await self.list_slots(fields=GALLERY_FIELDS, limit=limit)
        ids = [s["bakugan_id"] for s in slots if s["bakugan"] is not None]
        latest = await history_repo.latest_for_items(ids, per_item=1)
        for slot in slots:
            if slot["bakugan"] is not None:
                slot["bakugan"]["price_history"] = [
                    {"price": e["price"], "timestamp": e["timestamp"]}
                    for e in latest.get(slot["bakugan_id"], [])
                ]
        return slots


recommendations = RankedSlotAssigner(Recommendation, partition="recommendations")
bakutech_recommendations = RankedSlotAssigner(
    BakutechRecommendation, partition="bakutech_recommendations"
)
