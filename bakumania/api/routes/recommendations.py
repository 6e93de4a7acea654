"""Ranked recommendation routes.

The regular and BakuTech lists share one route shape; the regular list also
serves the gallery reads used by the landing page.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response, status

from bakumania.api.dependencies import get_cache
from bakumania.cache.ttl_cache import TTLCache
from bakumania.core.config import settings
from bakumania.core.exceptions import ValidationError
from bakumania.core.identifiers import is_valid_id
from bakumania.repositories import price_history_orm as history_repo
from bakumania.repositories.bakugan_orm import GALLERY_FIELDS
from bakumania.schemas.recommendations import (
    PriceHistoryBatchRequest,
    RecommendationAssignRequest,
    RecommendationAssignResponse,
    RecommendationSlot,
    SlotRecord,
)
from bakumania.services.ranked_slots import (
    MAX_RANK,
    AssignmentOutcome,
    RankedSlotAssigner,
    bakutech_recommendations,
    recommendations,
)


def _cache_control(response: Response, cache: TTLCache) -> None:
    response.headers["Cache-Control"] = f"public, max-age={int(cache.ttl_seconds)}"


def build_slot_router(assigner: RankedSlotAssigner, list_cache: str | None = None) -> APIRouter:
    """Routes for listing, assigning and releasing the slots of one partition.

    With ``list_cache`` the list read is served through that named cache.
    """
    router = APIRouter()

    if list_cache is None:

        @router.get("", response_model=List[RecommendationSlot], summary="List ranked slots")
        async def list_slots() -> List[RecommendationSlot]:
            return await assigner.list_slots()

    else:

        @router.get(
            "",
            response_model=List[RecommendationSlot],
            summary="List ranked slots",
            description="Served from a read cache; may be stale for up to its TTL.",
        )
        async def list_slots_cached(
            response: Response,
            cache: TTLCache = Depends(get_cache(list_cache)),
        ) -> List[RecommendationSlot]:
            _cache_control(response, cache)
            return await cache.get_or_load(assigner.partition, assigner.list_slots)

    @router.post(
        "",
        response_model=RecommendationAssignResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Assign a Bakugan to a rank",
        description=(
            "An occupied rank is resolved by swapping when the Bakugan already holds "
            "another rank, otherwise the occupant is evicted."
        ),
        responses={200: {"description": "Existing slot updated or swapped"}},
    )
    async def assign_slot(
        payload: RecommendationAssignRequest, response: Response
    ) -> RecommendationAssignResponse:
        result = await assigner.assign(payload.bakugan_id, payload.rank, payload.reason)
        if result.outcome is not AssignmentOutcome.CREATED:
            response.status_code = status.HTTP_200_OK
        return RecommendationAssignResponse(
            outcome=result.outcome.value,
            recommendation=result.slot,
            displaced=result.displaced,
            evicted_bakugan_id=result.evicted_bakugan_id,
        )

    @router.delete("/{rank}", response_model=SlotRecord, summary="Release a rank")
    async def release_slot(rank: str) -> SlotRecord:
        return await assigner.release(rank)

    return router


router = build_slot_router(recommendations)
bakutech_router = build_slot_router(bakutech_recommendations, list_cache="bakutech")


@router.get(
    "/basic",
    response_model=List[RecommendationSlot],
    summary="Ranked slots with the minimal gallery fields",
)
async def list_basic() -> List[RecommendationSlot]:
    return await recommendations.list_slots(fields=GALLERY_FIELDS)


@router.get(
    "/combined",
    response_model=List[RecommendationSlot],
    summary="Top slots with each Bakugan's latest price",
    description="Served from a read cache; may be stale for up to its TTL.",
)
async def list_combined(
    response: Response,
    cache: TTLCache = Depends(get_cache("combined")),
) -> List[RecommendationSlot]:
    _cache_control(response, cache)
    return await cache.get_or_load(
        "combined", lambda: recommendations.list_with_latest_price(limit=MAX_RANK)
    )


@router.post(
    "/price-history",
    response_model=Dict[str, List[Dict[str, Any]]],
    summary="Latest price entries for several Bakugan",
    description=(
        "Returns the newest entries of each requested Bakugan keyed by id. "
        "Malformed ids are skipped."
    ),
)
async def batch_price_history(
    payload: PriceHistoryBatchRequest,
    response: Response,
    cache: TTLCache = Depends(get_cache("price_history")),
) -> Dict[str, List[Dict[str, Any]]]:
    ids = sorted({int(raw) for raw in payload.bakugan_ids if is_valid_id(raw)})
    if not ids:
        raise ValidationError(message="No valid Bakugan IDs provided", error_code="INVALID_ID")

    async def load() -> Dict[str, List[Dict[str, Any]]]:
        latest = await history_repo.latest_for_items(ids, per_item=settings.price_history_batch_size)
        return {str(i): latest.get(i, []) for i in ids}

    _cache_control(response, cache)
    return await cache.get_or_load(tuple(ids), load)
