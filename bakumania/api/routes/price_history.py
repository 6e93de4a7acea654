"""Price history entry routes."""

from __future__ import annotations

from fastapi import APIRouter

from bakumania.schemas.bakugan import PriceHistoryDeleteResponse
from bakumania.services import price_ledger


router = APIRouter()


@router.delete(
    "/{entry_id}",
    response_model=PriceHistoryDeleteResponse,
    summary="Delete a price history entry",
    description=(
        "Removes one entry and points the Bakugan's current price at the newest "
        "remaining entry. With no entries left the current price is kept."
    ),
)
async def delete_entry(entry_id: str) -> PriceHistoryDeleteResponse:
    deleted = await price_ledger.delete_entry(entry_id)
    return PriceHistoryDeleteResponse(
        bakugan_id=deleted.bakugan_id,
        price_history=deleted.price_history,
        projection_updated=deleted.projection_updated,
    )
