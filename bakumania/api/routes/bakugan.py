"""Bakugan catalog routes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query, Response, status

from bakumania.core.config import settings
from bakumania.repositories import bakugan_orm as bakugan_repo
from bakumania.schemas.bakugan import (
    BakuganCreateRequest,
    BakuganDeleteResponse,
    BakuganDetailResponse,
    BakuganResponse,
    BakuganUpdateRequest,
    PriceUpdateRequest,
    PriceUpdateResponse,
)
from bakumania.services import catalog, price_ledger


router = APIRouter()


@router.get(
    "",
    response_model=List[BakuganResponse],
    summary="List or search Bakugan",
    description=(
        "Without `search` every Bakugan is returned, most recently updated first. "
        "With `search` at most a handful of name matches are returned, optionally "
        "narrowed by exact size and element."
    ),
)
async def list_bakugan(
    search: Optional[str] = Query(default=None, max_length=100, description="Case-insensitive name fragment"),
    size: Optional[str] = Query(default=None, description="B1, B2 or B3"),
    element: Optional[str] = Query(default=None),
) -> List[BakuganResponse]:
    if search and search.strip():
        return await bakugan_repo.list_bakugan(
            search=search, size=size, element=element, limit=settings.search_result_limit
        )
    return await bakugan_repo.list_bakugan()


@router.post(
    "",
    response_model=BakuganResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a Bakugan",
    responses={200: {"description": "Existing Bakugan repriced", "model": BakuganResponse}},
)
async def add_bakugan(payload: BakuganCreateRequest, response: Response) -> BakuganResponse:
    """
    Create a Bakugan.

    If one with the same primary name, size and element already exists, the
    submitted price is recorded against it instead and 200 is returned.
    """
    result = await catalog.add_bakugan(
        names=payload.names,
        size=payload.size,
        element=payload.element,
        current_price=payload.current_price,
        date=payload.date,
        special_properties=payload.special_properties,
        series=payload.series,
        image_url=payload.image_url,
        reference_uri=payload.reference_uri,
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.bakugan


@router.get(
    "/{bakugan_id}",
    response_model=BakuganDetailResponse,
    summary="Get a Bakugan with its recent price history",
)
async def get_bakugan(bakugan_id: str) -> BakuganDetailResponse:
    return await catalog.get_with_history(bakugan_id)


@router.patch(
    "/{bakugan_id}",
    response_model=PriceUpdateResponse,
    summary="Record a price",
    description=(
        "Appends a price history entry and makes it the current price, even when "
        "its timestamp is older than existing entries."
    ),
)
async def record_price(bakugan_id: str, payload: PriceUpdateRequest) -> PriceUpdateResponse:
    recorded = await price_ledger.record_price(
        bakugan_id,
        payload.price,
        payload.timestamp,
        notes=payload.notes,
        reference_uri=payload.reference_uri,
    )
    return PriceUpdateResponse(bakugan=recorded.bakugan, price_history=recorded.entry)


@router.put(
    "/{bakugan_id}",
    response_model=BakuganResponse,
    summary="Edit Bakugan details",
)
async def update_bakugan(bakugan_id: str, payload: BakuganUpdateRequest) -> BakuganResponse:
    return await catalog.update_details(
        bakugan_id,
        names=payload.names,
        size=payload.size,
        element=payload.element,
        special_properties=payload.special_properties,
        series=payload.series,
        image_url=payload.image_url,
        reference_uri=payload.reference_uri,
    )


@router.delete(
    "/{bakugan_id}",
    response_model=BakuganDeleteResponse,
    summary="Delete a Bakugan and its price history",
)
async def delete_bakugan(bakugan_id: str) -> BakuganDeleteResponse:
    removed = await catalog.delete_bakugan(bakugan_id)
    return BakuganDeleteResponse(
        message="Bakugan deleted successfully",
        bakugan_id=int(bakugan_id),
        deleted_price_history=removed,
    )
