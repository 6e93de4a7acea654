"""Portfolio and favorites routes; entries belong to the authenticated user."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from bakumania.api.dependencies import require_user
from bakumania.core.exceptions import AuthorizationError, BadRequestError, NotFoundError
from bakumania.core.identifiers import parse_id
from bakumania.core.security import TokenData
from bakumania.database.orm import CollectionEntryMixin
from bakumania.repositories import bakugan_orm as bakugan_repo
from bakumania.repositories import collections_orm as collections_repo
from bakumania.schemas.collections import (
    CollectionAddRequest,
    CollectionAddResponse,
    CollectionEntry,
    CollectionRemoveResponse,
)


def build_collection_router(model: type[CollectionEntryMixin], label: str) -> APIRouter:
    """List/add/remove routes for one kind of user collection."""
    router = APIRouter()

    @router.get("", response_model=List[CollectionEntry], summary=f"List my {label}")
    async def list_entries(user: TokenData = Depends(require_user)) -> List[CollectionEntry]:
        return await collections_repo.list_entries(model, user.sub)

    @router.post(
        "",
        response_model=CollectionAddResponse,
        status_code=status.HTTP_201_CREATED,
        summary=f"Add a Bakugan to my {label}",
        responses={400: {"description": f"Already in {label}"}, 404: {"description": "Bakugan not found"}},
    )
    async def add_entry(
        payload: CollectionAddRequest,
        user: TokenData = Depends(require_user),
    ) -> CollectionAddResponse:
        bakugan_id = parse_id(payload.bakugan_id, "bakugan_id")
        bakugan = await bakugan_repo.get_bakugan(bakugan_id)
        if bakugan is None:
            raise NotFoundError(message="Bakugan not found", details={"bakugan_id": bakugan_id})
        if await collections_repo.find_entry(model, user.sub, bakugan_id) is not None:
            raise BadRequestError(message=f"Bakugan already in {label}", error_code="ALREADY_ADDED")

        entry = await collections_repo.add_entry(model, user.sub, bakugan_id, payload.notes)
        return CollectionAddResponse(message=f"Bakugan added to {label}", entry=entry)

    @router.delete(
        "/{entry_id}",
        response_model=CollectionRemoveResponse,
        summary=f"Remove an entry from my {label}",
        responses={403: {"description": "Entry belongs to another user"}},
    )
    async def remove_entry(
        entry_id: str,
        user: TokenData = Depends(require_user),
    ) -> CollectionRemoveResponse:
        target_id = parse_id(entry_id, "entry_id")
        entry = await collections_repo.get_entry(model, target_id)
        if entry is None:
            raise NotFoundError(message=f"{label.capitalize()} item not found")
        if entry["user_id"] != user.sub:
            raise AuthorizationError(message="Unauthorized")

        await collections_repo.remove_entry(model, target_id)
        return CollectionRemoveResponse(message=f"Bakugan removed from {label}", id=target_id)

    return router


portfolio_router = build_collection_router(collections_repo.COLLECTIONS["portfolio"], "portfolio")
favorites_router = build_collection_router(collections_repo.COLLECTIONS["favorites"], "favorites")
