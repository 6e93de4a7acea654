"""Portfolio and favorites repository using SQLAlchemy ORM.

Both collections share one shape: a user owns entries that each point at a
Bakugan. The model class selects which collection is touched.

Usage:
    from bakumania.repositories.collections_orm import list_entries, add_entry, remove_entry
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select

from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session
from bakumania.database.orm import (
    Bakugan,
    CollectionEntryMixin,
    FavoriteItem,
    PortfolioItem,
)
from bakumania.repositories.bakugan_orm import DISPLAY_FIELDS, project


logger = get_logger("repositories.collections_orm")

COLLECTIONS: dict[str, type[CollectionEntryMixin]] = {
    "portfolio": PortfolioItem,
    "favorites": FavoriteItem,
}


def _entry_to_dict(entry: CollectionEntryMixin) -> dict[str, Any]:
    return {
        "id": entry.id,
        "bakugan_id": entry.bakugan_id,
        "notes": entry.notes,
        "added_at": entry.added_at,
    }


async def list_entries(model: type[CollectionEntryMixin], user_id: str) -> list[dict[str, Any]]:
    """List a user's entries, newest first, each joined with its Bakugan.

    Args:
        model: PortfolioItem or FavoriteItem
        user_id: Owner username

    Returns:
        Entry dicts; ``bakugan`` is None when the referenced item was deleted
    """
    stmt = (
        select(model, Bakugan)
        .outerjoin(Bakugan, Bakugan.id == model.bakugan_id)
        .where(model.user_id == user_id)
        .order_by(model.added_at.desc(), model.id.desc())
    )
    async with get_session() as session:
        result = await session.execute(stmt)
        return [
            {**_entry_to_dict(entry), "bakugan": project(bakugan, DISPLAY_FIELDS)}
            for entry, bakugan in result.all()
        ]


async def find_entry(
    model: type[CollectionEntryMixin], user_id: str, bakugan_id: int
) -> dict[str, Any] | None:
    async with get_session() as session:
        result = await session.execute(
            select(model).where(model.user_id == user_id, model.bakugan_id == bakugan_id)
        )
        entry = result.scalar_one_or_none()
        if entry:
            return _entry_to_dict(entry)
        return None


async def add_entry(
    model: type[CollectionEntryMixin],
    user_id: str,
    bakugan_id: int,
    notes: str | None = None,
) -> dict[str, Any]:
    """Insert an entry; a concurrent duplicate surfaces as ConflictError."""
    async with get_session() as session:
        entry = model(user_id=user_id, bakugan_id=bakugan_id, notes=notes or "")
        session.add(entry)
        await session.flush()
        data = _entry_to_dict(entry)
        await session.commit()

    logger.info(
        f"Added bakugan {bakugan_id} to {model.__tablename__} of {user_id}",
        extra={"entry_id": data["id"]},
    )
    return data


async def get_entry(model: type[CollectionEntryMixin], entry_id: int) -> dict[str, Any] | None:
    """Get an entry by ID, including its owner."""
    async with get_session() as session:
        entry = await session.get(model, entry_id)
        if entry:
            return {**_entry_to_dict(entry), "user_id": entry.user_id}
        return None


async def remove_entry(model: type[CollectionEntryMixin], entry_id: int) -> bool:
    async with get_session() as session:
        result = await session.execute(delete(model).where(model.id == entry_id))
        await session.commit()
        return bool(result.rowcount)
