"""Price history reads using SQLAlchemy ORM.

Entries are ordered newest first by their parsed timestamp, ties broken by the
higher (later inserted) id.

Usage:
    from bakumania.repositories.price_history_orm import list_for_item, latest_for_items
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session
from bakumania.database.orm import PriceHistory


logger = get_logger("repositories.price_history_orm")

NEWEST_FIRST = (PriceHistory.sorted_at.desc(), PriceHistory.id.desc())


def entry_to_dict(entry: PriceHistory) -> dict[str, Any]:
    """Restricted projection returned to callers."""
    return {
        "id": entry.id,
        "price": entry.price,
        "timestamp": entry.timestamp,
        "notes": entry.notes,
        "reference_uri": entry.reference_uri,
    }


async def fetch_entries(
    session: AsyncSession, bakugan_id: int, limit: int | None = None
) -> list[PriceHistory]:
    """Entries of one Bakugan, newest first."""
    stmt = (
        select(PriceHistory)
        .where(PriceHistory.bakugan_id == bakugan_id)
        .order_by(*NEWEST_FIRST)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_for_item(bakugan_id: int, limit: int) -> list[dict[str, Any]]:
    """Up to ``limit`` entries of one Bakugan, newest first."""
    async with get_session() as session:
        entries = await fetch_entries(session, bakugan_id, limit)
        return [entry_to_dict(e) for e in entries]


async def latest_for_items(
    bakugan_ids: Iterable[int], per_item: int
) -> dict[int, list[dict[str, Any]]]:
    """Top ``per_item`` entries for each Bakugan in one query.

    Bakugan without entries are absent from the result.
    """
    ids = sorted(set(bakugan_ids))
    if not ids:
        return {}

    position = (
        func.row_number()
        .over(partition_by=PriceHistory.bakugan_id, order_by=NEWEST_FIRST)
        .label("position")
    )
    ranked = (
        select(
            PriceHistory.id,
            PriceHistory.bakugan_id,
            PriceHistory.price,
            PriceHistory.timestamp,
            PriceHistory.notes,
            PriceHistory.reference_uri,
            position,
        )
        .where(PriceHistory.bakugan_id.in_(ids))
        .subquery()
    )
    stmt = (
        select(ranked)
        .where(ranked.c.position <= per_item)
        .order_by(ranked.c.bakugan_id, ranked.c.position)
    )

    grouped: dict[int, list[dict[str, Any]]] = {}
    async with get_session() as session:
        result = await session.execute(stmt)
        for row in result.mappings():
            grouped.setdefault(row["bakugan_id"], []).append(
                {
                    "id": row["id"],
                    "price": row["price"],
                    "timestamp": row["timestamp"],
                    "notes": row["notes"],
                    "reference_uri": row["reference_uri"],
                }
            )
    return grouped


async def delete_all_for_item(session: AsyncSession, bakugan_id: int) -> int:
    """Bulk-delete the entries of one Bakugan inside the caller's transaction."""
    result = await session.execute(
        delete(PriceHistory).where(PriceHistory.bakugan_id == bakugan_id)
    )
    return result.rowcount or 0
