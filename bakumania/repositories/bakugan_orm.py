"""Bakugan catalog repository using SQLAlchemy ORM.

Usage:
    from bakumania.repositories.bakugan_orm import get_bakugan, list_bakugan
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session
from bakumania.database.orm import Bakugan


logger = get_logger("repositories.bakugan_orm")

# Fields joined onto ranked slots and collection entries.
DISPLAY_FIELDS = (
    "names",
    "size",
    "element",
    "special_properties",
    "image_url",
    "current_price",
    "reference_uri",
)
# Minimal gallery view used by the basic/combined recommendation reads.
GALLERY_FIELDS = ("names", "size", "element", "image_url", "current_price")


def build_name_index(names: Iterable[str]) -> str:
    """Lowercased, newline-joined names used for case-insensitive search."""
    return "\n".join(name.strip().lower() for name in names)


def bakugan_to_dict(bakugan: Bakugan) -> dict[str, Any]:
    """Convert ORM model to dict."""
    return {
        "id": bakugan.id,
        "names": list(bakugan.names or []),
        "size": bakugan.size,
        "element": bakugan.element,
        "special_properties": bakugan.special_properties,
        "series": bakugan.series,
        "image_url": bakugan.image_url,
        "current_price": bakugan.current_price,
        "reference_uri": bakugan.reference_uri,
        "date": bakugan.date,
        "created_at": bakugan.created_at,
        "updated_at": bakugan.updated_at,
    }


def project(bakugan: Bakugan | None, fields: Iterable[str] = DISPLAY_FIELDS) -> dict[str, Any] | None:
    """Restricted view of a Bakugan; None when the reference does not resolve."""
    if bakugan is None:
        return None
    data = {"id": bakugan.id}
    for field in fields:
        value = getattr(bakugan, field)
        data[field] = list(value) if field == "names" else value
    return data


async def get_bakugan(bakugan_id: int) -> dict[str, Any] | None:
    """Get a Bakugan by ID."""
    async with get_session() as session:
        bakugan = await session.get(Bakugan, bakugan_id)
        if bakugan:
            return bakugan_to_dict(bakugan)
        return None


async def list_bakugan(
    search: str | None = None,
    size: str | None = None,
    element: str | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """List Bakugan, most recently updated first.

    ``search`` matches any name case-insensitively; ``size`` and ``element``
    narrow by exact value.
    """
    stmt = select(Bakugan)
    if search:
        stmt = stmt.where(Bakugan.name_index.contains(search.strip().lower(), autoescape=True))
    if size:
        stmt = stmt.where(Bakugan.size == size)
    if element:
        stmt = stmt.where(Bakugan.element == element)
    stmt = stmt.order_by(Bakugan.updated_at.desc(), Bakugan.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    async with get_session() as session:
        result = await session.execute(stmt)
        return [bakugan_to_dict(b) for b in result.scalars().all()]


async def find_duplicate(
    session: AsyncSession, primary_name: str, size: str, element: str
) -> Bakugan | None:
    """Find the Bakugan whose first name, size and element all match."""
    result = await session.execute(
        select(Bakugan)
        .where(Bakugan.size == size, Bakugan.element == element)
        .order_by(Bakugan.id)
    )
    for candidate in result.scalars():
        if candidate.names and candidate.names[0] == primary_name:
            return candidate
    return None


async def get_many(session: AsyncSession, bakugan_ids: Iterable[int]) -> dict[int, Bakugan]:
    """Load Bakugan by id; missing ids are simply absent from the result."""
    ids = set(bakugan_ids)
    if not ids:
        return {}
    result = await session.execute(select(Bakugan).where(Bakugan.id.in_(ids)))
    return {b.id: b for b in result.scalars().all()}
