"""Price history ledger and the current-price projection it feeds.

Every Bakugan carries ``current_price``/``date`` fields that mirror one entry of
its price history. Two policies maintain them:

* ``record_price`` overwrites the projection with the price just recorded,
  whatever its timestamp (last write wins). Backfilling an older price
  therefore moves the projection backwards in time.
* ``delete_entry`` recomputes the projection from the surviving entries with
  ``select_latest_entry`` (newest timestamp, then highest id). When nothing
  survives the projection is left as it was.

The two policies disagree for out-of-order writes; both are kept as observed
in production data.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from bakumania.core.config import settings
from bakumania.core.exceptions import NotFoundError, ValidationError
from bakumania.core.identifiers import parse_id
from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session, lock_for_update
from bakumania.database.orm import Bakugan, PriceHistory
from bakumania.repositories import price_history_orm as history_repo
from bakumania.repositories.bakugan_orm import bakugan_to_dict


logger = get_logger("services.price_ledger")

LOCK_NAMESPACE = "price_history"


class LedgerEntry(Protocol):
    id: int
    price: float
    timestamp: str
    sorted_at: datetime


@dataclass
class RecordedPrice:
    bakugan: dict[str, Any]
    entry: dict[str, Any]


@dataclass
class DeletedEntry:
    bakugan_id: int
    price_history: list[dict[str, Any]] = field(default_factory=list)
    projection_updated: bool = False


# =============================================================================
# VALIDATION
# =============================================================================


def parse_timestamp(raw: object) -> datetime:
    """Return the ordering key for a supplied timestamp as naive UTC.

    Accepts ISO calendar dates (``2024-01-05``) and ISO date-times with or
    without an offset (``Z`` included). The supplied text itself is stored
    untouched; only this key is normalised.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(message="Timestamp is required", error_code="TIMESTAMP_REQUIRED")

    value = raw.strip()
    if value[-1] in "Zz":
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            message="Timestamp must be an ISO date or date-time",
            error_code="INVALID_TIMESTAMP",
            details={"timestamp": raw},
        )

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_price(price: object) -> float:
    """A price must be a finite number greater than zero."""
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise ValidationError(message="Valid price is required", error_code="INVALID_PRICE")
    value = float(price)
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(
            message="Price must be greater than zero",
            error_code="INVALID_PRICE",
            details={"price": value},
        )
    return value


# =============================================================================
# PROJECTION
# =============================================================================


def select_latest_entry(entries: Iterable[LedgerEntry]) -> LedgerEntry | None:
    """Pick the entry the projection should mirror, or None for no entries."""
    return max(entries, key=lambda e: (e.sorted_at, e.id), default=None)


def apply_projection(bakugan: Bakugan, entries: Iterable[LedgerEntry]) -> bool:
    """Point ``bakugan``'s projection at its latest entry.

    Returns False, leaving the Bakugan untouched, when there are no entries.
    """
    latest = select_latest_entry(entries)
    if latest is None:
        return False
    bakugan.current_price = latest.price
    bakugan.date = latest.timestamp
    return True


def new_entry(
    bakugan_id: int,
    price: float,
    timestamp: str,
    notes: str | None = None,
    reference_uri: str | None = None,
) -> PriceHistory:
    return PriceHistory(
        bakugan_id=bakugan_id,
        price=price,
        timestamp=timestamp,
        sorted_at=parse_timestamp(timestamp),
        notes=notes or "",
        reference_uri=reference_uri or "",
    )


# =============================================================================
# OPERATIONS
# =============================================================================


async def record_price(
    bakugan_id: object,
    price: object,
    timestamp: object,
    notes: str | None = None,
    reference_uri: str | None = None,
) -> RecordedPrice:
    """Append a price observation and overwrite the Bakugan's projection with it."""
    item_id = parse_id(bakugan_id, "bakugan_id")
    value = validate_price(price)
    parse_timestamp(timestamp)

    async with get_session() as session:
        await lock_for_update(session, LOCK_NAMESPACE, item_id)
        bakugan = await session.get(Bakugan, item_id)
        if bakugan is None:
            raise NotFoundError(message="Bakugan not found", details={"bakugan_id": item_id})

        entry = new_entry(item_id, value, timestamp, notes, reference_uri)
        session.add(entry)

        bakugan.current_price = value
        bakugan.date = timestamp
        if reference_uri:
            bakugan.reference_uri = reference_uri

        await session.flush()
        recorded = RecordedPrice(bakugan=bakugan_to_dict(bakugan), entry=history_repo.entry_to_dict(entry))
        await session.commit()

    logger.info(
        f"Recorded price {value} for bakugan {item_id} at {timestamp}",
        extra={"bakugan_id": item_id, "entry_id": recorded.entry["id"]},
    )
    return recorded


async def delete_entry(entry_id: object, page_size: int | None = None) -> DeletedEntry:
    """Delete one entry and recompute its Bakugan's projection from the rest."""
    target_id = parse_id(entry_id, "price_history_id")
    page_size = page_size or settings.price_history_page_size

    async with get_session() as session:
        entry = await session.get(PriceHistory, target_id)
        if entry is None:
            raise NotFoundError(
                message="Price history entry not found",
                details={"price_history_id": target_id},
            )
        item_id = entry.bakugan_id

        await lock_for_update(session, LOCK_NAMESPACE, item_id)
        result = await session.execute(delete(PriceHistory).where(PriceHistory.id == target_id))
        if not result.rowcount:
            # Removed by a concurrent request while we waited for the lock.
            raise NotFoundError(
                message="Price history entry not found",
                details={"price_history_id": target_id},
            )

        remaining = await history_repo.fetch_entries(session, item_id)
        bakugan = await session.get(Bakugan, item_id)
        projection_updated = bakugan is not None and apply_projection(bakugan, remaining)

        await session.flush()
        outcome = DeletedEntry(
            bakugan_id=item_id,
            price_history=[history_repo.entry_to_dict(e) for e in remaining[:page_size]],
            projection_updated=projection_updated,
        )
        await session.commit()

    logger.info(
        f"Deleted price entry {target_id} of bakugan {item_id}",
        extra={
            "bakugan_id": item_id,
            "remaining": len(remaining),
            "projection_updated": projection_updated,
        },
    )
    return outcome


async def list_for_item(bakugan_id: object, limit: int | None = None) -> list[dict[str, Any]]:
    """Entries of one Bakugan, newest first, at most ``limit``."""
    item_id = parse_id(bakugan_id, "bakugan_id")
    limit = limit or settings.price_history_page_size
    if limit < 1:
        raise ValidationError(message="Limit must be positive", error_code="INVALID_LIMIT")
    return await history_repo.list_for_item(item_id, limit)


async def delete_all_for_item(session: AsyncSession, bakugan_id: object) -> int:
    """Remove every entry of one Bakugan without touching its projection.

    Runs inside the caller's transaction, which must already hold the item
    lock; item deletion is the only caller.
    """
    item_id = parse_id(bakugan_id, "bakugan_id")
    deleted = await history_repo.delete_all_for_item(session, item_id)
    logger.debug(f"Removed {deleted} price entries of bakugan {item_id}")
    return deleted
