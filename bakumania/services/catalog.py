"""Bakugan catalog writes: create-or-reprice, detail edits, deletion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete

from bakumania.core.config import settings
from bakumania.core.exceptions import NotFoundError, ValidationError
from bakumania.core.identifiers import parse_id
from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session, lock_for_update
from bakumania.database.orm import Bakugan
from bakumania.repositories import bakugan_orm as bakugan_repo
from bakumania.repositories import price_history_orm as history_repo
from bakumania.services import price_ledger


logger = get_logger("services.catalog")

SIZES = ("B1", "B2", "B3")
ADD_FORM_NOTE = "Price updated via Add form"
INITIAL_PRICE_NOTE = "Initial price"


@dataclass
class AddResult:
    bakugan: dict[str, Any]
    created: bool
    entry: dict[str, Any] | None = None


def clean_names(names: list[str] | None) -> list[str]:
    cleaned = [n.strip() for n in names or [] if n and n.strip()]
    if not cleaned:
        raise ValidationError(message="At least one name is required", error_code="NAMES_REQUIRED")
    return cleaned


def validate_size(size: str) -> str:
    if size not in SIZES:
        raise ValidationError(
            message=f"Size must be one of {', '.join(SIZES)}",
            error_code="INVALID_SIZE",
            details={"size": size},
        )
    return size


def validate_element(element: str) -> str:
    if not element or not element.strip():
        raise ValidationError(message="Element is required", error_code="ELEMENT_REQUIRED")
    return element.strip()


async def add_bakugan(
    names: list[str],
    size: str,
    element: str,
    current_price: float,
    date: str | None,
    special_properties: str | None = None,
    series: str | None = None,
    image_url: str | None = None,
    reference_uri: str | None = None,
) -> AddResult:
    """Create a Bakugan, or record a new price if it is already catalogued.

    A Bakugan is the same one when its primary name, size and element match.
    New Bakugan with a positive price start their history with that price.
    """
    names = clean_names(names)
    size = validate_size(size)
    element = validate_element(element)
    if current_price is None or current_price < 0:
        raise ValidationError(message="Current price must not be negative", error_code="INVALID_PRICE")
    if not date:
        raise ValidationError(message="Date is required", error_code="DATE_REQUIRED")
    price_ledger.parse_timestamp(date)

    async with get_session() as session:
        existing = await bakugan_repo.find_duplicate(session, names[0], size, element)
        existing_id = existing.id if existing is not None else None

        if existing_id is None:
            bakugan = Bakugan(
                names=names,
                name_index=bakugan_repo.build_name_index(names),
                size=size,
                element=element,
                special_properties=special_properties or "Normal",
                series=series or "",
                image_url=image_url or "",
                current_price=current_price,
                reference_uri=reference_uri or "",
                date=date,
            )
            session.add(bakugan)
            await session.flush()

            entry = None
            if current_price > 0:
                entry = price_ledger.new_entry(
                    bakugan.id, current_price, date, INITIAL_PRICE_NOTE, reference_uri
                )
                session.add(entry)
                await session.flush()

            result = AddResult(
                bakugan=bakugan_repo.bakugan_to_dict(bakugan),
                created=True,
                entry=history_repo.entry_to_dict(entry) if entry is not None else None,
            )
            await session.commit()

    if existing_id is not None:
        recorded = await price_ledger.record_price(
            existing_id, current_price, date, notes=ADD_FORM_NOTE, reference_uri=reference_uri
        )
        logger.info(f"Add form repriced existing bakugan {existing_id}")
        return AddResult(bakugan=recorded.bakugan, created=False, entry=recorded.entry)

    logger.info(
        f"Created bakugan {result.bakugan['id']} ({names[0]}, {size}, {element})",
        extra={"bakugan_id": result.bakugan["id"]},
    )
    return result


async def get_with_history(bakugan_id: object, limit: int | None = None) -> dict[str, Any]:
    """A Bakugan plus its newest price entries."""
    item_id = parse_id(bakugan_id, "bakugan_id")
    bakugan = await bakugan_repo.get_bakugan(item_id)
    if bakugan is None:
        raise NotFoundError(message="Bakugan not found", details={"bakugan_id": item_id})
    bakugan["price_history"] = await price_ledger.list_for_item(
        item_id, limit or settings.price_history_page_size
    )
    return bakugan


async def update_details(
    bakugan_id: object,
    names: list[str],
    size: str,
    element: str,
    special_properties: str | None = None,
    series: str | None = None,
    image_url: str | None = None,
    reference_uri: str | None = None,
) -> dict[str, Any]:
    """Replace descriptive fields; price fields are owned by the ledger.

    Image, series and reference URI change only when a value is supplied.
    """
    item_id = parse_id(bakugan_id, "bakugan_id")
    names = clean_names(names)
    size = validate_size(size)
    element = validate_element(element)

    async with get_session() as session:
        bakugan = await session.get(Bakugan, item_id)
        if bakugan is None:
            raise NotFoundError(message="Bakugan not found", details={"bakugan_id": item_id})

        bakugan.names = names
        bakugan.name_index = bakugan_repo.build_name_index(names)
        bakugan.size = size
        bakugan.element = element
        bakugan.special_properties = special_properties or ""
        if series:
            bakugan.series = series
        if image_url:
            bakugan.image_url = image_url
        if reference_uri:
            bakugan.reference_uri = reference_uri

        await session.flush()
        data = bakugan_repo.bakugan_to_dict(bakugan)
        await session.commit()

    return data


async def delete_bakugan(bakugan_id: object) -> int:
    """Delete a Bakugan together with its whole price history.

    Ranked slots and collection entries that point at it are left dangling.
    Returns the number of price entries removed.
    """
    item_id = parse_id(bakugan_id, "bakugan_id")

    async with get_session() as session:
        await lock_for_update(session, price_ledger.LOCK_NAMESPACE, item_id)
        removed = await price_ledger.delete_all_for_item(session, item_id)
        result = await session.execute(delete(Bakugan).where(Bakugan.id == item_id))
        if not result.rowcount:
            raise NotFoundError(message="Bakugan not found", details={"bakugan_id": item_id})
        await session.commit()

    logger.info(
        f"Deleted bakugan {item_id} and {removed} price entries",
        extra={"bakugan_id": item_id},
    )
    return removed
