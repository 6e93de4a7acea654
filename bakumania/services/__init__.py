"""Business logic services."""

from . import catalog, price_ledger, ranked_slots, subscriptions


__all__ = [
    "catalog",
    "price_ledger",
    "ranked_slots",
    "subscriptions",
]
