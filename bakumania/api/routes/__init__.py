"""API routes package."""

from . import (
    auth,
    bakugan,
    collections,
    health,
    price_history,
    recommendations,
    subscriptions,
    users,
)


__all__ = [
    "auth",
    "bakugan",
    "collections",
    "health",
    "price_history",
    "recommendations",
    "subscriptions",
    "users",
]
