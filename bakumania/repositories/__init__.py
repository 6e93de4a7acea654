"""Data access layer repositories.

Each repository module provides async functions for database operations.
All code uses SQLAlchemy ORM models from `bakumania.database.orm` with the
`get_session()` context manager.

ORM-based repositories:
- bakugan_orm: catalog records and their display projections
- price_history_orm: price history reads, newest first
- users_orm: accounts, one-time codes and subscriptions
- collections_orm: portfolio and favorites entries
"""

from . import bakugan_orm
from . import collections_orm
from . import price_history_orm
from . import users_orm

__all__ = [
    "bakugan_orm",
    "collections_orm",
    "price_history_orm",
    "users_orm",
]
