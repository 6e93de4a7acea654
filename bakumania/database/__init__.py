"""Database module: async SQLAlchemy engine, sessions and ORM models."""

from .connection import (
    close_sqlalchemy_engine,
    create_schema,
    db_healthcheck,
    get_async_database_url,
    get_engine,
    get_session,
    init_sqlalchemy_engine,
    lock_for_update,
)
from .orm import (
    Bakugan,
    BakutechRecommendation,
    Base,
    FavoriteItem,
    PortfolioItem,
    PriceHistory,
    Recommendation,
    User,
)


__all__ = [
    "get_async_database_url",
    "init_sqlalchemy_engine",
    "close_sqlalchemy_engine",
    "create_schema",
    "db_healthcheck",
    "get_session",
    "get_engine",
    "lock_for_update",
    "Base",
    "Bakugan",
    "BakutechRecommendation",
    "FavoriteItem",
    "PortfolioItem",
    "PriceHistory",
    "Recommendation",
    "User",
]
