"""SQLAlchemy ORM models for Bakumania.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via the asyncpg driver (aiosqlite in tests).

Usage:
    from bakumania.database.orm import Bakugan, PriceHistory
    from bakumania.database.connection import get_session

    async with get_session() as session:
        bakugan = await session.get(Bakugan, 1)
        bakugan.image_url = "https://..."
        await session.commit()
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)


# Naming convention for constraints and indexes (deterministic names for migrations)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# CATALOG
# =============================================================================


class Bakugan(Base):
    """A collectible with its denormalized current price."""
    __tablename__ = "bakugan"

    id: Mapped[int] = mapped_column(primary_key=True)
    names: Mapped[list[str]] = mapped_column(JSON, nullable=False)  # first entry is primary
    name_index: Mapped[str] = mapped_column(Text, nullable=False, default="")  # lowercased names for search
    size: Mapped[str] = mapped_column(String(2), nullable=False)
    element: Mapped[str] = mapped_column(String(50), nullable=False)
    special_properties: Mapped[str] = mapped_column(String(50), nullable=False, default="Normal")
    series: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reference_uri: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[str] = mapped_column(String(64), nullable=False)  # verbatim, as supplied
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_bakugan_updated", "updated_at"),
        Index("idx_bakugan_size_element", "size", "element"),
    )


class PriceHistory(Base):
    """One immutable price observation for a Bakugan."""
    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    bakugan_id: Mapped[int] = mapped_column(
        ForeignKey("bakugan.id", ondelete="CASCADE"), nullable=False
    )
    price: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[str] = mapped_column(String(64), nullable=False)  # verbatim, as supplied
    sorted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)  # naive UTC ordering key
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference_uri: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_price_history_bakugan_sorted", "bakugan_id", "sorted_at", "id"),
    )


# =============================================================================
# RANKED SLOTS
# =============================================================================


class RankSlotMixin:
    """Shared columns of the two ranked recommendation lists.

    ``bakugan_id`` carries no foreign key: deleting a Bakugan leaves its slot
    dangling, and listings report the join as null.
    """

    id: Mapped[int] = mapped_column(primary_key=True)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    bakugan_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Recommendation(RankSlotMixin, Base):
    """Top-five list of the main catalog."""
    __tablename__ = "recommendations"


class BakutechRecommendation(RankSlotMixin, Base):
    """Top-five list of the BakuTech catalog."""
    __tablename__ = "bakutech_recommendations"


# =============================================================================
# ACCOUNTS
# =============================================================================


class User(Base):
    """Account with subscription state and pending one-time code."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    password_hash: Mapped[str | None] = mapped_column(String(255))
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str | None] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(Text)
    provider: Mapped[str | None] = mapped_column(String(50))
    otp_code: Mapped[str | None] = mapped_column(String(6))
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subscription_plan: Mapped[str] = mapped_column(String(10), nullable=False, default="free")
    subscription_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_plan_expiry", "subscription_plan", "subscription_expiry"),
    )


# =============================================================================
# COLLECTIONS
# =============================================================================


class CollectionEntryMixin:
    """Per-user Bakugan bookmark; ``user_id`` is the owner's username."""

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    bakugan_id: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PortfolioItem(CollectionEntryMixin, Base):
    """Bakugan a user owns."""
    __tablename__ = "portfolio_items"

    __table_args__ = (
        UniqueConstraint("user_id", "bakugan_id"),
        Index("idx_portfolio_items_user", "user_id"),
    )


class FavoriteItem(CollectionEntryMixin, Base):
    """Bakugan a user is watching."""
    __tablename__ = "favorite_items"

    __table_args__ = (
        UniqueConstraint("user_id", "bakugan_id"),
        Index("idx_favorite_items_user", "user_id"),
    )
