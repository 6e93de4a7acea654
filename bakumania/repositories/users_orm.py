"""User account repository using SQLAlchemy ORM.

Usage:
    from bakumania.repositories.users_orm import get_user, create_user, set_otp
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select, update

from bakumania.core.logging import get_logger
from bakumania.database.connection import get_session
from bakumania.database.orm import User as UserORM


logger = get_logger("repositories.users_orm")

TEMP_USERNAME_PREFIX = "temp_"
SUBSCRIPTION_PLANS = ("free", "pro", "elite")


@dataclass
class UserRecord:
    """User account as seen by the service layer."""

    id: int
    username: str
    email: str | None = None
    password_hash: str | None = None
    is_admin: bool = False
    name: str | None = None
    image: str | None = None
    provider: str | None = None
    otp_code: str | None = None
    otp_expires_at: datetime | None = None
    is_verified: bool = False
    subscription_plan: str = "free"
    subscription_expiry: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_orm(cls, user: UserORM) -> UserRecord:
        """Create from ORM model."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            password_hash=user.password_hash,
            is_admin=user.is_admin or False,
            name=user.name,
            image=user.image,
            provider=user.provider,
            otp_code=user.otp_code,
            otp_expires_at=user.otp_expires_at,
            is_verified=user.is_verified or False,
            subscription_plan=user.subscription_plan or "free",
            subscription_expiry=user.subscription_expiry,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def public_dict(self) -> dict[str, Any]:
        """Account fields safe to return to clients (no hash, no OTP)."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "name": self.name,
            "image": self.image,
            "provider": self.provider,
            "is_admin": self.is_admin,
            "is_verified": self.is_verified,
            "subscription_plan": self.subscription_plan,
            "subscription_expiry": self.subscription_expiry,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


async def _get_where(*criteria) -> UserRecord | None:
    async with get_session() as session:
        result = await session.execute(select(UserORM).where(*criteria).order_by(UserORM.id).limit(1))
        user = result.scalar_one_or_none()
        if user:
            return UserRecord.from_orm(user)
        return None


async def get_user(username: str) -> UserRecord | None:
    """Get a user by username."""
    return await _get_where(UserORM.username == username)


async def get_user_by_id(user_id: int) -> UserRecord | None:
    """Get a user by ID."""
    return await _get_where(UserORM.id == user_id)


async def get_user_by_email(email: str) -> UserRecord | None:
    """Get the oldest account registered with an email address."""
    return await _get_where(UserORM.email == email)


async def verified_email_taken(email: str) -> bool:
    """True when a verified, non-temporary account owns ``email``."""
    async with get_session() as session:
        result = await session.execute(
            select(UserORM.id)
            .where(
                UserORM.email == email,
                UserORM.is_verified.is_(True),
                UserORM.username.not_like(f"{TEMP_USERNAME_PREFIX}%"),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None


async def create_user(
    username: str,
    password_hash: str | None,
    is_admin: bool = False,
    email: str | None = None,
    is_verified: bool = False,
) -> UserRecord:
    """Insert a new account; a duplicate username surfaces as ConflictError."""
    async with get_session() as session:
        user = UserORM(
            username=username,
            password_hash=password_hash,
            is_admin=is_admin,
            email=email,
            is_verified=is_verified,
        )
        session.add(user)
        await session.flush()
        record = UserRecord.from_orm(user)
        await session.commit()

    logger.info(f"Created user {username}", extra={"user_id": record.id, "is_admin": is_admin})
    return record


async def _update(user_id: int, **values: Any) -> bool:
    async with get_session() as session:
        user = await session.get(UserORM, user_id)
        if user is None:
            return False
        for key, value in values.items():
            setattr(user, key, value)
        await session.commit()
        return True


async def set_otp(user_id: int, code: str, expires_at: datetime) -> bool:
    """Store a freshly issued one-time code, replacing any previous one."""
    return await _update(user_id, otp_code=code, otp_expires_at=expires_at)


async def mark_verified(user_id: int) -> bool:
    """Mark the email verified and clear the consumed code."""
    return await _update(user_id, is_verified=True, otp_code=None, otp_expires_at=None)


async def set_password(user_id: int, password_hash: str, clear_otp: bool = False) -> bool:
    values: dict[str, Any] = {"password_hash": password_hash}
    if clear_otp:
        values.update(otp_code=None, otp_expires_at=None)
    return await _update(user_id, **values)


async def update_profile(user_id: int, name: str) -> UserRecord | None:
    if not await _update(user_id, name=name):
        return None
    return await get_user_by_id(user_id)


async def list_users() -> list[UserRecord]:
    """All accounts, newest first."""
    async with get_session() as session:
        result = await session.execute(
            select(UserORM).order_by(UserORM.created_at.desc(), UserORM.id.desc())
        )
        return [UserRecord.from_orm(u) for u in result.scalars().all()]


async def admin_update(user_id: int, **values: Any) -> UserRecord | None:
    """Apply admin edits (role, plan, plan expiry). None if the user is missing."""
    if not await _update(user_id, **values):
        return None
    return await get_user_by_id(user_id)


async def expire_subscriptions(now: datetime) -> int:
    """Revert every paid plan whose expiry is before ``now`` to free."""
    async with get_session() as session:
        result = await session.execute(
            update(UserORM)
            .where(
                UserORM.subscription_plan != "free",
                UserORM.subscription_expiry.is_not(None),
                UserORM.subscription_expiry < now,
            )
            .values(subscription_plan="free")
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        return result.rowcount or 0
