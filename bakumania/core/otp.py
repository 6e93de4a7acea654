"""One-time verification codes for email verification and password resets."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .config import settings
from .logging import get_logger


logger = get_logger("otp")

OTP_LENGTH = 6


@dataclass(frozen=True)
class IssuedCode:
    code: str
    expires_at: datetime


def generate_otp(now: datetime | None = None) -> IssuedCode:
    """Generate a 6-digit code that expires after the configured lifetime."""
    now = now or datetime.now(timezone.utc)
    code = str(100000 + secrets.randbelow(900000))
    return IssuedCode(
        code=code,
        expires_at=now + timedelta(minutes=settings.otp_expiry_minutes),
    )


def validate_otp(
    stored_code: str | None,
    expires_at: datetime | None,
    provided: str,
    now: datetime | None = None,
) -> bool:
    """Check a provided code against the stored one.

    Missing state, a mismatch, or an expired code all fail.
    """
    if not stored_code or expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if now > expires_at:
        return False
    return secrets.compare_digest(stored_code, provided.strip())


async def deliver_otp(email: str, code: str) -> None:
    """Hand a code to the mail transport.

    Mail delivery is provided by the deployment; this process only records
    that a code was issued.
    """
    logger.info(
        "Verification code issued",
        extra={"recipient_domain": email.rsplit("@", 1)[-1], "code_length": len(code)},
    )
