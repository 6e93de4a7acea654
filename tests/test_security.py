"""Tests for identifiers, one-time codes, passwords and token revocation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bakumania.cache import token_blacklist
from bakumania.core.exceptions import AuthenticationError, ValidationError
from bakumania.core.identifiers import MAX_ID, is_valid_id, parse_id
from bakumania.core.otp import OTP_LENGTH, generate_otp, validate_otp
from bakumania.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    validate_token_not_revoked,
    verify_password,
)


class TestIdentifiers:
    """Tests for id parsing."""

    @pytest.mark.parametrize("raw, expected", [(7, 7), ("42", 42), (" 9 ", 9)])
    def test_valid_ids(self, raw, expected):
        assert parse_id(raw) == expected

    def test_largest_storable_id_accepted(self):
        """Ids are bounded by the 32-bit key columns."""
        assert parse_id(str(MAX_ID)) == MAX_ID
        assert is_valid_id(MAX_ID + 1) is False

    @pytest.mark.parametrize(
        "raw",
        [0, -3, "0", "007", "abc", "65a1b2c3d4e5f6", "", None, True, 1.5, "²", 2**31, "2147483648", "99999999999"],
    )
    def test_malformed_ids(self, raw):
        assert is_valid_id(raw) is False
        with pytest.raises(ValidationError) as exc_info:
            parse_id(raw, "bakugan_id")
        assert exc_info.value.error_code == "INVALID_ID"
        assert exc_info.value.details["field"] == "bakugan_id"


class TestOTP:
    """Tests for one-time code generation and validation."""

    def test_generated_code_shape(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        issued = generate_otp(now)

        assert len(issued.code) == OTP_LENGTH
        assert issued.code.isdigit()
        assert issued.expires_at > now

    def test_matching_code_accepted(self):
        expires = datetime(2024, 1, 1, 0, 10, tzinfo=timezone.utc)
        now = datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc)

        assert validate_otp("123456", expires, " 123456 ", now=now) is True

    def test_expired_code_rejected(self):
        expires = datetime(2024, 1, 1, 0, 10)
        now = datetime(2024, 1, 1, 0, 11, tzinfo=timezone.utc)

        assert validate_otp("123456", expires, "123456", now=now) is False

    def test_wrong_or_missing_code_rejected(self):
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)

        assert validate_otp("123456", expires, "654321") is False
        assert validate_otp(None, expires, "123456") is False
        assert validate_otp("123456", None, "123456") is False


class TestPasswords:
    """Tests for bcrypt hashing."""

    def test_hash_and_verify(self):
        hashed = hash_password("secret-pass")

        assert hashed != "secret-pass"
        assert verify_password("secret-pass", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_account_without_password_never_verifies(self):
        assert verify_password("anything", None) is False


class TestTokens:
    """Tests for JWT issue, decode and revocation."""

    def test_round_trip_claims(self):
        token = create_access_token("dan", is_admin=True)

        data = decode_access_token(token)

        assert data.sub == "dan"
        assert data.is_admin is True

    def test_expired_token_rejected(self):
        token = create_access_token("dan", expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.error_code == "TOKEN_EXPIRED"

    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.jwt")

    @pytest.mark.asyncio
    async def test_logout_revokes_single_token(self, fake_valkey):
        data = decode_access_token(create_access_token("dan"))
        other = decode_access_token(create_access_token("dan"))

        assert await token_blacklist.blacklist_token(data.jti, data.exp) is True

        assert await validate_token_not_revoked(data) is False
        assert await validate_token_not_revoked(other) is True

    @pytest.mark.asyncio
    async def test_user_cutoff_revokes_older_tokens(self, fake_valkey):
        """Tokens issued before the cut-off are rejected."""
        data = decode_access_token(create_access_token("dan"))

        await token_blacklist.blacklist_user_tokens("dan", before=data.iat + timedelta(seconds=1))

        assert await validate_token_not_revoked(data) is False

    @pytest.mark.asyncio
    async def test_cutoff_truncated_to_second(self, fake_valkey):
        """A token issued within the cut-off second stays valid."""
        data = decode_access_token(create_access_token("dan"))

        await token_blacklist.blacklist_user_tokens(
            "dan", before=data.iat + timedelta(microseconds=500)
        )

        assert await validate_token_not_revoked(data) is True
