"""Account self-service and admin user management routes."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response

from bakumania.api.dependencies import require_admin, require_user
from bakumania.cache.token_blacklist import blacklist_user_tokens
from bakumania.core.exceptions import AuthenticationError, BadRequestError, NotFoundError
from bakumania.core.logging import get_logger
from bakumania.core.security import TokenData, create_access_token, hash_password, verify_password
from bakumania.repositories import users_orm as users_repo
from bakumania.schemas.auth import (
    AccountResponse,
    AdminUserUpdateRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
)
from bakumania.schemas.common import MessageResponse

from .auth import set_session_cookie


# Mounted at /user
router = APIRouter()
# Mounted at /users
admin_router = APIRouter(dependencies=[Depends(require_admin)])

logger = get_logger("api.users")


async def _current_record(user: TokenData) -> users_repo.UserRecord:
    record = await users_repo.get_user(user.sub)
    if record is None:
        raise NotFoundError(message="User not found")
    return record


@router.put(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Requires the current password. All earlier sessions are revoked.",
    responses={401: {"description": "Invalid current password"}},
)
async def change_password(
    payload: PasswordChangeRequest,
    response: Response,
    user: TokenData = Depends(require_user),
) -> MessageResponse:
    record = await _current_record(user)
    if not verify_password(payload.current_password, record.password_hash):
        raise AuthenticationError(
            message="Current password is incorrect",
            error_code="INVALID_PASSWORD",
        )

    await users_repo.set_password(record.id, hash_password(payload.new_password))
    await blacklist_user_tokens(record.username)

    # Keep this browser signed in with a token issued after the cut-off.
    set_session_cookie(response, create_access_token(record.username, is_admin=record.is_admin))
    logger.info("Password changed", extra={"user_id": record.id})
    return MessageResponse(message="Password updated successfully")


@router.put(
    "/profile",
    response_model=AccountResponse,
    summary="Update display name",
)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: TokenData = Depends(require_user),
) -> AccountResponse:
    record = await _current_record(user)
    updated = await users_repo.update_profile(record.id, payload.name.strip())
    if updated is None:
        raise NotFoundError(message="User not found")
    return AccountResponse(**updated.public_dict())


@admin_router.get(
    "",
    response_model=List[AccountResponse],
    summary="List users (admin)",
    description="All accounts, newest first, without password hashes or codes.",
)
async def list_users() -> List[AccountResponse]:
    return [AccountResponse(**u.public_dict()) for u in await users_repo.list_users()]


@admin_router.patch(
    "",
    response_model=AccountResponse,
    summary="Update user role or subscription (admin)",
)
async def update_user(payload: AdminUserUpdateRequest) -> AccountResponse:
    values = payload.model_dump(exclude={"user_id"}, exclude_none=True)
    if not values:
        raise BadRequestError(message="No valid update fields provided", error_code="NO_UPDATES")

    updated = await users_repo.admin_update(payload.user_id, **values)
    if updated is None:
        raise NotFoundError(message="User not found", details={"user_id": payload.user_id})

    logger.info(f"Admin updated user {payload.user_id}", extra={"fields": sorted(values)})
    return AccountResponse(**updated.public_dict())
