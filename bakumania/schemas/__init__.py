"""Pydantic schemas for API request/response validation."""

from .auth import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    PasswordChangeRequest,
    RegisterRequest,
    UserResponse,
)
from .bakugan import (
    BakuganCreateRequest,
    BakuganDetailResponse,
    BakuganResponse,
    PriceHistoryEntry,
    PriceUpdateRequest,
)
from .common import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
)
from .recommendations import (
    RecommendationAssignRequest,
    RecommendationAssignResponse,
    RecommendationSlot,
)


__all__ = [
    "AccountResponse",
    "BakuganCreateRequest",
    "BakuganDetailResponse",
    "BakuganResponse",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PasswordChangeRequest",
    "PriceHistoryEntry",
    "PriceUpdateRequest",
    "RecommendationAssignRequest",
    "RecommendationAssignResponse",
    "RecommendationSlot",
    "RegisterRequest",
    "UserResponse",
]
