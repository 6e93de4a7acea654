"""Core infrastructure: settings, security, logging, exceptions."""

from .config import settings
from .exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from .identifiers import is_valid_id, parse_id
from .security import (
    TokenData,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "ConflictError",
    "InfrastructureError",
    "NotFoundError",
    "TokenData",
    "ValidationError",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "is_valid_id",
    "parse_id",
    "settings",
    "verify_password",
]
