"""API application factory."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from bakumania.cache.ttl_cache import TTLCache
from bakumania.core.config import settings
from bakumania.core.exceptions import register_exception_handlers
from bakumania.core.logging import get_logger, request_id_var
from bakumania.schemas.common import ErrorResponse

from .routes import (
    auth,
    bakugan,
    collections,
    health,
    price_history,
    recommendations,
    subscriptions,
    users,
)


logger = get_logger("api")


async def startup_resources() -> None:
    """Open the database engine, create missing tables and the Valkey client."""
    from bakumania.cache.client import get_valkey_client
    from bakumania.database.connection import create_schema, init_sqlalchemy_engine

    await init_sqlalchemy_engine()
    await create_schema()
    # Valkey only backs token revocation, which fails open.
    await get_valkey_client()


async def shutdown_resources() -> None:
    from bakumania.cache.client import close_valkey_client
    from bakumania.database.connection import close_sqlalchemy_engine

    await close_valkey_client()
    await close_sqlalchemy_engine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - initialize and cleanup resources."""
    await startup_resources()
    yield
    await shutdown_resources()


def build_read_caches() -> dict[str, TTLCache]:
    """One cache per cached read; entries expire by time only."""
    return {
        "combined": TTLCache(settings.combined_cache_ttl, name="combined"),
        "bakutech": TTLCache(settings.bakutech_cache_ttl, name="bakutech"),
        "price_history": TTLCache(settings.price_history_cache_ttl, name="price_history"),
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=()"
        )

        # HSTS (only when HTTPS is enabled)
        if settings.https_enabled:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to all requests for tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_var.set(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status and duration."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()

        response = await call_next(request)

        duration = time.monotonic() - start_time

        # Log path only (query strings may carry search terms or emails)
        path = request.url.path

        logger.info(
            f"{request.method} {path} -> {response.status_code} ({duration:.3f}s)",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": int(duration * 1000),
            },
        )

        return response


def create_api_app() -> FastAPI:
    """Create and configure the API application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Bakugan price tracking API",
        root_path=settings.root_path,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        responses={
            400: {"model": ErrorResponse, "description": "Bad Request"},
            401: {"model": ErrorResponse, "description": "Unauthorized"},
            403: {"model": ErrorResponse, "description": "Forbidden"},
            404: {"model": ErrorResponse, "description": "Not Found"},
            409: {"model": ErrorResponse, "description": "Conflict"},
            422: {"model": ErrorResponse, "description": "Validation Error"},
            500: {"model": ErrorResponse, "description": "Internal Server Error"},
            503: {"model": ErrorResponse, "description": "Storage Unavailable"},
        },
    )

    app.state.caches = build_read_caches()

    # Add middlewares (order matters - first added is outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS - strict configuration (no wildcards with credentials)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(users.router, prefix="/user", tags=["Account"])
    app.include_router(users.admin_router, prefix="/users", tags=["Users"])
    app.include_router(bakugan.router, prefix="/bakugan", tags=["Bakugan"])
    app.include_router(price_history.router, prefix="/price-history", tags=["Price History"])
    app.include_router(recommendations.router, prefix="/recommendations", tags=["Recommendations"])
    app.include_router(
        recommendations.bakutech_router,
        prefix="/bakutech-recommendations",
        tags=["BakuTech Recommendations"],
    )
    app.include_router(collections.portfolio_router, prefix="/portfolio", tags=["Portfolio"])
    app.include_router(collections.favorites_router, prefix="/favorites", tags=["Favorites"])
    app.include_router(subscriptions.cron_router, prefix="/cron", tags=["Cron"])
    app.include_router(subscriptions.pricing_router, prefix="/pricing", tags=["Pricing"])

    return app
