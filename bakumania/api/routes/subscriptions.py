"""Subscription routes: the pricing table and the expiry cron hook."""

from __future__ import annotations

import secrets
from typing import List

from fastapi import APIRouter, Header

from bakumania.core.config import settings
from bakumania.core.exceptions import AuthenticationError
from bakumania.schemas.collections import PricingTier, SubscriptionCheckResponse
from bakumania.services import subscriptions


# Mounted at /cron
cron_router = APIRouter()
# Mounted at /pricing
pricing_router = APIRouter()


def _check_cron_secret(authorization: str | None) -> None:
    """An empty CRON_SECRET leaves the hook open."""
    if not settings.cron_secret:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not secrets.compare_digest(token, settings.cron_secret):
        raise AuthenticationError(message="Unauthorized", error_code="INVALID_CRON_SECRET")


@cron_router.get(
    "/check-subscriptions",
    response_model=SubscriptionCheckResponse,
    summary="Revert expired subscriptions",
    description="Called by an external scheduler. Paid plans past their expiry go back to free.",
)
async def check_subscriptions(
    authorization: str | None = Header(default=None),
) -> SubscriptionCheckResponse:
    _check_cron_secret(authorization)
    reverted = await subscriptions.expire_subscriptions()
    return SubscriptionCheckResponse(
        reverted=reverted,
        message=f"Checked subscriptions. Reverted {reverted} expired subscriptions to free plan.",
    )


@pricing_router.get("", response_model=List[PricingTier], summary="Subscription tiers")
async def list_pricing() -> List[PricingTier]:
    return subscriptions.PRICING_TIERS
