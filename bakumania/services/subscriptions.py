"""Subscription plans: the published tier table and the expiry sweep."""

from __future__ import annotations

from datetime import datetime, timezone

from bakumania.core.logging import get_logger
from bakumania.repositories import users_orm


logger = get_logger("services.subscriptions")

PRICING_TIERS = [
    {
        "plan": "free",
        "title": "Free Plan",
        "label": "Beginner",
        "monthly_price_thb": 0,
        "yearly_price_thb": 0,
        "yearly_saving_percent": 0,
        "audience": "Newcomers to Bakugan or those who want to quickly check prices",
        "includes": None,
        "features": [
            "View latest Bakugan prices",
            "Filter by Bakugan series (Vol.1 Battle Brawlers)",
        ],
    },
    {
        "plan": "pro",
        "title": "Pro Plan",
        "label": "Serious Collector",
        "monthly_price_thb": 69,
        "yearly_price_thb": 700,
        "yearly_saving_percent": 15,
        "audience": "Collectors who want to search and manage their Bakugan collection",
        "includes": "free",
        "features": [
            "Advanced filters by element, price range, and more",
            "Search by nicknames, alternative names, and phonetics",
            "Favorites: Save Bakugan you're interested in for later",
        ],
    },
    {
        "plan": "elite",
        "title": "Elite Plan",
        "label": "Investment Strategist",
        "monthly_price_thb": 119,
        "yearly_price_thb": 1200,
        "yearly_saving_percent": 16,
        "audience": (
            "Experienced collectors who want to plan investments and manage "
            "their Bakugan portfolio long-term"
        ),
        "includes": "pro",
        "features": [
            "Portfolio Management: Organize your Bakugan collection with price history graphs",
            "AI Suggestions: Get recommendations for Bakugan to buy based on trends and popularity",
            "Profile Customization: Personalize your profile with banners, badges, and display styles",
        ],
    },
]


async def expire_subscriptions(now: datetime | None = None) -> int:
    """Revert lapsed paid plans to free and return how many were reverted."""
    now = now or datetime.now(timezone.utc)
    reverted = await users_orm.expire_subscriptions(now)
    logger.info(
        f"Checked subscriptions. Reverted {reverted} expired subscriptions to free plan.",
        extra={"reverted": reverted},
    )
    return reverted
