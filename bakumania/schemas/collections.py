"""Portfolio and favorites schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from bakumania.schemas.recommendations import BakuganSummary


class CollectionAddRequest(BaseModel):
    bakugan_id: Any = Field(..., description="Bakugan ID", examples=[1])
    notes: Optional[str] = Field(default=None, max_length=2000)


class CollectionEntry(BaseModel):
    """Entry in a user's portfolio or favorites."""

    id: int
    bakugan_id: int
    notes: str = ""
    added_at: Optional[datetime] = None
    bakugan: Optional[BakuganSummary] = Field(
        default=None, description="Null when the Bakugan has been deleted"
    )


class CollectionAddResponse(BaseModel):
    message: str
    entry: CollectionEntry


class CollectionRemoveResponse(BaseModel):
    message: str
    id: int


class PricingTier(BaseModel):
    plan: str
    title: str
    label: str
    monthly_price_thb: int
    yearly_price_thb: int
    yearly_saving_percent: int
    audience: str
    includes: Optional[str] = Field(default=None, description="Plan whose features are also included")
    features: List[str]


class SubscriptionCheckResponse(BaseModel):
    success: bool = True
    reverted: int
    message: str
