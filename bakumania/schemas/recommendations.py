"""Ranked recommendation slot schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BakuganSummary(BaseModel):
    """Restricted Bakugan view joined onto a slot."""

    id: int
    names: List[str]
    size: str
    element: str
    image_url: str
    current_price: float
    special_properties: Optional[str] = None
    reference_uri: Optional[str] = None
    price_history: Optional[List[Dict[str, Any]]] = None


class RecommendationSlot(BaseModel):
    """A rank slot. ``bakugan`` is null when the referenced item no longer exists."""

    id: int
    rank: int = Field(..., ge=1, le=5)
    bakugan_id: int
    reason: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    bakugan: Optional[BakuganSummary] = None


class RecommendationAssignRequest(BaseModel):
    """Put a Bakugan at a rank; an occupied rank is resolved by swap or eviction."""

    bakugan_id: Any = Field(..., description="Bakugan ID", examples=[1])
    rank: Any = Field(..., description="Rank from 1 to 5", examples=[1])
    reason: Optional[str] = Field(default=None, max_length=1000)


class SlotRecord(BaseModel):
    id: int
    rank: int
    bakugan_id: int
    reason: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecommendationAssignResponse(BaseModel):
    outcome: str = Field(..., examples=["created", "updated", "swapped"])
    recommendation: SlotRecord
    displaced: Optional[SlotRecord] = Field(
        default=None, description="The other slot of a swap, now at the former rank"
    )
    evicted_bakugan_id: Optional[int] = Field(
        default=None, description="Previous occupant of an overwritten rank"
    )


class PriceHistoryBatchRequest(BaseModel):
    bakugan_ids: List[Any] = Field(..., min_length=1)
