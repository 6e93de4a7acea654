"""Bakugan catalog and price history schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PriceHistoryEntry(BaseModel):
    """One recorded price observation."""

    id: int
    price: float
    timestamp: str = Field(..., description="Timestamp exactly as it was recorded")
    notes: str = ""
    reference_uri: str = ""


class BakuganResponse(BaseModel):
    """Full catalog record."""

    id: int
    names: List[str]
    size: str
    element: str
    special_properties: str
    series: str
    image_url: str
    current_price: float
    reference_uri: str
    date: str = Field(..., description="Timestamp of the current price")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BakuganDetailResponse(BakuganResponse):
    """Catalog record with its newest price entries."""

    price_history: List[PriceHistoryEntry] = Field(default_factory=list)


class BakuganCreateRequest(BaseModel):
    """Add form payload. An existing Bakugan with the same primary name, size
    and element gets a new price instead of a duplicate record."""

    names: List[str] = Field(..., min_length=1, description="Display names, primary first")
    size: str = Field(..., description="B1, B2 or B3", examples=["B1"])
    element: str = Field(..., min_length=1, examples=["Pyrus"])
    current_price: float = Field(..., ge=0, description="Price in THB")
    date: str = Field(..., min_length=1, description="ISO date or date-time", examples=["2024-01-01"])
    special_properties: Optional[str] = Field(default=None, examples=["Normal"])
    series: Optional[str] = None
    image_url: Optional[str] = None
    reference_uri: Optional[str] = None


class BakuganUpdateRequest(BaseModel):
    """Descriptive fields; image, series and reference URI are kept when omitted."""

    names: List[str] = Field(..., min_length=1)
    size: str
    element: str
    special_properties: Optional[str] = None
    series: Optional[str] = None
    image_url: Optional[str] = None
    reference_uri: Optional[str] = None


class PriceUpdateRequest(BaseModel):
    """Record a price for an existing Bakugan."""

    price: float = Field(..., description="Must be greater than zero")
    timestamp: Optional[str] = Field(default=None, description="ISO date or date-time, required")
    notes: Optional[str] = None
    reference_uri: Optional[str] = None


class PriceUpdateResponse(BaseModel):
    bakugan: BakuganResponse
    price_history: PriceHistoryEntry


class PriceHistoryDeleteResponse(BaseModel):
    """Remaining entries after a deletion, newest first."""

    bakugan_id: int
    price_history: List[PriceHistoryEntry]
    projection_updated: bool = Field(
        ..., description="False when no entries remain and the current price was left as is"
    )


class BakuganDeleteResponse(BaseModel):
    message: str
    bakugan_id: int
    deleted_price_history: int
