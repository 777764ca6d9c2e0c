"""Purchase request schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockroom.models.purchase_request import PurchaseRequestStatus


class PurchaseItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, gt=0)
    estimated_price: float = Field(0, ge=0)
    reason: Optional[str] = Field(None, max_length=500)


class PurchaseRequestCreate(BaseModel):
    items: list[PurchaseItem] = Field(..., min_length=1)
    reason: Optional[str] = None


class PurchaseRequestDecision(BaseModel):
    status: Literal["APPROVED", "REJECTED"]
    note: Optional[str] = Field(None, max_length=500)


class PurchaseRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: int
    items: list[PurchaseItem]
    reason: Optional[str] = None
    status: PurchaseRequestStatus
    estimated_total: float
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PurchaseRequestListResponse(BaseModel):
    items: list[PurchaseRequestResponse]
    total: int
