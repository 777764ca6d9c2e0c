"""Fixed asset and loan schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stockroom.models.asset import AssetCondition, BorrowStatus, as_utc


class FixedAssetCreate(BaseModel):
    asset_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    location: Optional[str] = Field("Unassigned", max_length=255)
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = Field(None, ge=0)
    condition: AssetCondition = AssetCondition.GOOD


class FixedAssetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    asset_number: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = Field(None, ge=0)
    condition: Optional[AssetCondition] = None


class FixedAssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    asset_number: str
    name: str
    category: str
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = None
    condition: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FixedAssetListResponse(BaseModel):
    items: list[FixedAssetResponse]
    total: int
    page: int
    page_size: int


class BorrowCreate(BaseModel):
    fixed_asset_id: str
    user_id: Optional[int] = None  # defaults to the caller
    expected_return_date: Optional[datetime] = None
    purpose: Optional[str] = Field(None, max_length=500)
    note: Optional[str] = None

    @field_validator("expected_return_date")
    @classmethod
    def normalise_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class ReturnRequest(BaseModel):
    borrow_id: str
    condition: Optional[AssetCondition] = None
    note: Optional[str] = None


class BorrowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    fixed_asset_id: Optional[str] = None
    user_id: int
    status: BorrowStatus
    borrow_date: datetime
    expected_return_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    purpose: Optional[str] = None
    note: Optional[str] = None
    is_overdue: bool = False


class BorrowListResponse(BaseModel):
    items: list[BorrowResponse]
    total: int
