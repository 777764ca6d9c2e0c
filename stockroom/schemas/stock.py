"""Stock item and ledger schemas for request/response validation."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockroom.models.stock_transaction import TransactionType


class StockItemCreate(BaseModel):
    """Schema for creating a legacy or consumable material."""

    kind: Literal["legacy", "consumable"] = "consumable"
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    unit: str = Field("piece", min_length=1, max_length=50)
    min_stock: int = Field(0, ge=0)
    initial_stock: int = Field(0, ge=0)
    # legacy only
    code: Optional[str] = Field(None, max_length=50)
    # consumable only
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class StockItemUpdate(BaseModel):
    """Descriptive fields only. Stock moves through the ledger."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    min_stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    code: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class StockItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    name: str
    category: Optional[str] = None
    unit: str
    min_stock: int
    current_stock: int
    needs_restock: bool
    is_active: Optional[bool] = True
    code: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StockItemListResponse(BaseModel):
    items: list[StockItemResponse]
    total: int
    page: int
    page_size: int


class StockMovementRequest(BaseModel):
    """One IN/OUT movement against a material."""

    material_id: str
    quantity: int = Field(..., gt=0)
    type: TransactionType
    reason: Optional[str] = Field(None, max_length=500)


class StockAdjustment(BaseModel):
    """Signed correction of a material's stock."""

    adjustment: int
    reason: Optional[str] = Field(None, max_length=500)


class WithdrawRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=500)


class BatchMovementRequest(BaseModel):
    transactions: list[StockMovementRequest] = Field(..., min_length=1)


class StockTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    material_id: Optional[str] = None
    material_name: str
    type: str
    quantity: int
    previous_stock: int
    new_stock: int
    reason: Optional[str] = None
    performed_by: Optional[int] = None
    created_at: Optional[datetime] = None


class StockTransactionListResponse(BaseModel):
    items: list[StockTransactionResponse]
    total: int
    page: int
    page_size: int


class BatchItemResponse(BaseModel):
    index: int
    material_id: str
    success: bool
    transaction: Optional[StockTransactionResponse] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


class BatchMovementResponse(BaseModel):
    results: list[BatchItemResponse]
    total_processed: int
    succeeded: int
    failed: int
