"""Materials API - legacy and consumable stock items."""

from fastapi import APIRouter, Query, status
from typing import Optional, Literal
import logging

from stockroom.api.deps import DbSession, CurrentUser, AdminUser
from stockroom.models.stock_transaction import TransactionType
from stockroom.schemas.stock import (
    StockItemCreate,
    StockItemUpdate,
    StockItemResponse,
    StockItemListResponse,
    StockAdjustment,
    WithdrawRequest,
    StockTransactionResponse,
    StockTransactionListResponse,
)
from stockroom.services.stock_ledger import StockLedgerService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=StockItemListResponse)
async def list_materials(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    kind: Optional[Literal["legacy", "consumable"]] = None,
    category: Optional[str] = None,
    needs_restock: Optional[bool] = None,
    search: Optional[str] = None,  # name or code
):
    """List materials with pagination and filtering."""
    items, total = await StockLedgerService.list_items(
        db,
        kind=kind,
        category=category,
        needs_restock=needs_restock,
        search=search,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/low-stock", response_model=list[StockItemResponse])
async def get_low_stock(db: DbSession, current_user: CurrentUser):
    """Active materials at or below their minimum stock."""
    return await StockLedgerService.list_low_stock(db)


@router.post("", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def create_material(data: StockItemCreate, db: DbSession, current_user: AdminUser):
    return await StockLedgerService.create_item(db, data, actor_id=current_user.id)


@router.get("/{material_id}", response_model=StockItemResponse)
async def get_material(material_id: str, db: DbSession, current_user: CurrentUser):
    return await StockLedgerService.get_item(db, material_id)


@router.patch("/{material_id}", response_model=StockItemResponse)
async def update_material(material_id: str, data: StockItemUpdate, db: DbSession, current_user: AdminUser):
    """Update descriptive fields. Stock changes go through /adjust or transactions."""
    return await StockLedgerService.update_item(db, material_id, data)


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(material_id: str, db: DbSession, current_user: AdminUser):
    await StockLedgerService.delete_item(db, material_id)


@router.post("/{material_id}/adjust", response_model=StockTransactionResponse)
async def adjust_material_stock(
    material_id: str,
    adjustment: StockAdjustment,
    db: DbSession,
    current_user: AdminUser,
):
    """Correct stock by a signed amount, recorded in the ledger."""
    return await StockLedgerService.adjust_stock(
        db, material_id, adjustment.adjustment, actor_id=current_user.id, reason=adjustment.reason
    )


@router.post("/{material_id}/withdraw", response_model=StockTransactionResponse, status_code=status.HTTP_201_CREATED)
async def withdraw_material(
    material_id: str,
    request: WithdrawRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    return await StockLedgerService.withdraw(
        db, material_id, request.quantity, actor_id=current_user.id, note=request.note
    )


@router.get("/{material_id}/transactions", response_model=StockTransactionListResponse)
async def list_material_transactions(
    material_id: str,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    type: Optional[TransactionType] = None,
):
    """Ledger history of one material, newest first."""
    await StockLedgerService.get_item(db, material_id)
    items, total = await StockLedgerService.list_transactions(
        db, material_id=material_id, movement_type=type, page=page, page_size=page_size
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}
