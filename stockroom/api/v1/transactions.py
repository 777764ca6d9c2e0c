"""Stock transactions API - the ledger of every stock movement."""

from fastapi import APIRouter, Query, Response, status
from typing import Optional
import logging

from stockroom.api.deps import DbSession, CurrentUser
from stockroom.models.stock_transaction import TransactionType
from stockroom.schemas.stock import (
    StockMovementRequest,
    BatchMovementRequest,
    BatchMovementResponse,
    BatchItemResponse,
    StockTransactionResponse,
    StockTransactionListResponse,
)
from stockroom.services.stock_ledger import StockLedgerService, BatchResult

logger = logging.getLogger(__name__)
router = APIRouter()


def batch_to_response(batch: BatchResult) -> BatchMovementResponse:
    results = []
    for outcome in batch.results:
        results.append(
            BatchItemResponse(
                index=outcome.index,
                material_id=outcome.material_id,
                success=outcome.success,
                transaction=(
                    StockTransactionResponse.model_validate(outcome.transaction)
                    if outcome.transaction is not None
                    else None
                ),
                error_code=outcome.error.code if outcome.error else None,
                error=outcome.error.message if outcome.error else None,
            )
        )
    return BatchMovementResponse(
        results=results,
        total_processed=len(results),
        succeeded=batch.succeeded,
        failed=batch.failed,
    )


@router.get("", response_model=StockTransactionListResponse)
async def list_transactions(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    material_id: Optional[str] = None,
    type: Optional[TransactionType] = None,
    performed_by: Optional[int] = None,
):
    items, total = await StockLedgerService.list_transactions(
        db,
        material_id=material_id,
        movement_type=type,
        actor_id=performed_by,
        page=page,
        page_size=page_size,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=StockTransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(movement: StockMovementRequest, db: DbSession, current_user: CurrentUser):
    """Record one IN or OUT movement."""
    return await StockLedgerService.apply_stock_movement(
        db,
        movement.material_id,
        movement.quantity,
        movement.type,
        actor_id=current_user.id,
        reason=movement.reason,
    )


@router.post("/batch", response_model=BatchMovementResponse, status_code=status.HTTP_201_CREATED)
async def create_batch_transactions(
    request: BatchMovementRequest,
    response: Response,
    db: DbSession,
    current_user: CurrentUser,
):
    """
    Record several movements; each one commits or fails on its own.

    Returns 207 Multi-Status when at least one movement failed.
    """
    batch = await StockLedgerService.apply_batch(db, current_user.id, request.transactions)
    if batch.failed:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return batch_to_response(batch)
