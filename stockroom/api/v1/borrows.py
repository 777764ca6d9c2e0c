"""Asset borrows API - lending, returning and undoing returns."""

from fastapi import APIRouter, HTTPException, Query, status
from typing import Optional
import logging

from stockroom.api.deps import DbSession, CurrentUser, AdminUser
from stockroom.models.asset import BorrowStatus
from stockroom.schemas.asset import BorrowCreate, ReturnRequest, BorrowResponse, BorrowListResponse
from stockroom.services.asset_borrow import AssetBorrowService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=BorrowListResponse)
async def list_borrows(
    db: DbSession,
    current_user: CurrentUser,
    status_filter: Optional[BorrowStatus] = Query(None, alias="status"),
    user_id: Optional[int] = None,
    asset_id: Optional[str] = None,
    overdue: bool = False,
):
    """List loans. Non-admins only see their own."""
    if not current_user.is_admin:
        user_id = current_user.id
    items = await AssetBorrowService.list_borrows(
        db, status=status_filter, user_id=user_id, asset_id=asset_id, overdue_only=overdue
    )
    return {"items": items, "total": len(items)}


@router.post("", response_model=BorrowResponse, status_code=status.HTTP_201_CREATED)
async def create_borrow(data: BorrowCreate, db: DbSession, current_user: CurrentUser):
    """Borrow an asset. Admins may borrow on behalf of another user."""
    borrower_id = data.user_id or current_user.id
    if borrower_id != current_user.id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can lend assets to other users",
        )
    return await AssetBorrowService.create_borrow(
        db,
        data.fixed_asset_id,
        borrower_id,
        expected_return_date=data.expected_return_date,
        purpose=data.purpose,
        note=data.note,
    )


@router.post("/return", response_model=BorrowResponse)
async def return_borrow(data: ReturnRequest, db: DbSession, current_user: CurrentUser):
    """Return a borrowed asset, optionally reporting its condition."""
    borrow = await AssetBorrowService.get_borrow(db, data.borrow_id)
    if borrow.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your borrow record")
    return await AssetBorrowService.return_asset(db, data.borrow_id, condition=data.condition, note=data.note)


@router.get("/{borrow_id}", response_model=BorrowResponse)
async def get_borrow(borrow_id: str, db: DbSession, current_user: CurrentUser):
    borrow = await AssetBorrowService.get_borrow(db, borrow_id)
    if borrow.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your borrow record")
    return borrow


@router.post("/{borrow_id}/undo-return", response_model=BorrowResponse)
async def undo_return(borrow_id: str, db: DbSession, current_user: AdminUser):
    return await AssetBorrowService.undo_return(db, borrow_id)


@router.delete("/{borrow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_borrow(borrow_id: str, db: DbSession, current_user: AdminUser):
    """Delete a loan record. Returned loans are kept."""
    await AssetBorrowService.delete_borrow(db, borrow_id)
