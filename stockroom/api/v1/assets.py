"""Fixed assets API."""

from fastapi import APIRouter, Query, status
from typing import Optional

from stockroom.api.deps import DbSession, CurrentUser, AdminUser
from stockroom.models.asset import AssetCondition
from stockroom.schemas.asset import (
    FixedAssetCreate,
    FixedAssetUpdate,
    FixedAssetResponse,
    FixedAssetListResponse,
)
from stockroom.services.asset_borrow import AssetBorrowService

router = APIRouter()


@router.get("", response_model=FixedAssetListResponse)
async def list_assets(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    condition: Optional[AssetCondition] = None,
    search: Optional[str] = None,  # name or asset number
):
    items, total = await AssetBorrowService.list_assets(
        db, category=category, condition=condition, search=search, page=page, page_size=page_size
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=FixedAssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(data: FixedAssetCreate, db: DbSession, current_user: AdminUser):
    return await AssetBorrowService.create_asset(db, data)


@router.get("/{asset_id}", response_model=FixedAssetResponse)
async def get_asset(asset_id: str, db: DbSession, current_user: CurrentUser):
    return await AssetBorrowService.get_asset(db, asset_id)


@router.patch("/{asset_id}", response_model=FixedAssetResponse)
async def update_asset(asset_id: str, data: FixedAssetUpdate, db: DbSession, current_user: AdminUser):
    return await AssetBorrowService.update_asset(db, asset_id, data)


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(asset_id: str, db: DbSession, current_user: AdminUser):
    """Delete an asset. Fails while it is on loan."""
    await AssetBorrowService.delete_asset(db, asset_id)
