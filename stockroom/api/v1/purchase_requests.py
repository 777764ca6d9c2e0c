"""Purchase requests API - staff submit, administrators decide."""

from fastapi import APIRouter, HTTPException, Query, status
from typing import Optional

from stockroom.api.deps import DbSession, CurrentUser, AdminUser
from stockroom.models.purchase_request import PurchaseRequestStatus
from stockroom.schemas.purchase_request import (
    PurchaseRequestCreate,
    PurchaseRequestDecision,
    PurchaseRequestResponse,
    PurchaseRequestListResponse,
)
from stockroom.services.purchase_requests import PurchaseRequestService

router = APIRouter()


@router.get("", response_model=PurchaseRequestListResponse)
async def list_purchase_requests(
    db: DbSession,
    current_user: CurrentUser,
    status_filter: Optional[PurchaseRequestStatus] = Query(None, alias="status"),
):
    """List requests. Non-admins only see their own."""
    requester_id = None if current_user.is_admin else current_user.id
    items = await PurchaseRequestService.list_requests(db, requester_id=requester_id, status=status_filter)
    return {"items": items, "total": len(items)}


@router.post("", response_model=PurchaseRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_request(data: PurchaseRequestCreate, db: DbSession, current_user: CurrentUser):
    return await PurchaseRequestService.create_request(
        db, current_user.id, data, requester_name=current_user.name
    )


@router.get("/{request_id}", response_model=PurchaseRequestResponse)
async def get_purchase_request(request_id: str, db: DbSession, current_user: CurrentUser):
    request = await PurchaseRequestService.get_request(db, request_id)
    if request.requester_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your purchase request")
    return request


@router.patch("/{request_id}", response_model=PurchaseRequestResponse)
async def decide_purchase_request(
    request_id: str, data: PurchaseRequestDecision, db: DbSession, current_user: AdminUser
):
    """Approve or reject a pending request."""
    return await PurchaseRequestService.decide(db, request_id, data.status, current_user.id, note=data.note)
