"""
Purchase Request Service
========================
Staff ask for items to be bought; an administrator approves or rejects.

    PENDING --approve--> APPROVED
    PENDING --reject---> REJECTED

New requests notify every active administrator. Decisions notify the
requester. Notification failures are logged and never undo the request.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.notification import NotificationType
from stockroom.models.purchase_request import PurchaseRequest, PurchaseRequestStatus
from stockroom.schemas.purchase_request import PurchaseRequestCreate
from stockroom.services.errors import InventoryError, NotFoundError, ValidationError, AlreadyDecidedError
from stockroom.services.notifications import NotificationService, NotificationParams
from stockroom.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

DECISIONS = {PurchaseRequestStatus.APPROVED.value, PurchaseRequestStatus.REJECTED.value}


class PurchaseRequestService:
    """Service class for purchase requests"""

    @staticmethod
    async def get_request(db: AsyncSession, request_id: str, lock: bool = False) -> PurchaseRequest:
        query = select(PurchaseRequest).where(PurchaseRequest.id == request_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        request = (await db.execute(query)).scalar_one_or_none()
        if request is None:
            raise NotFoundError("Purchase request", request_id)
        return request

    @staticmethod
    async def create_request(
        db: AsyncSession,
        requester_id: int,
        data: PurchaseRequestCreate,
        requester_name: Optional[str] = None,
    ) -> PurchaseRequest:
        async with atomic(db):
            request = PurchaseRequest(
                requester_id=requester_id,
                items=[item.model_dump() for item in data.items],
                reason=data.reason or None,
                status=PurchaseRequestStatus.PENDING.value,
            )
            db.add(request)

        await db.refresh(request)
        logger.info(f"Purchase request {request.id} created by user {requester_id} ({len(data.items)} items)")

        try:
            admin_ids = await NotificationService._active_admin_ids(db)
            await NotificationService.create_bulk(
                db,
                [
                    NotificationParams(
                        user_id=admin_id,
                        title="New purchase request",
                        message=f"{requester_name or 'A user'} submitted a purchase request",
                        type=NotificationType.REQUEST.value,
                        action_url=f"/purchase-requests/{request.id}",
                        metadata={"request_id": request.id, "requester_id": requester_id},
                        source="user",
                    )
                    for admin_id in admin_ids
                ],
            )
        except Exception as e:
            logger.error(f"Could not notify admins of purchase request {request.id}: {e}", exc_info=True)
            await db.rollback()
            await db.refresh(request)

        return request

    @staticmethod
    async def decide(
        db: AsyncSession,
        request_id: str,
        status: str,
        admin_id: int,
        note: Optional[str] = None,
    ) -> PurchaseRequest:
        """
        Approve or reject a pending request and tell the requester.

        Raises:
            ValidationError: status is not APPROVED or REJECTED
            NotFoundError: no such request
            AlreadyDecidedError: the request is no longer pending
        """
        status = getattr(status, "value", status)
        if status not in DECISIONS:
            raise ValidationError(f"Decision must be APPROVED or REJECTED, got {status!r}")

        try:
            async with atomic(db):
                request = await PurchaseRequestService.get_request(db, request_id, lock=True)
                if request.status != PurchaseRequestStatus.PENDING.value:
                    raise AlreadyDecidedError(f"Purchase request was already {request.status.lower()}")

                request.status = status
                request.reviewed_by = admin_id
                request.reviewed_at = datetime.now(timezone.utc)
                request.review_note = note or None
        except InventoryError as e:
            logger.warning(f"Decision on purchase request {request_id} rejected: {e.message}")
            raise

        await db.refresh(request)
        logger.info(f"Purchase request {request_id} {status.lower()} by user {admin_id}")

        approved = status == PurchaseRequestStatus.APPROVED.value
        try:
            await NotificationService.create_notification(
                db,
                NotificationParams(
                    user_id=request.requester_id,
                    title="Purchase request approved" if approved else "Purchase request rejected",
                    message=f"Your purchase request has been {status.lower()}" + (f": {note}" if note else ""),
                    type=NotificationType.SUCCESS.value if approved else NotificationType.ERROR.value,
                    action_url=f"/purchase-requests/{request.id}",
                    metadata={"request_id": request.id, "status": status},
                    source="user",
                ),
            )
        except Exception as e:
            logger.error(f"Could not notify requester of purchase request {request.id}: {e}", exc_info=True)
            await db.rollback()
            await db.refresh(request)

        return request

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        requester_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[PurchaseRequest]:
        query = select(PurchaseRequest)
        if requester_id is not None:
            query = query.where(PurchaseRequest.requester_id == requester_id)
        if status:
            query = query.where(PurchaseRequest.status == getattr(status, "value", status))

        result = await db.execute(query.order_by(PurchaseRequest.created_at.desc()))
        return list(result.scalars().all())
