"""
Notification Service
====================
In-app notifications plus the three periodic checks that produce them:

- low stock: every active item at or below its minimum, one notification per
  admin per item
- overdue loans: the borrower of each late loan, plus one summary per admin
- maintenance: one summary per admin listing assets that need repair

Checks never deduplicate; running them twice creates two sets.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Tuple, List, Dict

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.asset import AssetBorrow, AssetCondition, BorrowStatus, FixedAsset, as_utc
from stockroom.models.notification import Notification, NotificationType
from stockroom.models.stock_item import StockItem
from stockroom.models.user import User, UserRole
from stockroom.services.errors import NotFoundError
from stockroom.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

MAINTENANCE_CONDITIONS = [AssetCondition.NEEDS_REPAIR.value, AssetCondition.DAMAGED.value]

CHECK_LOW_STOCK = "lowStock"
CHECK_OVERDUE = "overdueAssets"
CHECK_MAINTENANCE = "maintenance"


@dataclass
class NotificationParams:
    user_id: int
    title: str
    message: str
    type: str = NotificationType.INFO.value
    action_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    source: str = "system"


@dataclass
class CheckOutcome:
    check: str
    status: str  # fulfilled, rejected
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _notification(params: NotificationParams) -> Notification:
    return Notification(
        user_id=params.user_id,
        type=getattr(params.type, "value", params.type),
        title=params.title,
        message=params.message,
        action_url=params.action_url,
        extra_data=params.metadata,
        source=params.source,
    )


class NotificationService:
    """Service class for notifications"""

    @staticmethod
    async def create_notification(db: AsyncSession, params: NotificationParams) -> Notification:
        async with atomic(db):
            notification = _notification(params)
            db.add(notification)

        await db.refresh(notification)
        return notification

    @staticmethod
    async def create_bulk(db: AsyncSession, params: List[NotificationParams]) -> int:
        """Insert many notifications in one transaction. Returns the count."""
        if not params:
            return 0
        async with atomic(db):
            db.add_all([_notification(p) for p in params])
        return len(params)

    @staticmethod
    async def _active_admin_ids(db: AsyncSession) -> List[int]:
        result = await db.execute(
            select(User.id).where(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
        )
        return list(result.scalars().all())

    # =========================================================================
    # CHECKS
    # =========================================================================

    @staticmethod
    async def check_low_stock_and_notify(db: AsyncSession, source: str = "system") -> Dict[str, int]:
        result = await db.execute(
            select(StockItem)
            .where(StockItem.is_active.is_(True), StockItem.current_stock <= StockItem.min_stock)
            .order_by(StockItem.name)
        )
        items = result.scalars().all()
        admin_ids = await NotificationService._active_admin_ids(db)

        params = [
            NotificationParams(
                user_id=admin_id,
                title="Low stock alert",
                message=f"{item.name} has only {item.current_stock} {item.unit} left (minimum {item.min_stock})",
                type=NotificationType.LOW_STOCK.value,
                action_url=f"/materials/{item.id}",
                metadata={
                    "material_id": item.id,
                    "current_stock": item.current_stock,
                    "min_stock": item.min_stock,
                },
                source=source,
            )
            for item in items
            for admin_id in admin_ids
        ]
        created = await NotificationService.create_bulk(db, params)

        logger.info(f"Low stock check: {len(items)} items, {created} notifications")
        return {"low_stock_items": len(items), "notifications_created": created}

    @staticmethod
    async def check_overdue_borrows_and_notify(
        db: AsyncSession, now: Optional[datetime] = None, source: str = "system"
    ) -> Dict[str, int]:
        """Notify borrowers of late loans. Loan status is left unchanged."""
        now = as_utc(now) or _utcnow()
        result = await db.execute(
            select(AssetBorrow, FixedAsset.name)
            .outerjoin(FixedAsset, FixedAsset.id == AssetBorrow.fixed_asset_id)
            .where(
                AssetBorrow.status == BorrowStatus.BORROWED.value,
                AssetBorrow.expected_return_date.is_not(None),
                AssetBorrow.expected_return_date < now,
            )
            .order_by(AssetBorrow.expected_return_date)
        )
        overdue = result.all()

        params = []
        for borrow, asset_name in overdue:
            borrowed_on = borrow.borrow_date.strftime("%Y-%m-%d") if borrow.borrow_date else "unknown date"
            params.append(
                NotificationParams(
                    user_id=borrow.user_id,
                    title="Overdue asset return",
                    message=f"Please return {asset_name or 'the borrowed asset'} borrowed on {borrowed_on}",
                    type=NotificationType.OVERDUE.value,
                    action_url=f"/borrows/{borrow.id}",
                    metadata={
                        "borrow_id": borrow.id,
                        "asset_id": borrow.fixed_asset_id,
                        "expected_return_date": borrow.expected_return_date.isoformat(),
                    },
                    source=source,
                )
            )

        if overdue:
            for admin_id in await NotificationService._active_admin_ids(db):
                params.append(
                    NotificationParams(
                        user_id=admin_id,
                        title="Overdue assets",
                        message=f"{len(overdue)} borrowed assets are past their return date",
                        type=NotificationType.OVERDUE.value,
                        action_url="/borrows?overdue=true",
                        metadata={"overdue_count": len(overdue)},
                        source=source,
                    )
                )

        created = await NotificationService.create_bulk(db, params)
        logger.info(f"Overdue check: {len(overdue)} loans, {created} notifications")
        return {"overdue_items": len(overdue), "notifications_created": created}

    @staticmethod
    async def check_maintenance_and_notify(db: AsyncSession, source: str = "system") -> Dict[str, int]:
        result = await db.execute(
            select(FixedAsset.id).where(FixedAsset.condition.in_(MAINTENANCE_CONDITIONS))
        )
        asset_ids = list(result.scalars().all())

        params = []
        if asset_ids:
            params = [
                NotificationParams(
                    user_id=admin_id,
                    title="Assets need maintenance",
                    message=f"{len(asset_ids)} assets need repair",
                    type=NotificationType.MAINTENANCE.value,
                    action_url="/assets?condition=NEEDS_REPAIR",
                    metadata={"needs_repair_count": len(asset_ids), "asset_ids": asset_ids},
                    source=source,
                )
                for admin_id in await NotificationService._active_admin_ids(db)
            ]

        created = await NotificationService.create_bulk(db, params)
        logger.info(f"Maintenance check: {len(asset_ids)} assets, {created} notifications")
        return {"needs_repair_items": len(asset_ids), "notifications_created": created}

    @staticmethod
    async def run_all_checks(
        db: AsyncSession, now: Optional[datetime] = None, source: str = "system"
    ) -> List[CheckOutcome]:
        """Run every check; a failing check is reported and does not stop the others."""
        checks = [
            (CHECK_LOW_STOCK, lambda: NotificationService.check_low_stock_and_notify(db, source=source)),
            (CHECK_OVERDUE, lambda: NotificationService.check_overdue_borrows_and_notify(db, now=now, source=source)),
            (CHECK_MAINTENANCE, lambda: NotificationService.check_maintenance_and_notify(db, source=source)),
        ]

        outcomes = []
        for name, run in checks:
            try:
                data = await run()
                outcomes.append(CheckOutcome(check=name, status="fulfilled", data=data))
            except Exception as e:
                logger.error(f"Notification check {name} failed: {e}", exc_info=True)
                await db.rollback()
                outcomes.append(CheckOutcome(check=name, status="rejected", error=str(e)))
        return outcomes

    # =========================================================================
    # INBOX
    # =========================================================================

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Notification], int]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        result = await db.execute(
            query.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def stats_for_user(db: AsyncSession, user_id: int) -> Dict[str, int]:
        total = (
            await db.execute(select(func.count()).where(Notification.user_id == user_id))
        ).scalar() or 0
        unread = (
            await db.execute(
                select(func.count()).where(Notification.user_id == user_id, Notification.read.is_(False))
            )
        ).scalar() or 0
        return {"total": total, "unread": unread}

    @staticmethod
    async def mark_read(db: AsyncSession, user_id: int, notification_id: str) -> Notification:
        result = await db.execute(
            select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification", notification_id)

        if not notification.read:
            async with atomic(db):
                notification.read = True
                notification.read_at = _utcnow()
            await db.refresh(notification)
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        async with atomic(db):
            result = await db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.read.is_(False))
                .values(read=True, read_at=_utcnow())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0
