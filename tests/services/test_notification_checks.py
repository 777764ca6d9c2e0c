"""
Tests for the notification checks and the user inbox.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.asset import AssetBorrow, BorrowStatus
from stockroom.models.notification import Notification, NotificationType
from stockroom.models.user import User, UserRole
from stockroom.schemas.asset import FixedAssetCreate
from stockroom.schemas.stock import StockItemCreate
from stockroom.services.asset_borrow import AssetBorrowService
from stockroom.services.errors import NotFoundError
from stockroom.services.notifications import NotificationService, NotificationParams
from stockroom.services.stock_ledger import StockLedgerService

from tests.factories import (
    ConsumableFactory,
    FixedAssetFactory,
    NeedsRepairAssetFactory,
    DamagedAssetFactory,
    AdminUserFactory,
)


async def _notifications_for(db: AsyncSession, user_id: int, type_: str = None) -> list:
    query = select(Notification).where(Notification.user_id == user_id)
    if type_:
        query = query.where(Notification.type == type_)
    return list((await db.execute(query)).scalars().all())


@pytest_asyncio.fixture
async def second_admin(test_db: AsyncSession):
    user = User(hashed_password="not-used", **{k: v for k, v in AdminUserFactory().items() if k != "password"})
    test_db.add(user)
    await test_db.commit()
    return user


class TestLowStockCheck:
    @pytest.mark.asyncio
    async def test_each_admin_told_about_each_low_item(
        self, test_db: AsyncSession, admin_user, second_admin, test_user
    ):
        paper = await StockLedgerService.create_item(
            test_db, StockItemCreate(**ConsumableFactory(name="A4 paper", unit="ream", min_stock=5, initial_stock=3))
        )
        await StockLedgerService.create_item(
            test_db, StockItemCreate(**ConsumableFactory(name="Toner", min_stock=2, initial_stock=2))
        )
        await StockLedgerService.create_item(
            test_db, StockItemCreate(**ConsumableFactory(name="Pens", min_stock=5, initial_stock=50))
        )

        result = await NotificationService.check_low_stock_and_notify(test_db)

        assert result == {"low_stock_items": 2, "notifications_created": 4}
        admin_alerts = await _notifications_for(test_db, admin_user.id, NotificationType.LOW_STOCK.value)
        assert len(admin_alerts) == 2
        paper_alert = next(n for n in admin_alerts if n.extra_data["material_id"] == paper.id)
        assert paper_alert.message == "A4 paper has only 3 ream left (minimum 5)"
        assert paper_alert.read is False

        assert await _notifications_for(test_db, test_user.id) == []

    @pytest.mark.asyncio
    async def test_inactive_items_ignored(self, test_db: AsyncSession, admin_user):
        item = await StockLedgerService.create_item(
            test_db, StockItemCreate(**ConsumableFactory(min_stock=5, initial_stock=0))
        )
        item.is_active = False
        await test_db.commit()

        result = await NotificationService.check_low_stock_and_notify(test_db)
        assert result["low_stock_items"] == 0

    @pytest.mark.asyncio
    async def test_repeated_runs_are_not_deduplicated(self, test_db: AsyncSession, admin_user):
        await StockLedgerService.create_item(
            test_db, StockItemCreate(**ConsumableFactory(min_stock=5, initial_stock=1))
        )
        await NotificationService.check_low_stock_and_notify(test_db)
        await NotificationService.check_low_stock_and_notify(test_db)

        assert len(await _notifications_for(test_db, admin_user.id)) == 2


class TestOverdueCheck:
    @pytest.mark.asyncio
    async def test_borrower_and_admins_notified(self, test_db: AsyncSession, admin_user, test_user):
        now = datetime.now(timezone.utc)
        late_asset = await AssetBorrowService.create_asset(
            test_db, FixedAssetCreate(**FixedAssetFactory(name="Microscope"))
        )
        ok_asset = await AssetBorrowService.create_asset(test_db, FixedAssetCreate(**FixedAssetFactory()))
        late = await AssetBorrowService.create_borrow(
            test_db, late_asset.id, test_user.id, expected_return_date=now - timedelta(days=3)
        )
        await AssetBorrowService.create_borrow(
            test_db, ok_asset.id, test_user.id, expected_return_date=now + timedelta(days=3)
        )

        result = await NotificationService.check_overdue_borrows_and_notify(test_db, now=now)

        assert result == {"overdue_items": 1, "notifications_created": 2}
        borrower_alerts = await _notifications_for(test_db, test_user.id, NotificationType.OVERDUE.value)
        assert len(borrower_alerts) == 1
        assert "Microscope" in borrower_alerts[0].message
        assert borrower_alerts[0].extra_data["borrow_id"] == late.id

        summary = await _notifications_for(test_db, admin_user.id, NotificationType.OVERDUE.value)
        assert len(summary) == 1
        assert summary[0].extra_data == {"overdue_count": 1}

    @pytest.mark.asyncio
    async def test_status_left_unchanged(self, test_db: AsyncSession, admin_user, test_user):
        now = datetime.now(timezone.utc)
        asset = await AssetBorrowService.create_asset(test_db, FixedAssetCreate(**FixedAssetFactory()))
        borrow = await AssetBorrowService.create_borrow(
            test_db, asset.id, test_user.id, expected_return_date=now - timedelta(hours=1)
        )

        await NotificationService.check_overdue_borrows_and_notify(test_db, now=now)

        stored = (await test_db.execute(select(AssetBorrow.status).where(AssetBorrow.id == borrow.id))).scalar()
        assert stored == BorrowStatus.BORROWED.value

    @pytest.mark.asyncio
    async def test_nothing_overdue_sends_nothing(self, test_db: AsyncSession, admin_user):
        result = await NotificationService.check_overdue_borrows_and_notify(test_db)
        assert result == {"overdue_items": 0, "notifications_created": 0}


class TestMaintenanceCheck:
    @pytest.mark.asyncio
    async def test_single_summary_per_admin(self, test_db: AsyncSession, admin_user, second_admin):
        repair = await AssetBorrowService.create_asset(test_db, FixedAssetCreate(**NeedsRepairAssetFactory()))
        damaged = await AssetBorrowService.create_asset(test_db, FixedAssetCreate(**DamagedAssetFactory()))
        await AssetBorrowService.create_asset(test_db, FixedAssetCreate(**FixedAssetFactory()))

        result = await NotificationService.check_maintenance_and_notify(test_db)

        assert result == {"needs_repair_items": 2, "notifications_created": 2}
        alerts = await _notifications_for(test_db, admin_user.id, NotificationType.MAINTENANCE.value)
        assert len(alerts) == 1
        assert sorted(alerts[0].extra_data["asset_ids"]) == sorted([repair.id, damaged.id])


class TestRunAllChecks:
    @pytest.mark.asyncio
    async def test_reports_every_check(self, test_db: AsyncSession, admin_user):
        outcomes = await NotificationService.run_all_checks(test_db)

        assert [o.check for o in outcomes] == ["lowStock", "overdueAssets", "maintenance"]
        assert all(o.status == "fulfilled" for o in outcomes)

    @pytest.mark.asyncio
    async def test_failing_check_does_not_stop_others(self, test_db: AsyncSession, admin_user):
        with patch.object(
            NotificationService, "check_overdue_borrows_and_notify", side_effect=RuntimeError("boom")
        ):
            outcomes = await NotificationService.run_all_checks(test_db)

        by_check = {o.check: o for o in outcomes}
        assert by_check["overdueAssets"].status == "rejected"
        assert by_check["overdueAssets"].error == "boom"
        assert by_check["lowStock"].status == "fulfilled"
        assert by_check["maintenance"].status == "fulfilled"


class TestInbox:
    @pytest_asyncio.fixture
    async def inbox(self, test_db: AsyncSession, test_user):
        params = [
            NotificationParams(user_id=test_user.id, title=f"Notice {i}", message="Hello")
            for i in range(3)
        ]
        await NotificationService.create_bulk(test_db, params)
        return test_user

    @pytest.mark.asyncio
    async def test_create_single(self, test_db: AsyncSession, test_user):
        notification = await NotificationService.create_notification(
            test_db,
            NotificationParams(
                user_id=test_user.id,
                title="Request",
                message="New request",
                type=NotificationType.REQUEST,
                metadata={"request_id": "r-1"},
            ),
        )
        assert notification.type == "REQUEST"
        assert notification.extra_data == {"request_id": "r-1"}
        assert notification.created_at is not None

    @pytest.mark.asyncio
    async def test_stats_and_mark_read(self, test_db: AsyncSession, inbox):
        user_id = inbox.id
        assert await NotificationService.stats_for_user(test_db, user_id) == {"total": 3, "unread": 3}

        items, total = await NotificationService.list_for_user(test_db, user_id)
        marked = await NotificationService.mark_read(test_db, user_id, items[0].id)
        assert marked.read is True
        assert marked.read_at is not None
        assert await NotificationService.stats_for_user(test_db, user_id) == {"total": 3, "unread": 2}

        unread, unread_total = await NotificationService.list_for_user(test_db, user_id, unread_only=True)
        assert unread_total == 2

    @pytest.mark.asyncio
    async def test_mark_all_read(self, test_db: AsyncSession, inbox):
        user_id = inbox.id
        assert await NotificationService.mark_all_read(test_db, user_id) == 3
        assert await NotificationService.stats_for_user(test_db, user_id) == {"total": 3, "unread": 0}

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses(self, test_db: AsyncSession, inbox, admin_user):
        items, _ = await NotificationService.list_for_user(test_db, inbox.id)
        with pytest.raises(NotFoundError):
            await NotificationService.mark_read(test_db, admin_user.id, items[0].id)
