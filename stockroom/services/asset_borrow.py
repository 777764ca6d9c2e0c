"""
Fixed Asset & Borrow Lifecycle Service
======================================
Loan states:

    BORROWED --return--> RETURNED --undo--> BORROWED

OVERDUE is not a stored transition; ``AssetBorrow.is_overdue`` derives it
from ``expected_return_date``. Rows already carrying OVERDUE (imported data)
can still be returned.

At most one BORROWED row exists per asset. The check runs with the asset row
locked and a partial unique index backs it up.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple, List

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.asset import (
    FixedAsset,
    AssetBorrow,
    BorrowStatus,
    UNBORROWABLE_CONDITIONS,
    as_utc,
)
from stockroom.models.user import User
from stockroom.schemas.asset import FixedAssetCreate, FixedAssetUpdate
from stockroom.services.errors import (
    InventoryError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AssetUnavailableError,
    AlreadyBorrowedError,
    NotBorrowedError,
    NotReturnedError,
    CannotDeleteReturnedError,
    AssetInUseError,
)
from stockroom.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

RETURNABLE_STATUSES = {BorrowStatus.BORROWED.value, BorrowStatus.OVERDUE.value}

# NOT NULL columns a PATCH may set but never clear
REQUIRED_ASSET_FIELDS = ("asset_number", "name", "category", "condition")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _condition_value(condition) -> Optional[str]:
    return getattr(condition, "value", condition)


class AssetBorrowService:
    """Service class for fixed assets and their loans"""

    # =========================================================================
    # FIXED ASSETS
    # =========================================================================

    @staticmethod
    async def get_asset(db: AsyncSession, asset_id: str, lock: bool = False) -> FixedAsset:
        query = select(FixedAsset).where(FixedAsset.id == asset_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        asset = (await db.execute(query)).scalar_one_or_none()
        if asset is None:
            raise NotFoundError("Fixed asset", asset_id)
        return asset

    @staticmethod
    async def create_asset(db: AsyncSession, data: FixedAssetCreate) -> FixedAsset:
        existing = await db.execute(select(FixedAsset).where(FixedAsset.asset_number == data.asset_number))
        if existing.scalar_one_or_none():
            raise ConflictError(f"Asset number '{data.asset_number}' already exists")

        values = data.model_dump()
        values["condition"] = _condition_value(values["condition"])
        async with atomic(db):
            asset = FixedAsset(**values)
            db.add(asset)
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Asset number '{data.asset_number}' already exists") from e

        await db.refresh(asset)
        logger.info(f"Created fixed asset {asset.asset_number} ({asset.id})")
        return asset

    @staticmethod
    async def update_asset(db: AsyncSession, asset_id: str, data: FixedAssetUpdate) -> FixedAsset:
        changes = data.model_dump(exclude_unset=True)
        for name in REQUIRED_ASSET_FIELDS:
            if name in changes and changes[name] is None:
                raise ValidationError(f"Field '{name}' cannot be null")

        asset = await AssetBorrowService.get_asset(db, asset_id)

        if changes.get("asset_number") and changes["asset_number"] != asset.asset_number:
            existing = await db.execute(
                select(FixedAsset).where(FixedAsset.asset_number == changes["asset_number"])
            )
            if existing.scalar_one_or_none():
                raise ConflictError(f"Asset number '{changes['asset_number']}' already exists")

        if "condition" in changes:
            changes["condition"] = _condition_value(changes["condition"])

        async with atomic(db):
            for name, value in changes.items():
                setattr(asset, name, value)

        await db.refresh(asset)
        return asset

    @staticmethod
    async def delete_asset(db: AsyncSession, asset_id: str) -> None:
        """Delete an asset that has no unreturned loan."""
        async with atomic(db):
            asset = await AssetBorrowService.get_asset(db, asset_id, lock=True)
            open_loan = await db.execute(
                select(AssetBorrow.id).where(
                    AssetBorrow.fixed_asset_id == asset_id,
                    AssetBorrow.actual_return_date.is_(None),
                )
            )
            if open_loan.first() is not None:
                raise AssetInUseError(f"Asset {asset.asset_number} is on loan and cannot be deleted")
            await db.execute(
                update(AssetBorrow)
                .where(AssetBorrow.fixed_asset_id == asset_id)
                .values(fixed_asset_id=None)
                .execution_options(synchronize_session=False)
            )
            await db.delete(asset)

        logger.info(f"Deleted fixed asset {asset_id}")

    @staticmethod
    async def list_assets(
        db: AsyncSession,
        category: Optional[str] = None,
        condition: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[FixedAsset], int]:
        query = select(FixedAsset)
        if category:
            query = query.where(FixedAsset.category == category)
        if condition:
            query = query.where(FixedAsset.condition == _condition_value(condition))
        if search:
            pattern = f"%{search}%"
            query = query.where(FixedAsset.name.ilike(pattern) | FixedAsset.asset_number.ilike(pattern))

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        offset = (page - 1) * page_size
        result = await db.execute(query.order_by(FixedAsset.asset_number).offset(offset).limit(page_size))
        return list(result.scalars().all()), total

    # =========================================================================
    # LOANS
    # =========================================================================

    @staticmethod
    async def get_borrow(db: AsyncSession, borrow_id: str, lock: bool = False) -> AssetBorrow:
        query = select(AssetBorrow).where(AssetBorrow.id == borrow_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        borrow = (await db.execute(query)).scalar_one_or_none()
        if borrow is None:
            raise NotFoundError("Borrow record", borrow_id)
        return borrow

    @staticmethod
    async def _active_borrow(
        db: AsyncSession, asset_id: str, exclude_id: Optional[str] = None
    ) -> Optional[AssetBorrow]:
        query = select(AssetBorrow).where(
            AssetBorrow.fixed_asset_id == asset_id,
            AssetBorrow.status == BorrowStatus.BORROWED.value,
        )
        if exclude_id:
            query = query.where(AssetBorrow.id != exclude_id)
        return (await db.execute(query)).scalars().first()

    @staticmethod
    async def create_borrow(
        db: AsyncSession,
        asset_id: str,
        user_id: int,
        expected_return_date: Optional[datetime] = None,
        purpose: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AssetBorrow:
        """
        Lend an asset to a user.

        Raises:
            NotFoundError: asset or borrower does not exist
            AssetUnavailableError: asset is DAMAGED or DISPOSED
            AlreadyBorrowedError: asset already has an open loan
        """
        try:
            async with atomic(db):
                asset = await AssetBorrowService.get_asset(db, asset_id, lock=True)
                if await db.get(User, user_id) is None:
                    raise NotFoundError("User", user_id)

                if asset.condition in UNBORROWABLE_CONDITIONS:
                    raise AssetUnavailableError(
                        f"Asset {asset.asset_number} is not available for borrowing (condition: {asset.condition})"
                    )

                if await AssetBorrowService._active_borrow(db, asset_id):
                    raise AlreadyBorrowedError(f"Asset {asset.asset_number} is currently borrowed")

                borrow = AssetBorrow(
                    fixed_asset_id=asset_id,
                    user_id=user_id,
                    status=BorrowStatus.BORROWED.value,
                    borrow_date=_utcnow(),
                    expected_return_date=as_utc(expected_return_date),
                    purpose=purpose or None,
                    note=note or None,
                )
                db.add(borrow)
                try:
                    await db.flush()
                except IntegrityError as e:
                    # Lost the race to a concurrent loan of the same asset
                    raise AlreadyBorrowedError(f"Asset {asset.asset_number} is currently borrowed") from e
        except InventoryError as e:
            logger.warning(f"Borrow of asset {asset_id} by user {user_id} rejected: {e.message}")
            raise

        await db.refresh(borrow)
        logger.info(f"Asset {asset_id} borrowed by user {user_id} (borrow {borrow.id})")
        return borrow

    @staticmethod
    async def return_asset(
        db: AsyncSession,
        borrow_id: str,
        condition=None,
        note: Optional[str] = None,
    ) -> AssetBorrow:
        """
        Close a loan, optionally recording the asset's condition on return.

        The loan and the asset condition commit together.
        """
        condition = _condition_value(condition)
        try:
            async with atomic(db):
                borrow = await AssetBorrowService.get_borrow(db, borrow_id, lock=True)
                if borrow.status not in RETURNABLE_STATUSES:
                    raise NotBorrowedError("This asset is not currently borrowed")

                asset = await AssetBorrowService.get_asset(db, borrow.fixed_asset_id, lock=True)

                borrow.status = BorrowStatus.RETURNED.value
                if borrow.actual_return_date is None:
                    borrow.actual_return_date = _utcnow()
                if note:
                    prefix = f"{borrow.note} | " if borrow.note else ""
                    borrow.note = f"{prefix}Returned: {note}"

                if condition and condition != asset.condition:
                    logger.info(f"Asset {asset.asset_number} condition {asset.condition} -> {condition} on return")
                    asset.condition = condition
        except InventoryError as e:
            logger.warning(f"Return of borrow {borrow_id} rejected: {e.message}")
            raise

        await db.refresh(borrow)
        logger.info(f"Borrow {borrow_id} returned")
        return borrow

    @staticmethod
    async def undo_return(db: AsyncSession, borrow_id: str) -> AssetBorrow:
        """
        Re-open a returned loan.

        The asset condition recorded at return is left as it is.
        """
        try:
            async with atomic(db):
                borrow = await AssetBorrowService.get_borrow(db, borrow_id, lock=True)
                if borrow.status != BorrowStatus.RETURNED.value:
                    raise NotReturnedError("This borrow has not been returned, nothing to undo")

                await AssetBorrowService.get_asset(db, borrow.fixed_asset_id, lock=True)
                if await AssetBorrowService._active_borrow(db, borrow.fixed_asset_id, exclude_id=borrow.id):
                    raise AlreadyBorrowedError("The asset has been lent out again since this return")

                borrow.status = BorrowStatus.BORROWED.value
                borrow.actual_return_date = None
                try:
                    await db.flush()
                except IntegrityError as e:
                    raise AlreadyBorrowedError("The asset has been lent out again since this return") from e
        except InventoryError as e:
            logger.warning(f"Undo return of borrow {borrow_id} rejected: {e.message}")
            raise

        await db.refresh(borrow)
        logger.info(f"Return of borrow {borrow_id} undone")
        return borrow

    @staticmethod
    async def delete_borrow(db: AsyncSession, borrow_id: str) -> None:
        """Hard-delete a loan that was never returned."""
        async with atomic(db):
            borrow = await AssetBorrowService.get_borrow(db, borrow_id, lock=True)
            if borrow.status == BorrowStatus.RETURNED.value:
                raise CannotDeleteReturnedError("Cannot delete returned borrow record")
            await db.delete(borrow)

        logger.info(f"Deleted borrow {borrow_id}")

    @staticmethod
    async def list_borrows(
        db: AsyncSession,
        status: Optional[str] = None,
        user_id: Optional[int] = None,
        asset_id: Optional[str] = None,
        overdue_only: bool = False,
        now: Optional[datetime] = None,
    ) -> List[AssetBorrow]:
        query = select(AssetBorrow)
        if status:
            query = query.where(AssetBorrow.status == getattr(status, "value", status))
        if user_id is not None:
            query = query.where(AssetBorrow.user_id == user_id)
        if asset_id:
            query = query.where(AssetBorrow.fixed_asset_id == asset_id)
        if overdue_only:
            query = query.where(
                and_(
                    AssetBorrow.status == BorrowStatus.BORROWED.value,
                    AssetBorrow.expected_return_date < (as_utc(now) or _utcnow()),
                )
            )

        result = await db.execute(query.order_by(AssetBorrow.created_at.desc()))
        return list(result.scalars().all())
