"""
Stock Ledger Service
====================
Every change to a material's stock goes through here:
- conditional UPDATE with a floor check, so concurrent withdrawals can't
  drive stock negative
- one immutable StockTransaction row per change, written in the same
  database transaction as the counter
- batch movements commit item by item and report per-item results
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, List

from sqlalchemy import select, update, func, case, or_
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.stock_item import StockItem, Material, STOCK_ITEM_KINDS
from stockroom.models.stock_transaction import StockTransaction, TransactionType
from stockroom.schemas.stock import StockItemCreate, StockItemUpdate, StockMovementRequest
from stockroom.services.errors import (
    InventoryError,
    NotFoundError,
    ValidationError,
    ConflictError,
    InsufficientStockError,
)
from stockroom.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

OPENING_BALANCE_REASON = "Opening balance"
MANUAL_ADJUSTMENT_REASON = "Manual stock adjustment"

# Fields that only exist on one kind of stock item
_KIND_ONLY_FIELDS = {
    "code": "legacy",
    "location": "consumable",
    "description": "consumable",
}

# NOT NULL columns a PATCH may set but never clear
_REQUIRED_FIELDS = ("name", "unit", "min_stock", "is_active")


def _parse_type(movement_type) -> TransactionType:
    try:
        return TransactionType(movement_type)
    except ValueError:
        raise ValidationError(f"Unknown movement type {movement_type!r}, expected IN or OUT")


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


@dataclass
class BatchItemResult:
    """Outcome of one movement in a batch."""

    index: int
    material_id: str
    transaction: Optional[StockTransaction] = None
    error: Optional[InventoryError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    results: List[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


class StockLedgerService:
    """Service class for stock items and their ledger"""

    @staticmethod
    async def _book(
        db: AsyncSession,
        material_id: str,
        quantity: int,
        movement_type: TransactionType,
        actor_id: Optional[int],
        reason: Optional[str],
        default_reason: Optional[str] = None,
    ) -> StockTransaction:
        """Move stock and write the ledger row. Caller owns the transaction."""
        delta = quantity if movement_type == TransactionType.IN else -quantity

        stmt = update(StockItem).where(StockItem.id == material_id)
        if movement_type == TransactionType.OUT:
            # Floor check evaluated by the database under the row lock
            stmt = stmt.where(StockItem.current_stock >= quantity)
        stmt = stmt.values(
            current_stock=StockItem.current_stock + delta,
            updated_at=func.now(),
        ).execution_options(synchronize_session=False)

        result = await db.execute(stmt)

        # Reload so any instance already in the session reflects the row
        item = await db.get(StockItem, material_id, populate_existing=True)
        if item is None:
            raise NotFoundError("Material", material_id)
        if result.rowcount == 0:
            raise InsufficientStockError(item.name, item.current_stock, item.unit, requested=quantity)

        if not reason and default_reason:
            reason = default_reason.format(name=item.name)

        transaction = StockTransaction(
            material_id=item.id,
            material_name=item.name,
            type=movement_type.value,
            quantity=quantity,
            previous_stock=item.current_stock - delta,
            new_stock=item.current_stock,
            reason=reason,
            performed_by=actor_id,
        )
        db.add(transaction)
        await db.flush()
        return transaction

    @staticmethod
    async def apply_stock_movement(
        db: AsyncSession,
        material_id: str,
        quantity: int,
        movement_type,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> StockTransaction:
        """
        Apply one IN or OUT movement to a material.

        The stock counter and the ledger row commit together or not at all.

        Raises:
            ValidationError: quantity not a positive integer, or unknown type
            NotFoundError: material does not exist
            InsufficientStockError: OUT larger than current stock
            LockTimeoutError: the material row stayed locked too long
        """
        movement_type = _parse_type(movement_type)
        _check_quantity(quantity)

        try:
            async with atomic(db):
                transaction = await StockLedgerService._book(
                    db, material_id, quantity, movement_type, actor_id, reason
                )
        except InventoryError as e:
            logger.warning(f"Stock movement rejected for material {material_id}: {e.message}")
            raise

        await db.refresh(transaction)
        logger.info(
            f"Stock {movement_type.value} {quantity} on material {material_id}: "
            f"{transaction.previous_stock} -> {transaction.new_stock}"
        )
        return transaction

    @staticmethod
    async def withdraw(
        db: AsyncSession,
        material_id: str,
        quantity: int,
        actor_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> StockTransaction:
        """Withdraw a consumable; the note defaults to "Withdraw <name>"."""
        _check_quantity(quantity)
        try:
            async with atomic(db):
                transaction = await StockLedgerService._book(
                    db,
                    material_id,
                    quantity,
                    TransactionType.OUT,
                    actor_id,
                    note,
                    default_reason="Withdraw {name}",
                )
        except InventoryError as e:
            logger.warning(f"Withdrawal rejected for material {material_id}: {e.message}")
            raise

        await db.refresh(transaction)
        logger.info(f"Withdrew {quantity} of material {material_id}, {transaction.new_stock} left")
        return transaction

    @staticmethod
    async def apply_batch(
        db: AsyncSession,
        actor_id: Optional[int],
        items: Iterable[StockMovementRequest],
    ) -> BatchResult:
        """
        Apply several movements, each in its own transaction.

        A failing item is recorded and the rest still run.
        """
        batch = BatchResult()
        for index, item in enumerate(items):
            outcome = BatchItemResult(index=index, material_id=item.material_id)
            try:
                outcome.transaction = await StockLedgerService.apply_stock_movement(
                    db, item.material_id, item.quantity, item.type, actor_id, item.reason
                )
                # Detach so a later item's rollback does not expire it
                db.expunge(outcome.transaction)
            except InventoryError as e:
                outcome.error = e
            except DBAPIError as e:
                logger.error(f"Batch item {index} on material {item.material_id} failed to store: {e}", exc_info=True)
                outcome.error = InventoryError(f"Movement could not be stored: {e.orig or e}")
            batch.results.append(outcome)

        logger.info(f"Batch stock movement: {batch.succeeded} succeeded, {batch.failed} failed")
        return batch

    @staticmethod
    async def adjust_stock(
        db: AsyncSession,
        material_id: str,
        delta: int,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> StockTransaction:
        """
        Correct stock by a signed amount.

        Booked as an IN or OUT ledger entry so corrections stay auditable.
        A result below zero fails with InsufficientStockError.
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError(f"Adjustment must be an integer, got {delta!r}")
        if delta == 0:
            raise ValidationError("No stock change specified")

        movement_type = TransactionType.IN if delta > 0 else TransactionType.OUT
        return await StockLedgerService.apply_stock_movement(
            db,
            material_id,
            abs(delta),
            movement_type,
            actor_id,
            reason or MANUAL_ADJUSTMENT_REASON,
        )

    # =========================================================================
    # STOCK ITEMS
    # =========================================================================

    @staticmethod
    async def get_item(db: AsyncSession, material_id: str) -> StockItem:
        item = await db.get(StockItem, material_id)
        if item is None:
            raise NotFoundError("Material", material_id)
        return item

    @staticmethod
    async def create_item(
        db: AsyncSession,
        data: StockItemCreate,
        actor_id: Optional[int] = None,
    ) -> StockItem:
        """
        Create a material with zero stock.

        A positive opening stock is booked as an IN movement so the ledger
        replays to the current counter.
        """
        model = STOCK_ITEM_KINDS[data.kind]
        values = data.model_dump(exclude={"kind", "initial_stock"}, exclude_none=True)
        for name, kind in _KIND_ONLY_FIELDS.items():
            if name in values and kind != data.kind:
                raise ValidationError(f"Field '{name}' only applies to {kind} materials")

        if values.get("code"):
            existing = await db.execute(select(Material).where(Material.code == values["code"]))
            if existing.scalar_one_or_none():
                raise ConflictError(f"Material code '{values['code']}' already exists")

        async with atomic(db):
            item = model(current_stock=0, **values)
            db.add(item)
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Material code '{values.get('code')}' already exists") from e

            if data.initial_stock > 0:
                await StockLedgerService._book(
                    db, item.id, data.initial_stock, TransactionType.IN, actor_id, OPENING_BALANCE_REASON
                )

        await db.refresh(item)
        logger.info(f"Created {data.kind} material {item.id} ({item.name}) with stock {item.current_stock}")
        return item

    @staticmethod
    async def update_item(db: AsyncSession, material_id: str, data: StockItemUpdate) -> StockItem:
        """
        Update descriptive fields.

        ``StockItemUpdate`` has no stock field, so stock only moves through
        the ledger. Required fields cannot be cleared with null.
        """
        changes = data.model_dump(exclude_unset=True)
        for name in _REQUIRED_FIELDS:
            if name in changes and changes[name] is None:
                raise ValidationError(f"Field '{name}' cannot be null")

        item = await StockLedgerService.get_item(db, material_id)
        for name, kind in _KIND_ONLY_FIELDS.items():
            if name in changes and kind != item.kind:
                raise ValidationError(f"Field '{name}' only applies to {kind} materials")

        if changes.get("code") and changes["code"] != getattr(item, "code", None):
            existing = await db.execute(select(Material).where(Material.code == changes["code"]))
            if existing.scalar_one_or_none():
                raise ConflictError(f"Material code '{changes['code']}' already exists")

        async with atomic(db):
            for name, value in changes.items():
                setattr(item, name, value)

        await db.refresh(item)
        return item

    @staticmethod
    async def delete_item(db: AsyncSession, material_id: str) -> None:
        """Delete a material, keeping its ledger rows with the reference detached."""
        async with atomic(db):
            item = await StockLedgerService.get_item(db, material_id)
            await db.execute(
                update(StockTransaction)
                .where(StockTransaction.material_id == material_id)
                .values(material_id=None)
                .execution_options(synchronize_session=False)
            )
            await db.delete(item)

        logger.info(f"Deleted material {material_id}; ledger history detached")

    @staticmethod
    async def list_items(
        db: AsyncSession,
        kind: Optional[str] = None,
        category: Optional[str] = None,
        needs_restock: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[StockItem], int]:
        query = select(StockItem)

        if kind:
            query = query.where(StockItem.kind == kind)
        if category:
            query = query.where(StockItem.category == category)
        if needs_restock is True:
            query = query.where(StockItem.current_stock <= StockItem.min_stock)
        elif needs_restock is False:
            query = query.where(StockItem.current_stock > StockItem.min_stock)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(StockItem.name.ilike(pattern), StockItem.__table__.c.code.ilike(pattern)))

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(query.order_by(StockItem.name).offset(offset).limit(page_size))
        return list(result.scalars().all()), total

    @staticmethod
    async def list_low_stock(db: AsyncSession) -> List[StockItem]:
        """Active items at or below their minimum stock."""
        result = await db.execute(
            select(StockItem)
            .where(StockItem.current_stock <= StockItem.min_stock, StockItem.is_active == True)  # noqa: E712
            .order_by(StockItem.category, StockItem.name)
        )
        return list(result.scalars().all())

    # =========================================================================
    # LEDGER QUERIES
    # =========================================================================

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        material_id: Optional[str] = None,
        movement_type: Optional[str] = None,
        actor_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[StockTransaction], int]:
        query = select(StockTransaction)
        if material_id:
            query = query.where(StockTransaction.material_id == material_id)
        if movement_type:
            query = query.where(StockTransaction.type == _parse_type(movement_type).value)
        if actor_id is not None:
            query = query.where(StockTransaction.performed_by == actor_id)

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(StockTransaction.created_at.desc()).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def replay_stock(db: AsyncSession, material_id: str) -> int:
        """Stock level reconstructed from the material's ledger rows."""
        signed = case(
            (StockTransaction.type == TransactionType.IN.value, StockTransaction.quantity),
            else_=-StockTransaction.quantity,
        )
        result = await db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(StockTransaction.material_id == material_id)
        )
        return int(result.scalar() or 0)
