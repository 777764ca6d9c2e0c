"""
Concurrent withdrawals against one material.

Two sessions race to take 5 units from a stock of 6. Exactly one may win;
the loser fails cleanly and writes nothing.
"""

import asyncio

import pytest
from sqlalchemy import select, func

from stockroom.models.stock_item import StockItem
from stockroom.models.stock_transaction import StockTransaction, TransactionType
from stockroom.schemas.stock import StockItemCreate
from stockroom.services.errors import InsufficientStockError, LockTimeoutError
from stockroom.services.stock_ledger import StockLedgerService

from tests.factories import ConsumableFactory


async def _withdraw(session_factory, material_id: str):
    async with session_factory() as session:
        return await StockLedgerService.apply_stock_movement(session, material_id, 5, TransactionType.OUT)


@pytest.mark.asyncio
async def test_concurrent_withdrawals_never_oversell(session_factory):
    async with session_factory() as setup:
        item = await StockLedgerService.create_item(
            setup, StockItemCreate(**ConsumableFactory(initial_stock=6, min_stock=0))
        )
        material_id = item.id

    results = await asyncio.gather(
        _withdraw(session_factory, material_id),
        _withdraw(session_factory, material_id),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, StockTransaction)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], (InsufficientStockError, LockTimeoutError))

    async with session_factory() as check:
        stock = (await check.execute(select(StockItem.current_stock).where(StockItem.id == material_id))).scalar()
        out_rows = (
            await check.execute(
                select(func.count())
                .select_from(StockTransaction)
                .where(StockTransaction.material_id == material_id, StockTransaction.type == TransactionType.OUT.value)
            )
        ).scalar()

    assert stock == 1
    assert out_rows == 1
    assert successes[0].previous_stock == 6
    assert successes[0].new_stock == 1


@pytest.mark.asyncio
async def test_sequential_withdrawals_stop_at_zero(session_factory):
    async with session_factory() as db:
        item = await StockLedgerService.create_item(db, StockItemCreate(**ConsumableFactory(initial_stock=10)))
        material_id = item.id

        for _ in range(2):
            await StockLedgerService.apply_stock_movement(db, material_id, 5, TransactionType.OUT)
        with pytest.raises(InsufficientStockError) as exc_info:
            await StockLedgerService.apply_stock_movement(db, material_id, 1, TransactionType.OUT)

        assert exc_info.value.available == 0
        assert await StockLedgerService.replay_stock(db, material_id) == 0
