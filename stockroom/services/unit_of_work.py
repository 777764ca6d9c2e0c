"""Transaction boundary shared by the inventory services."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.services.errors import LockTimeoutError

logger = logging.getLogger(__name__)

# PostgreSQL lock_not_available / query_canceled by lock_timeout
_LOCK_SQLSTATES = {"55P03", "57014"}


def is_lock_timeout(exc: DBAPIError) -> bool:
    """True when the driver gave up waiting for a row or table lock."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _LOCK_SQLSTATES:
        return True
    return "database is locked" in str(orig or exc).lower()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything written inside the block, or nothing.

    Any exception rolls the session back before propagating. Lock waits that
    time out are re-raised as the retryable ``LockTimeoutError``.
    """
    try:
        yield db
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        if is_lock_timeout(exc):
            logger.warning("Lock wait timed out, transaction rolled back")
            raise LockTimeoutError("The record is busy, please retry") from exc
        raise
    except BaseException:
        await db.rollback()
        raise
