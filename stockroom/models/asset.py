"""Fixed assets and their loan records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, String, DateTime, Date, Text, Integer, Float, ForeignKey, Index, text
from sqlalchemy.sql import func
from uuid import uuid4

from stockroom.database import Base


class AssetCondition(str, Enum):
    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    NEEDS_REPAIR = "NEEDS_REPAIR"
    DISPOSED = "DISPOSED"


# Conditions that keep an asset from being lent out
UNBORROWABLE_CONDITIONS = {AssetCondition.DAMAGED.value, AssetCondition.DISPOSED.value}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to UTC; naive values are taken to be UTC already.

    SQLite keeps the wall time and drops the offset, so every stored
    timestamp has to be in UTC for comparisons to hold.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BorrowStatus(str, Enum):
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"
    LOST = "LOST"


class FixedAsset(Base):
    """Durable equipment (computers, projectors, lab kits) lent to users."""

    __tablename__ = "fixed_assets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Core identification
    asset_number = Column(String(50), unique=True, nullable=False, index=True)  # e.g. "AST-001001"
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)

    # Description
    brand = Column(String(100))
    model = Column(String(100))
    serial_number = Column(String(100))
    description = Column(Text)
    location = Column(String(255), default="Unassigned")

    # Financial
    purchase_date = Column(Date)
    purchase_price = Column(Float)

    condition = Column(String(20), nullable=False, default=AssetCondition.GOOD.value, index=True)

    # Audit
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<FixedAsset {self.asset_number} - {self.name}>"


class AssetBorrow(Base):
    """One loan of a fixed asset to a user."""

    __tablename__ = "asset_borrows"
    __table_args__ = (
        # At most one open loan per asset
        Index(
            "uq_asset_borrows_one_active_per_asset",
            "fixed_asset_id",
            unique=True,
            sqlite_where=text("status = 'BORROWED'"),
            postgresql_where=text("status = 'BORROWED'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    # Deleting an asset keeps its loan history; the reference is detached
    fixed_asset_id = Column(
        String(36), ForeignKey("fixed_assets.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=BorrowStatus.BORROWED.value, index=True)

    borrow_date = Column(DateTime(timezone=True), nullable=False)
    expected_return_date = Column(DateTime(timezone=True), nullable=True)
    actual_return_date = Column(DateTime(timezone=True), nullable=True)

    purpose = Column(String(500))
    note = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<AssetBorrow {self.id} asset={self.fixed_asset_id} {self.status}>"

    def is_overdue_at(self, now: datetime) -> bool:
        """Open loan whose expected return date has passed."""
        if self.status != BorrowStatus.BORROWED.value or self.expected_return_date is None:
            return False
        return as_utc(self.expected_return_date) < now

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(datetime.now(timezone.utc))
