from enum import Enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from uuid import uuid4

from stockroom.database import Base


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class StockTransaction(Base):
    """Ledger entry for one stock movement. Never updated after insert."""

    __tablename__ = "stock_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    # Deleting a material keeps its history; the reference is detached
    material_id = Column(
        String(36), ForeignKey("stock_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    material_name = Column(String(255), nullable=False)
    type = Column(String(3), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(String(500))
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<StockTransaction {self.id} {self.type} {self.quantity} material={self.material_id}>"

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == TransactionType.IN.value else -self.quantity
