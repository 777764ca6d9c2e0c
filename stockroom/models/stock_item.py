"""Stockable items: legacy materials and consumable materials share one table."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean, CheckConstraint
from sqlalchemy.sql import func
from uuid import uuid4

from stockroom.database import Base


class StockItem(Base):
    """Anything counted by a stock counter against a minimum threshold.

    ``current_stock`` is only ever changed by the stock ledger, which writes a
    ``StockTransaction`` row in the same database transaction.
    """

    __tablename__ = "stock_items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_stock_items_current_stock_non_negative"),
        CheckConstraint("min_stock >= 0", name="ck_stock_items_min_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    kind = Column(String(20), nullable=False, index=True)  # legacy, consumable

    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    unit = Column(String(50), nullable=False, default="piece")

    min_stock = Column(Integer, nullable=False, default=0)
    current_stock = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __mapper_args__ = {
        "polymorphic_on": kind,
        "polymorphic_abstract": True,
    }

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} stock={self.current_stock}>"

    @property
    def needs_restock(self) -> bool:
        """Stock has fallen to or below the minimum threshold."""
        return (self.current_stock or 0) <= (self.min_stock or 0)


class Material(StockItem):
    """Legacy material record identified by a material code."""

    code = Column(String(50), unique=True, nullable=True, index=True)

    __mapper_args__ = {"polymorphic_identity": "legacy"}


class ConsumableMaterial(StockItem):
    """Consumable supply (paper, pens, toner) withdrawn by staff."""

    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "consumable"}


STOCK_ITEM_KINDS = {
    "legacy": Material,
    "consumable": ConsumableMaterial,
}
