"""Purchase requests raised by staff and decided by administrators."""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, JSON
from sqlalchemy.sql import func
from uuid import uuid4

from stockroom.database import Base


class PurchaseRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PurchaseRequest(Base):
    """A list of things a user would like bought, with an approval status."""

    __tablename__ = "purchase_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # [{"name": ..., "quantity": ..., "estimated_price": ..., "reason": ...}]
    items = Column(JSON, nullable=False)
    reason = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=PurchaseRequestStatus.PENDING.value, index=True)

    # Decision
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<PurchaseRequest {self.id} {self.status}>"

    @property
    def estimated_total(self) -> float:
        return sum(
            (item.get("estimated_price") or 0) * (item.get("quantity") or 0)
            for item in (self.items or [])
        )
