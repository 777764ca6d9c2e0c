"""Notification model for in-app notifications."""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean, ForeignKey, JSON
from sqlalchemy.sql import func
from uuid import uuid4

from stockroom.database import Base


class NotificationType(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"
    LOW_STOCK = "LOW_STOCK"
    OVERDUE = "OVERDUE"
    MAINTENANCE = "MAINTENANCE"
    REQUEST = "REQUEST"


class Notification(Base):
    """In-app notification for users."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Target user
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Notification content
    type = Column(String(20), nullable=False, default=NotificationType.INFO.value, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Status
    read = Column(Boolean, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Action link (URL to navigate to)
    action_url = Column(String(500), nullable=True)

    # Additional context; "metadata" is reserved on declarative classes
    extra_data = Column("metadata", JSON, nullable=True)

    # Source
    source = Column(String(50), nullable=True)  # system, scheduler, user

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Notification {self.type}: {self.title[:30]}>"
