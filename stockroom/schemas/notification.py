"""Notification schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    type: str
    title: str
    message: str
    read: bool = False
    created_at: Optional[datetime] = None
    action_url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra_data")


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    limit: int
    offset: int


class NotificationStats(BaseModel):
    total: int = 0
    unread: int = 0


class CheckResult(BaseModel):
    check: str
    status: str  # fulfilled, rejected
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class CheckRunResponse(BaseModel):
    timestamp: datetime
    results: list[CheckResult]
