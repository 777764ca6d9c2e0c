"""Notifications API - user inbox and on-demand checks."""

from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Query

from stockroom.api.deps import DbSession, CurrentUser, AdminUser
from stockroom.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    NotificationStats,
    CheckRunResponse,
)
from stockroom.services.notifications import NotificationService

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    db: DbSession,
    current_user: CurrentUser,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    items, total = await NotificationService.list_for_user(
        db, current_user.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(db: DbSession, current_user: CurrentUser):
    return await NotificationService.stats_for_user(db, current_user.id)


@router.post("/read-all")
async def mark_all_read(db: DbSession, current_user: CurrentUser):
    updated = await NotificationService.mark_all_read(db, current_user.id)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, db: DbSession, current_user: CurrentUser):
    return await NotificationService.mark_read(db, current_user.id, notification_id)


@router.post("/check", response_model=CheckRunResponse)
async def run_checks(db: DbSession, current_user: AdminUser):
    """Run the low stock, overdue and maintenance checks now."""
    outcomes = await NotificationService.run_all_checks(db, source="manual")
    return {
        "timestamp": datetime.now(timezone.utc),
        "results": [asdict(outcome) for outcome in outcomes],
    }
