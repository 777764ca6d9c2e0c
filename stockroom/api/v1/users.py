"""User accounts API. Administrators only."""

from fastapi import APIRouter, Query, status
from typing import Optional

from stockroom.api.deps import DbSession, AdminUser, get_password_hash
from stockroom.models.user import UserRole
from stockroom.schemas.user import UserCreate, UserUpdate, UserDetailResponse, UserListResponse
from stockroom.services.users import UserService

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    db: DbSession,
    current_user: AdminUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,  # name or email
):
    items, total = await UserService.list_users(
        db, role=role, is_active=is_active, search=search, page=page, page_size=page_size
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("", response_model=UserDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, db: DbSession, current_user: AdminUser):
    return await UserService.create_user(db, data, get_password_hash(data.password))


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(user_id: int, db: DbSession, current_user: AdminUser):
    return await UserService.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserDetailResponse)
async def update_user(user_id: int, data: UserUpdate, db: DbSession, current_user: AdminUser):
    """Update an account. A new password is re-hashed."""
    hashed_password = get_password_hash(data.password) if data.password else None
    return await UserService.update_user(db, user_id, data, hashed_password=hashed_password)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, db: DbSession, current_user: AdminUser):
    """Delete an account without history. The last administrator is kept."""
    await UserService.delete_user(db, user_id)
