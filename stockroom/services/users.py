"""
User Account Service
====================
Administrator-managed accounts plus self-service registration.

Passwords arrive already hashed; hashing stays with the auth dependencies.
At least one active administrator must always remain.
"""

import logging
from typing import Optional, Tuple, List

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.asset import AssetBorrow
from stockroom.models.purchase_request import PurchaseRequest
from stockroom.models.user import User, UserRole
from stockroom.schemas.user import UserCreate, RegisterRequest, UserUpdate
from stockroom.services.errors import (
    NotFoundError,
    ValidationError,
    ConflictError,
    LastAdminError,
    UserInUseError,
)
from stockroom.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("email", "name", "role", "is_active")


def _normalise_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service class for user accounts"""

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
        query = select(User.id).where(func.lower(User.email) == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError(f"Email '{email}' is already registered")

    @staticmethod
    async def _other_active_admins(db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            select(func.count()).where(
                User.role == UserRole.ADMIN.value,
                User.is_active.is_(True),
                User.id != user_id,
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def create_user(db: AsyncSession, data: UserCreate, hashed_password: str) -> User:
        email = _normalise_email(data.email)
        await UserService._ensure_email_free(db, email)

        async with atomic(db):
            user = User(
                email=email,
                hashed_password=hashed_password,
                name=data.name,
                department=data.department,
                role=data.role.value,
                is_active=True,
            )
            db.add(user)
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Email '{email}' is already registered") from e

        await db.refresh(user)
        logger.info(f"Created {user.role} account {user.id}")
        return user

    @staticmethod
    async def register(db: AsyncSession, data: RegisterRequest, hashed_password: str) -> User:
        """Self-service sign-up; never grants more than the lecturer role."""
        return await UserService.create_user(
            db,
            UserCreate(
                email=data.email,
                password=data.password,
                name=data.name,
                department=data.department,
                role=UserRole.LECTURER,
            ),
            hashed_password,
        )

    @staticmethod
    async def update_user(
        db: AsyncSession,
        user_id: int,
        data: UserUpdate,
        hashed_password: Optional[str] = None,
    ) -> User:
        """
        Update an account.

        Raises:
            ValidationError: a required field was set to null
            ConflictError: the new email belongs to another account
            LastAdminError: the change would leave no active administrator
        """
        changes = data.model_dump(exclude_unset=True, exclude={"password"})
        for name in _REQUIRED_FIELDS:
            if name in changes and changes[name] is None:
                raise ValidationError(f"Field '{name}' cannot be null")

        user = await UserService.get_user(db, user_id)

        if "email" in changes:
            changes["email"] = _normalise_email(changes["email"])
            await UserService._ensure_email_free(db, changes["email"], exclude_id=user_id)
        if "role" in changes:
            changes["role"] = changes["role"].value

        loses_admin = user.is_admin and (
            changes.get("role", user.role) != UserRole.ADMIN.value or changes.get("is_active") is False
        )
        if loses_admin and await UserService._other_active_admins(db, user_id) == 0:
            raise LastAdminError("The last active administrator cannot be demoted or disabled")

        async with atomic(db):
            for name, value in changes.items():
                setattr(user, name, value)
            if hashed_password:
                user.hashed_password = hashed_password

        await db.refresh(user)
        logger.info(f"Updated account {user_id}: {sorted(changes) + (['password'] if hashed_password else [])}")
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: int) -> None:
        """Delete an account that has no loans or purchase requests."""
        async with atomic(db):
            user = await UserService.get_user(db, user_id)
            if user.is_admin and await UserService._other_active_admins(db, user_id) == 0:
                raise LastAdminError("The last active administrator cannot be deleted")

            borrows = await db.execute(select(AssetBorrow.id).where(AssetBorrow.user_id == user_id).limit(1))
            requests = await db.execute(
                select(PurchaseRequest.id).where(PurchaseRequest.requester_id == user_id).limit(1)
            )
            if borrows.first() is not None or requests.first() is not None:
                raise UserInUseError(
                    f"User {user.email} has loan or purchase history; deactivate the account instead"
                )
            await db.delete(user)

        logger.info(f"Deleted account {user_id}")

    @staticmethod
    async def list_users(
        db: AsyncSession,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[User], int]:
        query = select(User)
        if role:
            query = query.where(User.role == getattr(role, "value", role))
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        offset = (page - 1) * page_size
        result = await db.execute(query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size))
        return list(result.scalars().all()), total
