from datetime import timedelta

from fastapi import APIRouter, HTTPException, status, Response
from sqlalchemy import select, func

from stockroom.api.deps import DbSession, CurrentUser, verify_password, get_password_hash, create_access_token
from stockroom.config import settings
from stockroom.models.user import User
from stockroom.schemas.auth import LoginRequest, TokenResponse, UserResponse
from stockroom.schemas.user import RegisterRequest
from stockroom.services.users import UserService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(response: Response, login_data: LoginRequest, db: DbSession):
    """Authenticate user and return JWT token."""
    result = await db.execute(select(User).where(func.lower(User.email) == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User account is disabled")

    access_token = create_access_token(
        data={"sub": str(user.id), "email": user.email},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    response.set_cookie(
        key="session",
        value=access_token,
        httponly=True,
        secure=settings.ENVIRONMENT != "development",
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    return TokenResponse(access_token=access_token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: RegisterRequest, db: DbSession):
    """Register a new lecturer account."""
    if not settings.ALLOW_REGISTRATION:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Registration is disabled")

    return await UserService.register(db, user_data, get_password_hash(user_data.password))


@router.post("/logout")
async def logout(response: Response):
    """Logout user by clearing session cookie."""
    response.delete_cookie(key="session")
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser):
    """Get current authenticated user information."""
    return current_user
