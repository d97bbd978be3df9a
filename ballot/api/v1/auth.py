"""
Authentication API endpoints.
Provides registration, login, logout, token refresh and profile management.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.config import settings
from ballot.core.cache import RedisCache, get_cache
from ballot.core.database import get_db
from ballot.core.rate_limit import limiter
from ballot.dependencies import get_bearer_token, get_current_user, get_token_payload
from ballot.models.user import User
from ballot.schemas.common import MessageResponse
from ballot.schemas.user import (
    AuthResponse,
    UserLogin,
    UserProfileUpdate,
    UserRegister,
    UserResponse,
)
from ballot.services.user_service import UserService

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user"
)
@limiter.limit(settings.rate_limit_auth)
async def register(
    request: Request,
    data: UserRegister,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Register with name, email and password.

    **Errors:**
    - 409: Email already registered
    - 422: Validation failed
    """
    return await UserService(db, cache).register(data)


@router.post("/login", response_model=AuthResponse, summary="Log in")
@limiter.limit(settings.rate_limit_auth)
async def login(
    request: Request,
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Authenticate with email and password and receive a JWT.

    **Errors:**
    - 401: Invalid email or password
    """
    return await UserService(db, cache).login(data)


@router.post("/logout", response_model=MessageResponse, summary="Log out")
async def logout(
    token: str = Depends(get_bearer_token),
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Revoke the current token until it expires."""
    await UserService(db, cache).logout(token, payload)
    return MessageResponse(message="Logout successful")


@router.post("/refresh", response_model=AuthResponse, summary="Refresh access token")
@limiter.limit(settings.rate_limit_auth)
async def refresh(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Issue a new token for the authenticated user."""
    return await UserService(db, cache).refresh(current_user)


@router.get("/profile", response_model=UserResponse, summary="Get current user profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=UserResponse, summary="Update current user profile")
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Update name and/or password.

    - **name**: New display name (2-50 characters)
    - **currentPassword**: Required when changing the password
    - **newPassword**: New password (at least 6 characters)

    **Errors:**
    - 400: No fields to update
    - 401: Current password incorrect
    """
    return await UserService(db, cache).update_profile(current_user, data)
