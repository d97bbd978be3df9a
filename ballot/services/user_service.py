"""
User service for account operations.
Handles registration, login, logout, token refresh and profile updates.
"""
import logging
from typing import Any, Dict

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.core.cache import RedisCache, token_blacklist_key
from ballot.core.security import (
    create_access_token,
    hash_password,
    token_seconds_remaining,
    verify_password,
)
from ballot.models.user import User
from ballot.repositories.user_repo import UserRepository
from ballot.schemas.user import (
    AuthResponse,
    UserLogin,
    UserProfileUpdate,
    UserRegister,
    UserResponse,
)

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    """Create an access token carrying the user's identity claims."""
    return create_access_token(
        data={"user_id": user.id, "email": user.email, "name": user.name}
    )


class UserService:
    """Service for user account operations."""

    def __init__(self, db: AsyncSession, cache: RedisCache):
        """
        Initialize user service.

        Args:
            db: Database session
            cache: Cache handle used for the token blacklist
        """
        self.db = db
        self.cache = cache
        self.user_repo = UserRepository(db)

    async def register(self, data: UserRegister) -> AuthResponse:
        """
        Register a new user and issue a token.

        Raises:
            HTTPException: 409 if the email is already registered
        """
        if await self.user_repo.get_by_email(data.email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists"
            )

        try:
            user = await self.user_repo.create(
                email=data.email.lower(),
                name=data.name,
                password_hash=hash_password(data.password)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists"
            )

        logger.info(f"[AUTH] User registered: user_id={user.id}")
        return AuthResponse(
            message="User registered successfully",
            token=issue_token(user),
            user=UserResponse.model_validate(user)
        )

    async def login(self, data: UserLogin) -> AuthResponse:
        """
        Authenticate by email and password.

        Raises:
            HTTPException: 401 on unknown email or wrong password
        """
        user = await self.user_repo.get_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("[AUTH] Failed login attempt")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        return AuthResponse(
            message="Login successful",
            token=issue_token(user),
            user=UserResponse.model_validate(user)
        )

    async def logout(self, token: str, payload: Dict[str, Any]) -> bool:
        """
        Blacklist a token until it would have expired.

        Returns:
            True if the blacklist entry was stored. Without a cache the token
            stays valid until its expiry.
        """
        stored = await self.cache.set(
            token_blacklist_key(token),
            "revoked",
            ttl=token_seconds_remaining(payload)
        )
        if not stored:
            logger.warning(f"[AUTH] Could not blacklist token for user_id={payload.get('user_id')}")
        return stored

    async def refresh(self, user: User) -> AuthResponse:
        """Issue a fresh token for an authenticated user."""
        return AuthResponse(
            message="Token refreshed successfully",
            token=issue_token(user),
            user=UserResponse.model_validate(user)
        )

    async def update_profile(self, user: User, data: UserProfileUpdate) -> UserResponse:
        """
        Update the user's name and/or password.

        Raises:
            HTTPException: 400 if nothing to update, 401 if the current
                password is wrong
        """
        if data.name is None and data.new_password is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid fields to update"
            )

        if data.new_password is not None:
            if not verify_password(data.current_password or "", user.password_hash):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Current password is incorrect"
                )
            user.password_hash = hash_password(data.new_password)

        if data.name is not None:
            user.name = data.name.strip()

        await self.db.commit()
        logger.info(f"[AUTH] Profile updated: user_id={user.id}")
        return UserResponse.model_validate(user)
