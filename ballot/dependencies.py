"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication and pagination.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.core.cache import RedisCache, get_cache, token_blacklist_key
from ballot.core.database import get_db
from ballot.core.security import (
    SecurityException,
    decode_token,
    extract_token_from_header,
)
from ballot.models.user import User
from ballot.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


async def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the raw bearer token from the Authorization header."""
    return extract_token_from_header(authorization)


async def get_token_payload(
    token: str = Depends(get_bearer_token),
    cache: RedisCache = Depends(get_cache)
) -> Dict[str, Any]:
    """
    Decode the bearer token and reject logged-out tokens.

    Raises:
        SecurityException: 401 if the token is invalid, expired or blacklisted
    """
    payload = decode_token(token)
    if await cache.exists(token_blacklist_key(token)):
        raise SecurityException("Token has been revoked")
    if not payload.get("user_id"):
        raise SecurityException("Invalid token payload")
    return payload


async def get_current_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.

    Returns:
        The User named by the token

    Raises:
        HTTPException: 401 if token is missing, invalid or the user no longer exists

    Example:
        ```python
        @router.get("/protected")
        async def protected_route(current_user: User = Depends(get_current_user)):
            return {"name": current_user.name}
        ```
    """
    user = await UserRepository(db).get(payload["user_id"])
    if user is None:
        logger.info(f"[AUTH] Token for unknown user_id={payload['user_id']}")
        raise SecurityException("User not found")
    return user


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
) -> Optional[User]:
    """
    Dependency to optionally get the current authenticated user.

    Similar to get_current_user but returns None instead of raising
    an exception if no valid token is provided.
    """
    if not authorization:
        return None

    try:
        token = extract_token_from_header(authorization)
        payload = await get_token_payload(token, cache)
        return await get_current_user(payload, db)
    except HTTPException:
        return None


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, description="Items per page (max 100)")
) -> dict:
    """
    Dependency for page-number pagination parameters.

    Returns:
        Dictionary with page and limit
    """
    # Enforce maximum limit
    if limit > 100:
        limit = 100

    return {
        "page": page,
        "limit": limit,
    }
