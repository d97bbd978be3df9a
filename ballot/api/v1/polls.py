"""
Poll API routes.
Provides endpoints for creating, listing, viewing, updating and deleting polls.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.core.cache import RedisCache, get_cache
from ballot.core.database import get_db
from ballot.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_pagination_params,
)
from ballot.models.user import User
from ballot.schemas.common import MessageResponse
from ballot.schemas.poll import (
    PollCreate,
    PollCreateResponse,
    PollDetailResponse,
    PollListResponse,
    PollResultView,
    PollUpdate,
    PollUpdateResponse,
)
from ballot.services.poll_service import PollService
from ballot.services.results_service import ResultsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=PollCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new poll",
    description="Create a poll with 2-10 options. Option images are references from the upload service."
)
async def create_poll(
    poll_data: PollCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Create a new poll.

    - **title**: Poll title (3-200 characters)
    - **description**: Optional description
    - **endDate**: Optional future end date
    - **options**: 2-10 options, each with optional description and image URLs
    """
    user_id = current_user.id
    try:
        poll = await PollService(db, cache).create_poll(user_id, poll_data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[POLLS] Failed to create poll for user_id={user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create poll"
        )
    return PollCreateResponse(poll=poll)


@router.get(
    "/",
    response_model=PollListResponse,
    summary="List polls"
)
async def list_polls(
    pagination: dict = Depends(get_pagination_params),
    search: Optional[str] = Query(None, description="Search title and description"),
    sort_by: str = Query("created_at", pattern="^(created_at|title|start_date)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    active: str = Query("true", pattern="^(true|false|all)$", description="true: open, false: ended, all: both"),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """List active polls with live vote counts."""
    return await PollService(db, cache).list_polls(
        page=pagination["page"],
        limit=pagination["limit"],
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        active=active
    )


@router.get(
    "/my/polls",
    response_model=PollListResponse,
    summary="List my polls"
)
async def list_my_polls(
    pagination: dict = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """List the current user's polls, newest first."""
    return await PollService(db, cache).list_user_polls(
        current_user.id,
        pagination["page"],
        pagination["limit"]
    )


@router.get(
    "/{poll_id}",
    response_model=PollDetailResponse,
    summary="Get poll details"
)
async def get_poll(
    poll_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Get a poll with results.

    Authenticated callers also get **hasVotedToday** and **canEdit**.
    """
    viewer_id = current_user.id if current_user else None
    return await PollService(db, cache).get_poll_detail(poll_id, viewer_id)


@router.get(
    "/{poll_id}/results",
    response_model=PollResultView,
    summary="Get poll results"
)
async def get_poll_results(
    poll_id: str,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Aggregated results, served from the result snapshot when fresh."""
    return await ResultsService(db, cache).get_results(poll_id)


@router.put(
    "/{poll_id}",
    response_model=PollUpdateResponse,
    summary="Update a poll"
)
async def update_poll(
    poll_id: str,
    poll_data: PollUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Update a poll (creator only).

    **Errors:**
    - 400: No fields to update
    - 403: Not the poll creator
    - 404: Poll not found
    """
    poll = await PollService(db, cache).update_poll(current_user.id, poll_id, poll_data)
    return PollUpdateResponse(poll=poll)


@router.delete(
    "/{poll_id}",
    response_model=MessageResponse,
    summary="Delete a poll"
)
async def delete_poll(
    poll_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Delete a poll with its options and votes (creator only)."""
    await PollService(db, cache).delete_poll(current_user.id, poll_id)
    return MessageResponse(message="Poll deleted successfully")
