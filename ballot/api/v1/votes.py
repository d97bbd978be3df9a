"""
Vote API routes.
Provides endpoints for casting votes, eligibility checks, vote history and poll statistics.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.core.cache import RedisCache, get_cache
from ballot.core.database import get_db
from ballot.dependencies import get_current_user, get_pagination_params
from ballot.models.user import User
from ballot.schemas.vote import (
    EligibilityResponse,
    PollStatsResponse,
    PollVotesResponse,
    VoteCastResponse,
    VoteCreate,
    VoteHistoryResponse,
    VoteResponse,
)
from ballot.services.vote_service import VoteService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=VoteCastResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Vote on a poll",
    description="Cast one vote per poll per UTC day."
)
async def cast_vote(
    vote_data: VoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """
    Vote on a poll.

    - **pollId**: ID of the poll
    - **optionId**: ID of the chosen option

    **Errors:**
    - 400: Poll inactive, poll ended or option not in poll
    - 404: Poll not found
    - 429: Already voted for this poll today
    """
    user_id = current_user.id
    logger.info(f"[VOTES] Vote request: poll_id={vote_data.poll_id}, user_id={user_id}")

    try:
        vote = await VoteService(db, cache).cast_vote(user_id, vote_data.poll_id, vote_data.option_id)
    except HTTPException:
        raise
    except Exception as error:
        logger.error(
            f"[VOTES] Vote failed: poll_id={vote_data.poll_id}, user_id={user_id}, "
            f"error={type(error).__name__}: {error}",
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record vote"
        )

    return VoteCastResponse(vote=VoteResponse.model_validate(vote))


@router.get(
    "/can-vote/{poll_id}",
    response_model=EligibilityResponse,
    summary="Check voting eligibility"
)
async def can_vote(
    poll_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Whether the current user may vote on the poll now, with the reason if not."""
    allowed, reason = await VoteService(db, cache).check_eligibility(current_user.id, poll_id)
    return EligibilityResponse(can_vote=allowed, reason=reason)


@router.get(
    "/history",
    response_model=VoteHistoryResponse,
    summary="Get my vote history"
)
async def vote_history(
    pagination: dict = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """The current user's votes, newest first."""
    return await VoteService(db, cache).get_vote_history(
        current_user.id,
        pagination["page"],
        pagination["limit"]
    )


@router.get(
    "/poll/{poll_id}",
    response_model=PollVotesResponse,
    summary="Get votes on a poll"
)
async def poll_votes(
    poll_id: str,
    pagination: dict = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Individual votes with voter details (poll creator only)."""
    return await VoteService(db, cache).get_poll_votes(
        current_user.id,
        poll_id,
        pagination["page"],
        pagination["limit"]
    )


@router.get(
    "/stats/{poll_id}",
    response_model=PollStatsResponse,
    summary="Get poll vote statistics"
)
async def poll_stats(
    poll_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache)
):
    """Totals, daily counts for the last 30 days and per-option shares (poll creator only)."""
    return await VoteService(db, cache).get_poll_stats(current_user.id, poll_id)
