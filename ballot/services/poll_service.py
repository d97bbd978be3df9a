"""
Poll service containing business logic for poll operations.
Handles poll creation, listing, detail views, updates and deletion.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.core.cache import RedisCache
from ballot.core.exceptions import PollNotFoundError, PollPermissionError
from ballot.models.poll import Poll, PollOption, PollOptionImage
from ballot.repositories.poll_repo import PollRepository
from ballot.schemas.common import Pagination
from ballot.schemas.poll import (
    PollCreate,
    PollDetailResponse,
    PollListResponse,
    PollOptionSummary,
    PollResultView,
    PollSummary,
    PollUpdate,
)
from ballot.services.results_service import ResultsService
from ballot.utils.datetime_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Listing filter on end date: "true" lists open polls, "false" ended ones
ACTIVE_FILTERS = {"true": False, "false": True, "all": None}


async def require_poll_owner(
    poll_repo: PollRepository,
    poll_id: str,
    user_id: str,
    message: Optional[str] = None
) -> Poll:
    """
    Load a poll and verify the user created it.

    Raises:
        PollNotFoundError: If the poll does not exist
        PollPermissionError: If the user is not the creator
    """
    poll = await poll_repo.get(poll_id)
    if poll is None:
        raise PollNotFoundError()
    if poll.creator_id != user_id:
        raise PollPermissionError(message)
    return poll


class PollService:
    """Service for poll operations with business logic."""

    def __init__(
        self,
        db: AsyncSession,
        cache: RedisCache,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize poll service.

        Args:
            db: Database session
            cache: Cache handle (fail-open)
            clock: Source of the current UTC time
        """
        self.db = db
        self.cache = cache
        self.clock = clock
        self.poll_repo = PollRepository(db)
        self.results = ResultsService(db, cache)

    async def create_poll(self, creator_id: str, data: PollCreate) -> PollResultView:
        """
        Create a poll with its options and option images in one transaction.

        The first image of each option is its primary image.

        Args:
            creator_id: Creator user ID
            data: Validated poll payload

        Returns:
            Result view of the new poll
        """
        poll = Poll(
            title=data.title,
            description=data.description,
            image_url=data.image_url,
            creator_id=creator_id,
            start_date=self.clock(),
            end_date=ensure_utc(data.end_date),
            is_active=True,
            options=[
                PollOption(
                    text=option.text,
                    description=option.description,
                    position=position,
                    vote_count=0,
                    images=[
                        PollOptionImage(
                            image_url=url,
                            is_primary=index == 0,
                            display_order=index
                        )
                        for index, url in enumerate(option.image_urls)
                    ]
                )
                for position, option in enumerate(data.options)
            ]
        )
        self.db.add(poll)
        await self.db.commit()

        poll_id = poll.id
        logger.info(f"[POLLS] Poll created: poll_id={poll_id}, creator_id={creator_id}, options={len(data.options)}")
        return await self.results.compute_results(poll_id)

    async def list_polls(
        self,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        active: str = "true",
        creator_id: Optional[str] = None,
        only_active: bool = True
    ) -> PollListResponse:
        """
        List active polls with pagination, search and sorting.

        Args:
            page: 1-based page number
            limit: Page size
            search: Case-insensitive match on title or description
            sort_by: created_at, title or start_date
            sort_order: asc or desc
            active: "true" for open polls, "false" for ended ones, "all" for both
            creator_id: Restrict to one creator's polls
            only_active: Hide polls whose is_active flag is off

        Returns:
            PollListResponse with live vote counts
        """
        rows, total = await self.poll_repo.list_polls(
            creator_id=creator_id,
            only_active=only_active,
            ended=ACTIVE_FILTERS.get(active.lower(), False),
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=(page - 1) * limit,
            now=self.clock(),
        )
        return PollListResponse(
            polls=await self._summaries(rows),
            pagination=Pagination.build(page, limit, total)
        )

    async def list_user_polls(self, user_id: str, page: int, limit: int) -> PollListResponse:
        """List the user's own polls, newest first, including inactive and ended ones."""
        return await self.list_polls(
            page=page,
            limit=limit,
            active="all",
            creator_id=user_id,
            only_active=False
        )

    async def get_poll_detail(
        self,
        poll_id: str,
        viewer_id: Optional[str] = None
    ) -> PollDetailResponse:
        """
        Get a poll's results with the viewer's own flags.

        The shared result view may come from the snapshot cache; the
        viewer's has_voted_today and can_edit are always computed fresh.
        """
        # Imported here: vote_service imports require_poll_owner from this module
        from ballot.services.vote_service import VoteService

        view = await self.results.get_results(poll_id)

        has_voted_today = False
        if viewer_id is not None:
            vote_service = VoteService(self.db, self.cache, clock=self.clock)
            has_voted_today = await vote_service.has_voted_today(viewer_id, poll_id)

        return PollDetailResponse(
            **view.model_dump(),
            has_voted_today=has_voted_today,
            can_edit=viewer_id is not None and view.creator_id == viewer_id,
        )

    async def update_poll(self, user_id: str, poll_id: str, data: PollUpdate) -> PollResultView:
        """
        Update a poll (creator only). Only provided fields change; an
        explicit null clears description or end_date.

        Raises:
            HTTPException: 400 if no fields are provided
            PollNotFoundError, PollPermissionError
        """
        poll = await require_poll_owner(self.poll_repo, poll_id, user_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid fields to update"
            )

        for field, value in changes.items():
            setattr(poll, field, value)
        await self.db.commit()
        await self.results.invalidate(poll_id)

        logger.info(f"[POLLS] Poll updated: poll_id={poll_id}, fields={sorted(changes)}")
        return await self.results.compute_results(poll_id)

    async def delete_poll(self, user_id: str, poll_id: str) -> None:
        """Delete a poll with its options, images and votes (creator only)."""
        await require_poll_owner(self.poll_repo, poll_id, user_id)

        await self.poll_repo.delete_cascade(poll_id)
        await self.db.commit()
        await self.results.invalidate(poll_id)

        logger.info(f"[POLLS] Poll deleted: poll_id={poll_id}, by user_id={user_id}")

    async def _summaries(self, rows: List[dict]) -> List[PollSummary]:
        grouped = await self.poll_repo.get_options_with_counts([row["id"] for row in rows])

        summaries = []
        for row in rows:
            options = grouped.get(row["id"], [])
            summaries.append(PollSummary(
                **{
                    **row,
                    "start_date": ensure_utc(row["start_date"]),
                    "end_date": ensure_utc(row["end_date"]),
                    "created_at": ensure_utc(row["created_at"]),
                    "total_votes": int(row["total_votes"] or 0),
                },
                options=[
                    PollOptionSummary(
                        id=entry.option.id,
                        text=entry.option.text,
                        description=entry.option.description,
                        image_url=entry.option.primary_image_url,
                        vote_count=entry.votes,
                    )
                    for entry in options
                ],
            ))
        return summaries
