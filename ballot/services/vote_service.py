"""
Vote service: admission of votes and vote reporting.

A vote is admitted at most once per (voter, poll, UTC day). The cache marker
is a fast path only; the vote_records uniqueness constraint is the rule.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.config import settings
from ballot.core.cache import RedisCache, poll_results_key, vote_marker_key
from ballot.core.exceptions import (
    AlreadyVotedTodayError,
    InvalidOptionError,
    PollEndedError,
    PollInactiveError,
    PollNotFoundError,
    TransientStoreError,
)
from ballot.models.poll import Poll, VoteRecord
from ballot.repositories.poll_repo import PollRepository
from ballot.repositories.vote_repo import VoteRepository
from ballot.schemas.common import Pagination
from ballot.schemas.vote import (
    DailyStat,
    OptionStat,
    PollStatsResponse,
    PollVoteItem,
    PollVotesResponse,
    TotalStats,
    VoteHistoryItem,
    VoteHistoryResponse,
)
from ballot.services.poll_service import require_poll_owner
from ballot.utils.datetime_utils import ensure_utc, utc_now, utc_today

logger = logging.getLogger(__name__)

MARKER_VALUE = "voted"
STATS_WINDOW_DAYS = 30


def poll_has_ended(poll: Poll, now: datetime) -> bool:
    """A poll has ended once its end timestamp is at or before ``now``."""
    return poll.end_date is not None and ensure_utc(poll.end_date) <= now


class VoteService:
    """Service for casting votes and answering eligibility queries."""

    def __init__(
        self,
        db: AsyncSession,
        cache: RedisCache,
        clock: Callable[[], datetime] = utc_now,
        marker_ttl: Optional[int] = None
    ):
        """
        Initialize vote service.

        Args:
            db: Database session
            cache: Cache handle (fail-open)
            clock: Source of the current UTC time
            marker_ttl: Vote marker TTL in seconds (defaults to settings.vote_marker_ttl)
        """
        self.db = db
        self.cache = cache
        self.clock = clock
        self.marker_ttl = marker_ttl or settings.vote_marker_ttl
        self.poll_repo = PollRepository(db)
        self.vote_repo = VoteRepository(db)

    async def _load_poll(self, poll_id: str) -> Poll:
        try:
            poll = await self.poll_repo.get(poll_id)
        except SQLAlchemyError as e:
            logger.error(f"[VOTES] Failed to load poll {poll_id}: {e}", exc_info=True)
            raise TransientStoreError() from e
        if poll is None:
            raise PollNotFoundError()
        return poll

    async def _has_marker(self, voter_id: str, poll_id: str, day: date) -> bool:
        return await self.cache.get(vote_marker_key(voter_id, poll_id, day)) == MARKER_VALUE

    async def has_voted_today(self, voter_id: str, poll_id: str) -> bool:
        """
        Check the cache marker, then the store, for a vote today.

        Read-only: a store hit does not backfill the marker.
        """
        today = utc_today(self.clock())
        if await self._has_marker(voter_id, poll_id, today):
            return True
        try:
            return await self.vote_repo.has_voted_on_day(voter_id, poll_id, today)
        except SQLAlchemyError as e:
            logger.error(f"[VOTES] Failed to check today's vote: {e}", exc_info=True)
            raise TransientStoreError() from e

    async def cast_vote(self, voter_id: str, poll_id: str, option_id: str) -> VoteRecord:
        """
        Cast a vote for an option of a poll.

        Checks run in order: poll exists, poll active, poll not ended,
        option belongs to poll, no cache marker for today, no vote record
        for today. The insert and the option counter recomputation commit
        together; a uniqueness violation from a concurrent attempt is
        reported as AlreadyVotedTodayError.

        After commit the marker is set and the poll's result snapshot is
        deleted, both best-effort.

        Args:
            voter_id: Authenticated voter ID
            poll_id: Poll ID
            option_id: Option ID

        Returns:
            The persisted VoteRecord

        Raises:
            PollNotFoundError, PollInactiveError, PollEndedError,
            InvalidOptionError, AlreadyVotedTodayError, TransientStoreError
        """
        now = self.clock()
        today = utc_today(now)

        poll = await self._load_poll(poll_id)
        if not poll.is_active:
            raise PollInactiveError()
        if poll_has_ended(poll, now):
            raise PollEndedError()

        try:
            option = await self.poll_repo.get_option(poll_id, option_id)
        except SQLAlchemyError as e:
            logger.error(f"[VOTES] Failed to load option {option_id}: {e}", exc_info=True)
            raise TransientStoreError("Failed to record vote") from e
        if option is None:
            raise InvalidOptionError()

        if await self._has_marker(voter_id, poll_id, today):
            raise AlreadyVotedTodayError()

        try:
            if await self.vote_repo.has_voted_on_day(voter_id, poll_id, today):
                raise AlreadyVotedTodayError()

            vote = await self.vote_repo.create_vote(
                user_id=voter_id,
                poll_id=poll_id,
                option_id=option_id,
                voted_at=now,
                vote_day=today
            )
            await self.vote_repo.recompute_option_count(option_id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"[VOTES] Concurrent duplicate vote rejected: poll_id={poll_id}, user_id={voter_id}")
            raise AlreadyVotedTodayError()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"[VOTES] Vote transaction failed: poll_id={poll_id}, user_id={voter_id}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True
            )
            raise TransientStoreError("Failed to record vote") from e

        await self.cache.set(vote_marker_key(voter_id, poll_id, today), MARKER_VALUE, ttl=self.marker_ttl)
        await self.cache.delete(poll_results_key(poll_id))

        logger.info(f"[VOTES] Vote recorded: poll_id={poll_id}, option_id={option_id}, user_id={voter_id}")
        return vote

    async def check_eligibility(self, voter_id: str, poll_id: str) -> Tuple[bool, Optional[str]]:
        """
        Decide whether a voter may vote on a poll now, without side effects.

        Returns:
            Tuple of (can_vote, reason); reason is None when voting is allowed

        Raises:
            PollNotFoundError: If the poll does not exist
        """
        poll = await self._load_poll(poll_id)

        if not poll.is_active:
            return False, "Poll is not active"
        if poll_has_ended(poll, self.clock()):
            return False, "Poll has ended"
        if await self.has_voted_today(voter_id, poll_id):
            return False, "Already voted today"
        return True, None

    async def can_vote_today(self, voter_id: str, poll_id: str) -> bool:
        """Boolean eligibility; a missing poll is simply not votable."""
        try:
            can_vote, _ = await self.check_eligibility(voter_id, poll_id)
        except PollNotFoundError:
            return False
        return can_vote

    async def get_vote_history(self, user_id: str, page: int, limit: int) -> VoteHistoryResponse:
        """Get the user's votes, newest first."""
        rows, total = await self.vote_repo.get_user_history(user_id, limit, (page - 1) * limit)
        images = await self.poll_repo.get_primary_images([row["option_id"] for row in rows])

        votes = [
            VoteHistoryItem(
                **row,
                option_image_url=images.get(row["option_id"])
            )
            for row in rows
        ]
        return VoteHistoryResponse(votes=votes, pagination=Pagination.build(page, limit, total))

    async def get_poll_votes(
        self,
        requester_id: str,
        poll_id: str,
        page: int,
        limit: int
    ) -> PollVotesResponse:
        """Get individual votes on a poll (creator only)."""
        await require_poll_owner(
            self.poll_repo, poll_id, requester_id,
            "Only the poll creator can view detailed vote information"
        )

        rows, total = await self.vote_repo.get_poll_votes(poll_id, limit, (page - 1) * limit)
        images = await self.poll_repo.get_primary_images([row["option_id"] for row in rows])

        votes = [
            PollVoteItem(**row, option_image_url=images.get(row["option_id"]))
            for row in rows
        ]
        return PollVotesResponse(votes=votes, pagination=Pagination.build(page, limit, total))

    async def get_poll_stats(self, requester_id: str, poll_id: str) -> PollStatsResponse:
        """
        Vote counting statistics for a poll (creator only).

        Daily buckets cover the last 30 vote days; option percentages are
        rounded to two decimals.
        """
        poll = await require_poll_owner(
            self.poll_repo, poll_id, requester_id,
            "Only the poll creator can view poll statistics"
        )
        poll_title = poll.title

        totals = await self.vote_repo.get_totals(poll_id)
        since = utc_today(self.clock()) - timedelta(days=STATS_WINDOW_DAYS)
        daily = await self.vote_repo.get_daily_counts(poll_id, since)
        grouped = await self.poll_repo.get_options_with_counts([poll_id])

        total_votes = int(totals["total_votes"] or 0)
        options = sorted(grouped.get(poll_id, []), key=lambda entry: entry.votes, reverse=True)

        return PollStatsResponse(
            poll_title=poll_title,
            total_stats=TotalStats(
                unique_voters=int(totals["unique_voters"] or 0),
                total_votes=total_votes,
                first_vote=ensure_utc(totals["first_vote"]),
                last_vote=ensure_utc(totals["last_vote"]),
            ),
            daily_stats=[DailyStat(vote_date=day, vote_count=count) for day, count in daily],
            option_stats=[
                OptionStat(
                    id=entry.option.id,
                    text=entry.option.text,
                    image_url=entry.option.primary_image_url,
                    vote_count=entry.votes,
                    percentage=round(entry.votes / total_votes * 100, 2) if total_votes else 0.0,
                )
                for entry in options
            ],
        )
