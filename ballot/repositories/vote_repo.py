"""
Vote record repository.
Handles daily vote lookups, inserts, counter recomputation and vote reporting queries.
"""
from datetime import date, datetime
from typing import List, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.models.poll import Poll, PollOption, VoteRecord
from ballot.models.user import User
from ballot.repositories.base import BaseRepository


class VoteRepository(BaseRepository[VoteRecord]):
    """Repository for vote record operations."""

    def __init__(self, db: AsyncSession):
        """Initialize vote repository."""
        super().__init__(VoteRecord, db)

    async def has_voted_on_day(self, user_id: str, poll_id: str, vote_day: date) -> bool:
        """
        Check whether a vote record exists for (user, poll, day).

        Args:
            user_id: Voter ID
            poll_id: Poll ID
            vote_day: Canonical UTC vote day

        Returns:
            True if the user already voted on that day
        """
        result = await self.db.execute(
            select(VoteRecord.id).where(
                VoteRecord.user_id == user_id,
                VoteRecord.poll_id == poll_id,
                VoteRecord.vote_day == vote_day
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_vote(
        self,
        user_id: str,
        poll_id: str,
        option_id: str,
        voted_at: datetime,
        vote_day: date
    ) -> VoteRecord:
        """
        Insert a vote record and flush it.

        Raises:
            IntegrityError: If (user, poll, day) already has a record
        """
        return await self.create(
            user_id=user_id,
            poll_id=poll_id,
            option_id=option_id,
            voted_at=voted_at,
            vote_day=vote_day
        )

    async def recompute_option_count(self, option_id: str) -> int:
        """
        Set an option's vote_count to the number of its vote records.

        The option row is locked before counting, so concurrent voters on
        the same option serialize and each count sees the previous commit.

        Returns:
            The recomputed count
        """
        await self.db.execute(
            select(PollOption.id)
            .where(PollOption.id == option_id)
            .with_for_update()
        )
        count_result = await self.db.execute(
            select(func.count(VoteRecord.id)).where(VoteRecord.option_id == option_id)
        )
        count = count_result.scalar_one()

        await self.db.execute(
            update(PollOption)
            .where(PollOption.id == option_id)
            .values(vote_count=count)
            .execution_options(synchronize_session=False)
        )
        return count

    async def get_user_history(
        self,
        user_id: str,
        limit: int,
        offset: int
    ) -> Tuple[List[dict], int]:
        """
        Get a user's votes with poll and option details, newest first.

        Returns:
            Tuple of (vote rows, total votes by the user)
        """
        total = await self.count(user_id=user_id)

        result = await self.db.execute(
            select(
                VoteRecord.id,
                VoteRecord.voted_at,
                VoteRecord.poll_id,
                Poll.title.label("poll_title"),
                PollOption.id.label("option_id"),
                PollOption.text.label("option_text"),
            )
            .join(Poll, Poll.id == VoteRecord.poll_id)
            .join(PollOption, PollOption.id == VoteRecord.option_id)
            .where(VoteRecord.user_id == user_id)
            .order_by(VoteRecord.voted_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [dict(row) for row in result.mappings().all()], total

    async def get_poll_votes(
        self,
        poll_id: str,
        limit: int,
        offset: int
    ) -> Tuple[List[dict], int]:
        """
        Get a poll's votes with voter details, newest first.

        Returns:
            Tuple of (vote rows, total votes on the poll)
        """
        total = await self.count(poll_id=poll_id)

        result = await self.db.execute(
            select(
                VoteRecord.id,
                VoteRecord.voted_at,
                User.name.label("voter_name"),
                User.email.label("voter_email"),
                PollOption.id.label("option_id"),
                PollOption.text.label("option_text"),
            )
            .join(User, User.id == VoteRecord.user_id)
            .join(PollOption, PollOption.id == VoteRecord.option_id)
            .where(VoteRecord.poll_id == poll_id)
            .order_by(VoteRecord.voted_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [dict(row) for row in result.mappings().all()], total

    async def get_totals(self, poll_id: str) -> dict:
        """Unique voters, total votes, and first/last vote time for a poll."""
        result = await self.db.execute(
            select(
                func.count(func.distinct(VoteRecord.user_id)).label("unique_voters"),
                func.count(VoteRecord.id).label("total_votes"),
                func.min(VoteRecord.voted_at).label("first_vote"),
                func.max(VoteRecord.voted_at).label("last_vote"),
            ).where(VoteRecord.poll_id == poll_id)
        )
        return dict(result.mappings().one())

    async def get_daily_counts(self, poll_id: str, since: date) -> List[Tuple[date, int]]:
        """
        Votes per canonical vote day on or after ``since``, newest day first.

        Groups on the stored vote_day so daily buckets match the one-vote-per-day rule.
        """
        result = await self.db.execute(
            select(VoteRecord.vote_day, func.count(VoteRecord.id))
            .where(VoteRecord.poll_id == poll_id, VoteRecord.vote_day >= since)
            .group_by(VoteRecord.vote_day)
            .order_by(VoteRecord.vote_day.desc())
        )
        return [(day, int(count)) for day, count in result.all()]

