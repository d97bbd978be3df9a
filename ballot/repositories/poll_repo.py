"""
Poll repository for database operations.
Handles poll lookup, listing with filters, live option counts and cascading deletes.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.models.poll import Poll, PollOption, PollOptionImage, VoteRecord
from ballot.models.user import User
from ballot.repositories.base import BaseRepository

SORT_COLUMNS = {
    "created_at": Poll.created_at,
    "title": Poll.title,
    "start_date": Poll.start_date,
}


@dataclass
class OptionCount:
    """An option row with its live vote count."""

    option: PollOption
    votes: int


class PollRepository(BaseRepository[Poll]):
    """Repository for poll database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize poll repository."""
        super().__init__(Poll, db)

    async def get_summary(self, poll_id: str) -> Optional[dict]:
        """
        Load poll metadata with creator name as a plain row.

        Args:
            poll_id: Poll ID

        Returns:
            Column mapping or None if the poll does not exist
        """
        result = await self.db.execute(
            select(
                Poll.id,
                Poll.title,
                Poll.description,
                Poll.image_url,
                Poll.creator_id,
                User.name.label("creator_name"),
                Poll.start_date,
                Poll.end_date,
                Poll.is_active,
                Poll.created_at,
            )
            .join(User, User.id == Poll.creator_id)
            .where(Poll.id == poll_id)
        )
        row = result.mappings().one_or_none()
        return dict(row) if row is not None else None

    async def get_option(self, poll_id: str, option_id: str) -> Optional[PollOption]:
        """Get an option only if it belongs to the given poll."""
        result = await self.db.execute(
            select(PollOption).where(
                PollOption.id == option_id,
                PollOption.poll_id == poll_id
            )
        )
        return result.scalar_one_or_none()

    async def get_options_with_counts(self, poll_ids: Sequence[str]) -> Dict[str, List[OptionCount]]:
        """
        Load options of several polls with a live count of their vote records.

        The stored vote_count column is ignored; counts come from vote_records.

        Args:
            poll_ids: Poll IDs

        Returns:
            Mapping of poll ID to its options ordered by position
        """
        if not poll_ids:
            return {}

        live_count = (
            select(func.count(VoteRecord.id))
            .where(VoteRecord.option_id == PollOption.id)
            .correlate(PollOption)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(PollOption, live_count.label("live_count"))
            .where(PollOption.poll_id.in_(poll_ids))
            .order_by(PollOption.poll_id, PollOption.position, PollOption.created_at)
        )

        grouped: Dict[str, List[OptionCount]] = {poll_id: [] for poll_id in poll_ids}
        for option, votes in result.all():
            grouped[option.poll_id].append(OptionCount(option=option, votes=int(votes or 0)))
        return grouped

    async def get_primary_images(self, option_ids: Sequence[str]) -> Dict[str, str]:
        """Primary image URL per option (first primary, else first by display order)."""
        if not option_ids:
            return {}

        result = await self.db.execute(
            select(PollOptionImage)
            .where(PollOptionImage.option_id.in_(option_ids))
            .order_by(
                PollOptionImage.option_id,
                PollOptionImage.is_primary.desc(),
                PollOptionImage.display_order
            )
        )
        images: Dict[str, str] = {}
        for image in result.scalars().all():
            images.setdefault(image.option_id, image.image_url)
        return images

    async def list_polls(
        self,
        *,
        creator_id: Optional[str] = None,
        only_active: bool = True,
        ended: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
        now: datetime,
    ) -> Tuple[List[dict], int]:
        """
        List polls with total vote counts and creator names.

        Args:
            creator_id: Restrict to one creator's polls
            only_active: Restrict to polls with is_active set
            ended: True for ended polls, False for open ones, None for both
            search: Case-insensitive match on title or description
            sort_by: created_at, title or start_date (unknown values fall back to created_at)
            sort_order: asc or desc
            limit: Page size
            offset: Rows to skip
            now: Reference instant for the ended filter

        Returns:
            Tuple of (poll rows, total matching polls)
        """
        conditions = []
        if creator_id is not None:
            conditions.append(Poll.creator_id == creator_id)
        if only_active:
            conditions.append(Poll.is_active.is_(True))
        if ended is True:
            conditions.append(Poll.end_date.is_not(None))
            conditions.append(Poll.end_date <= now)
        elif ended is False:
            conditions.append(or_(Poll.end_date.is_(None), Poll.end_date > now))
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(Poll.title).like(pattern),
                func.lower(func.coalesce(Poll.description, "")).like(pattern),
            ))

        total_result = await self.db.execute(
            select(func.count()).select_from(Poll).where(*conditions)
        )
        total = total_result.scalar() or 0

        sort_column = SORT_COLUMNS.get(sort_by, Poll.created_at)
        order = sort_column.asc() if sort_order.lower() == "asc" else sort_column.desc()

        total_votes = (
            select(func.count(VoteRecord.id))
            .where(VoteRecord.poll_id == Poll.id)
            .correlate(Poll)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(
                Poll.id,
                Poll.title,
                Poll.description,
                Poll.image_url,
                Poll.creator_id,
                User.name.label("creator_name"),
                Poll.start_date,
                Poll.end_date,
                Poll.is_active,
                Poll.created_at,
                total_votes.label("total_votes"),
            )
            .join(User, User.id == Poll.creator_id)
            .where(*conditions)
            .order_by(order)
            .limit(limit)
            .offset(offset)
        )
        return [dict(row) for row in result.mappings().all()], total

    async def delete_cascade(self, poll_id: str) -> bool:
        """
        Delete a poll with its vote records, option images and options.

        Children are removed explicitly so the cascade does not depend on the
        backend enforcing ON DELETE CASCADE.

        Returns:
            True if the poll existed
        """
        option_ids = select(PollOption.id).where(PollOption.poll_id == poll_id)

        await self.db.execute(delete(VoteRecord).where(VoteRecord.poll_id == poll_id))
        await self.db.execute(
            delete(PollOptionImage).where(PollOptionImage.option_id.in_(option_ids))
        )
        await self.db.execute(delete(PollOption).where(PollOption.poll_id == poll_id))
        return await self.delete(poll_id)
