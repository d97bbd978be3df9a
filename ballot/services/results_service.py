"""
Result aggregation for polls.

Serves a poll's tally from the result snapshot cache when present, otherwise
counts vote records in the store and repopulates the snapshot.
"""
import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot.config import settings
from ballot.core.cache import RedisCache, poll_results_key
from ballot.core.exceptions import PollNotFoundError, TransientStoreError
from ballot.repositories.poll_repo import OptionCount, PollRepository
from ballot.schemas.poll import OptionImageResponse, OptionResult, PollResultView
from ballot.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


def percentage_of(votes: int, total: int) -> int:
    """
    Whole-number share of ``votes`` in ``total``, rounded half up.

    Returns 0 when there are no votes at all.
    """
    if total <= 0:
        return 0
    # Integer form of floor(votes / total * 100 + 0.5)
    return (votes * 200 + total) // (total * 2)


class ResultsService:
    """Service computing and caching poll results."""

    def __init__(self, db: AsyncSession, cache: RedisCache, ttl: int | None = None):
        """
        Initialize results service.

        Args:
            db: Database session
            cache: Cache handle (fail-open)
            ttl: Snapshot time-to-live in seconds (defaults to settings.cache_results_ttl)
        """
        self.db = db
        self.cache = cache
        self.ttl = ttl or settings.cache_results_ttl
        self.poll_repo = PollRepository(db)

    async def get_results(self, poll_id: str) -> PollResultView:
        """
        Get a poll's aggregated results.

        A cached snapshot is returned as is. On a miss the results are
        computed from the store and written back with a short TTL.

        Args:
            poll_id: Poll ID

        Returns:
            PollResultView

        Raises:
            PollNotFoundError: If the poll does not exist
            TransientStoreError: If the store cannot be read
        """
        key = poll_results_key(poll_id)
        cached = await self.cache.get(key)
        if cached is not None:
            try:
                return PollResultView.model_validate(cached)
            except ValidationError:
                logger.warning(f"[RESULTS] Discarding malformed snapshot for poll {poll_id}")

        view = await self.compute_results(poll_id)
        await self.cache.set(key, view.model_dump(mode="json"), ttl=self.ttl)
        return view

    async def compute_results(self, poll_id: str) -> PollResultView:
        """
        Build a poll's results from the store, bypassing the cache.

        Counts come from vote_records, not the options' stored counters.
        """
        try:
            summary = await self.poll_repo.get_summary(poll_id)
            if summary is None:
                raise PollNotFoundError()
            grouped = await self.poll_repo.get_options_with_counts([poll_id])
        except SQLAlchemyError as e:
            logger.error(f"[RESULTS] Failed to load results for poll {poll_id}: {e}", exc_info=True)
            raise TransientStoreError() from e

        for field in ("start_date", "end_date", "created_at"):
            summary[field] = ensure_utc(summary[field])

        options = grouped.get(poll_id, [])
        total_votes = sum(entry.votes for entry in options)

        return PollResultView(
            **summary,
            total_votes=total_votes,
            options=self._option_results(options, total_votes),
        )

    async def invalidate(self, poll_id: str) -> bool:
        """Drop a poll's result snapshot so the next read recomputes it."""
        return await self.cache.delete(poll_results_key(poll_id))

    @staticmethod
    def _option_results(options: List[OptionCount], total_votes: int) -> List[OptionResult]:
        results = []
        for entry in options:
            option = entry.option
            results.append(OptionResult(
                id=option.id,
                text=option.text,
                description=option.description,
                image_url=option.primary_image_url,
                images=[
                    OptionImageResponse(
                        url=image.image_url,
                        is_primary=image.is_primary,
                        display_order=image.display_order,
                    )
                    for image in option.images
                ],
                vote_count=entry.votes,
                percentage=percentage_of(entry.votes, total_votes),
            ))
        return results
