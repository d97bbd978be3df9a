"""
Unit tests for ResultsService.
Tests live counting, percentage rounding and the result snapshot cache.
"""
import json
from datetime import date

import pytest

from ballot.core.cache import poll_results_key
from ballot.core.exceptions import PollNotFoundError
from ballot.models.poll import VoteRecord
from ballot.services.results_service import ResultsService, percentage_of
from ballot.services.vote_service import VoteService


async def _add_votes(db_session, poll_id: str, option_id: str, count: int, prefix: str) -> None:
    """Insert vote records directly, one voter each."""
    for i in range(count):
        db_session.add(VoteRecord(
            user_id=f"{prefix}-{i}",
            poll_id=poll_id,
            option_id=option_id,
            vote_day=date(2025, 6, 15)
        ))
    await db_session.commit()


class TestPercentageOf:
    """Tests for whole-number percentage rounding."""

    def test_zero_total(self):
        assert percentage_of(0, 0) == 0

    def test_exact_shares(self):
        assert percentage_of(3, 4) == 75
        assert percentage_of(1, 4) == 25
        assert percentage_of(4, 4) == 100

    def test_rounds_half_up(self):
        assert percentage_of(1, 8) == 13  # 12.5
        assert percentage_of(3, 8) == 38  # 37.5

    def test_thirds(self):
        assert percentage_of(1, 3) == 33
        assert percentage_of(2, 3) == 67


@pytest.mark.asyncio
class TestResultsService:
    """Test cases for ResultsService."""

    async def test_counts_and_percentages(self, db_session, cache, test_poll):
        poll_id = test_poll.id
        pizza_id, salad_id = test_poll.options[0].id, test_poll.options[1].id
        await _add_votes(db_session, poll_id, pizza_id, 3, "pizza")
        await _add_votes(db_session, poll_id, salad_id, 1, "salad")

        view = await ResultsService(db_session, cache).get_results(poll_id)

        assert view.total_votes == 4
        assert [(o.text, o.vote_count, o.percentage) for o in view.options] == [
            ("Pizza", 3, 75),
            ("Salad", 1, 25),
            ("Soup", 0, 0),
        ]
        assert view.creator_name == "Test User"
        assert view.options[0].image_url == "https://cdn.example.com/pizza.jpg"
        assert view.options[0].images[0].is_primary is True

    async def test_no_votes(self, db_session, cache, test_poll):
        view = await ResultsService(db_session, cache).get_results(test_poll.id)

        assert view.total_votes == 0
        assert all(o.vote_count == 0 and o.percentage == 0 for o in view.options)

    async def test_counts_ignore_stored_counter(self, db_session, cache, test_poll):
        """Results come from vote records, not the option's cached counter."""
        poll_id = test_poll.id
        test_poll.options[2].vote_count = 42
        await db_session.commit()

        view = await ResultsService(db_session, cache).compute_results(poll_id)

        assert view.options[2].vote_count == 0

    async def test_snapshot_written_with_ttl(self, db_session, cache, fake_redis, test_poll):
        poll_id = test_poll.id

        await ResultsService(db_session, cache, ttl=300).get_results(poll_id)

        key = poll_results_key(poll_id)
        assert key in fake_redis.store
        assert fake_redis.ttls[key] == 300
        snapshot = json.loads(fake_redis.store[key])
        assert "has_voted_today" not in snapshot
        assert snapshot["id"] == poll_id

    async def test_cached_snapshot_served_until_invalidated(self, db_session, cache, test_poll):
        """A fresh snapshot is returned as is, even if votes arrived since."""
        poll_id = test_poll.id
        pizza_id = test_poll.options[0].id
        service = ResultsService(db_session, cache)

        first = await service.get_results(poll_id)
        await _add_votes(db_session, poll_id, pizza_id, 2, "late")

        cached = await service.get_results(poll_id)
        assert cached == first
        assert cached.total_votes == 0

        await service.invalidate(poll_id)
        fresh = await service.get_results(poll_id)
        assert fresh.total_votes == 2

    async def test_vote_invalidates_snapshot(self, db_session, cache, clock, test_poll, test_user_2):
        poll_id = test_poll.id
        pizza_id = test_poll.options[0].id
        voter_id = test_user_2.id
        service = ResultsService(db_session, cache)

        assert (await service.get_results(poll_id)).total_votes == 0
        await VoteService(db_session, cache, clock=clock).cast_vote(voter_id, poll_id, pizza_id)

        view = await service.get_results(poll_id)
        assert view.total_votes == 1
        assert view.options[0].percentage == 100

    async def test_malformed_snapshot_recomputed(self, db_session, cache, fake_redis, test_poll):
        poll_id = test_poll.id
        fake_redis.store[poll_results_key(poll_id)] = json.dumps({"unexpected": True})

        view = await ResultsService(db_session, cache).get_results(poll_id)

        assert view.id == poll_id
        assert json.loads(fake_redis.store[poll_results_key(poll_id)])["id"] == poll_id

    async def test_poll_not_found(self, db_session, cache, fake_redis):
        with pytest.raises(PollNotFoundError):
            await ResultsService(db_session, cache).get_results("missing-poll")

        assert fake_redis.store == {}

    async def test_works_without_cache(self, db_session, failing_cache, test_poll):
        poll_id = test_poll.id
        await _add_votes(db_session, poll_id, test_poll.options[1].id, 1, "solo")

        view = await ResultsService(db_session, failing_cache).get_results(poll_id)

        assert view.total_votes == 1
        assert view.options[1].percentage == 100
