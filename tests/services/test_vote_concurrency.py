"""
Concurrency tests for vote admission.

Concurrent attempts by one voter on one poll run in separate sessions against
a file-backed SQLite database, so they really race on the store.
"""
import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ballot.core.exceptions import AlreadyVotedTodayError
from ballot.models import Base, Poll, PollOption, User, VoteRecord
from ballot.services.vote_service import VoteService

ATTEMPTS = 8


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'votes.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
async def seeded(file_session_factory):
    """Voter and a two-option poll; returns their IDs."""
    async with file_session_factory() as session:
        voter = User(name="Racer", email="racer@example.com", password_hash="x")
        poll = Poll(
            title="Race condition",
            creator_id="creator",
            options=[
                PollOption(text="A", position=0, images=[]),
                PollOption(text="B", position=1, images=[]),
            ]
        )
        session.add_all([voter, poll])
        await session.commit()
        return {
            "voter_id": voter.id,
            "poll_id": poll.id,
            "option_ids": [option.id for option in poll.options],
        }


async def _attempt(session_factory, cache, voter_id, poll_id, option_id):
    async with session_factory() as session:
        return await VoteService(session, cache).cast_vote(voter_id, poll_id, option_id)


@pytest.mark.asyncio
class TestConcurrentVotes:
    """Exactly one of many simultaneous attempts is admitted."""

    @pytest.mark.parametrize("cache_fixture", ["cache", "failing_cache"])
    async def test_single_winner(self, request, file_session_factory, seeded, cache_fixture):
        cache = request.getfixturevalue(cache_fixture)
        option_ids = seeded["option_ids"]

        results = await asyncio.gather(
            *[
                _attempt(
                    file_session_factory,
                    cache,
                    seeded["voter_id"],
                    seeded["poll_id"],
                    option_ids[i % len(option_ids)]
                )
                for i in range(ATTEMPTS)
            ],
            return_exceptions=True
        )

        winners = [r for r in results if isinstance(r, VoteRecord)]
        rejected = [r for r in results if isinstance(r, AlreadyVotedTodayError)]
        assert len(winners) == 1
        assert len(rejected) == ATTEMPTS - 1

        async with file_session_factory() as session:
            stored = await session.execute(
                select(func.count(VoteRecord.id)).where(VoteRecord.poll_id == seeded["poll_id"])
            )
            assert stored.scalar() == 1

            counters = await session.execute(
                select(func.sum(PollOption.vote_count)).where(PollOption.poll_id == seeded["poll_id"])
            )
            assert counters.scalar() == 1

    async def test_counter_exact_for_concurrent_voters(self, file_session_factory, seeded, cache):
        option_id = seeded["option_ids"][0]
        async with file_session_factory() as session:
            voters = [
                User(name=f"Voter {i}", email=f"voter{i}@example.com", password_hash="x")
                for i in range(ATTEMPTS)
            ]
            session.add_all(voters)
            await session.commit()
            voter_ids = [voter.id for voter in voters]

        results = await asyncio.gather(
            *[
                _attempt(file_session_factory, cache, voter_id, seeded["poll_id"], option_id)
                for voter_id in voter_ids
            ],
            return_exceptions=True
        )

        assert all(isinstance(r, VoteRecord) for r in results)

        async with file_session_factory() as session:
            counter = await session.execute(
                select(PollOption.vote_count).where(PollOption.id == option_id)
            )
            assert counter.scalar_one() == ATTEMPTS
