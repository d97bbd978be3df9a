"""
Pydantic schemas for vote requests and responses.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ballot.schemas.common import CamelModel, Pagination


class VoteCreate(CamelModel):
    """Schema for casting a vote."""

    poll_id: str = Field(..., min_length=1, description="Poll to vote on")
    option_id: str = Field(..., min_length=1, description="Chosen option")


class VoteResponse(CamelModel):
    """A persisted vote record."""

    id: str
    poll_id: str
    option_id: str
    voted_at: datetime


class VoteCastResponse(CamelModel):
    """Response after a successful vote."""

    message: str = "Vote recorded successfully"
    vote: VoteResponse


class EligibilityResponse(CamelModel):
    """Whether the current user may vote on a poll right now."""

    can_vote: bool
    reason: Optional[str] = None


class VoteHistoryItem(CamelModel):
    """One of the current user's past votes."""

    id: str
    voted_at: datetime
    poll_id: str
    poll_title: str
    option_id: str
    option_text: str
    option_image_url: Optional[str] = None


class VoteHistoryResponse(CamelModel):
    votes: List[VoteHistoryItem]
    pagination: Pagination


class PollVoteItem(CamelModel):
    """A vote on a poll as seen by the poll creator."""

    id: str
    voted_at: datetime
    voter_name: str
    voter_email: str
    option_id: str
    option_text: str
    option_image_url: Optional[str] = None


class PollVotesResponse(CamelModel):
    votes: List[PollVoteItem]
    pagination: Pagination


class TotalStats(CamelModel):
    unique_voters: int
    total_votes: int
    first_vote: Optional[datetime] = None
    last_vote: Optional[datetime] = None


class DailyStat(CamelModel):
    vote_date: date
    vote_count: int


class OptionStat(CamelModel):
    id: str
    text: str
    image_url: Optional[str] = None
    vote_count: int
    percentage: float


class PollStatsResponse(CamelModel):
    """Vote counting statistics for a poll creator."""

    poll_title: str
    total_stats: TotalStats
    daily_stats: List[DailyStat]
    option_stats: List[OptionStat]
