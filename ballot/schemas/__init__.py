"""
Pydantic schema exports.
Provides request/response models for API endpoints.
"""
from ballot.schemas.common import CamelModel, MessageResponse, Pagination
from ballot.schemas.user import (
    AuthResponse,
    UserLogin,
    UserProfileUpdate,
    UserRegister,
    UserResponse,
)
from ballot.schemas.poll import (
    OptionImageResponse,
    OptionResult,
    PollCreate,
    PollCreateResponse,
    PollDetailResponse,
    PollListResponse,
    PollOptionCreate,
    PollOptionSummary,
    PollResultView,
    PollSummary,
    PollUpdate,
    PollUpdateResponse,
)
from ballot.schemas.vote import (
    DailyStat,
    EligibilityResponse,
    OptionStat,
    PollStatsResponse,
    PollVoteItem,
    PollVotesResponse,
    TotalStats,
    VoteCastResponse,
    VoteCreate,
    VoteHistoryItem,
    VoteHistoryResponse,
    VoteResponse,
)

__all__ = [
    "CamelModel",
    "MessageResponse",
    "Pagination",
    "AuthResponse",
    "UserLogin",
    "UserProfileUpdate",
    "UserRegister",
    "UserResponse",
    "OptionImageResponse",
    "OptionResult",
    "PollCreate",
    "PollCreateResponse",
    "PollDetailResponse",
    "PollListResponse",
    "PollOptionCreate",
    "PollOptionSummary",
    "PollResultView",
    "PollSummary",
    "PollUpdate",
    "PollUpdateResponse",
    "DailyStat",
    "EligibilityResponse",
    "OptionStat",
    "PollStatsResponse",
    "PollVoteItem",
    "PollVotesResponse",
    "TotalStats",
    "VoteCastResponse",
    "VoteCreate",
    "VoteHistoryItem",
    "VoteHistoryResponse",
    "VoteResponse",
]
