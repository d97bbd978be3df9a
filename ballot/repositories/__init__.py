"""
Repository layer exports.
Provides database access layer for the application.
"""
from ballot.repositories.base import BaseRepository
from ballot.repositories.poll_repo import OptionCount, PollRepository
from ballot.repositories.user_repo import UserRepository
from ballot.repositories.vote_repo import VoteRepository

__all__ = [
    "BaseRepository",
    "OptionCount",
    "PollRepository",
    "UserRepository",
    "VoteRepository",
]
