"""
Service layer exports.
Provides business logic for the application.
"""
from ballot.services.poll_service import PollService
from ballot.services.results_service import ResultsService
from ballot.services.user_service import UserService
from ballot.services.vote_service import VoteService

__all__ = [
    "PollService",
    "ResultsService",
    "UserService",
    "VoteService",
]
