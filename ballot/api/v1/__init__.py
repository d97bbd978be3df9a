"""
API v1 router exports.
Provides API endpoint routers.
"""
from ballot.api.v1 import auth, polls, votes

__all__ = [
    "auth",
    "polls",
    "votes",
]
