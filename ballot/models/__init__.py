"""
SQLAlchemy models for the ballot application.

All models must be imported here so Base.metadata knows every table.
"""

# Import Base first
from ballot.models.base import Base, TimestampMixin, UUIDMixin

# Import all models (order matters for relationships)
from ballot.models.user import User
from ballot.models.poll import Poll, PollOption, PollOptionImage, VoteRecord

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # User
    "User",
    # Polls
    "Poll",
    "PollOption",
    "PollOptionImage",
    "VoteRecord",
]
