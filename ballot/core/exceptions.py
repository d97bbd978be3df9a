"""
Typed failures for poll and vote operations.

Each failure is an HTTPException so services can raise it directly and the
HTTP layer renders the mapped status code and message.
"""
from fastapi import HTTPException, status


class BallotException(HTTPException):
    """Base class for domain failures with a fixed status and message."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class PollNotFoundError(BallotException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Poll not found"


class PollInactiveError(BallotException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "This poll is no longer active"


class PollEndedError(BallotException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "This poll has ended"


class InvalidOptionError(BallotException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid poll option"


class AlreadyVotedTodayError(BallotException):
    """
    The voter already has a vote for this poll today.

    Raised for a cache marker hit, a store hit and a uniqueness violation
    alike. Mapped to 429 so clients can tell it apart from validation errors.
    """

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "You have already voted for this poll today"


class PollPermissionError(BallotException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the poll creator can perform this action"


class TransientStoreError(BallotException):
    """The store was unreachable or timed out. Safe to retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Service temporarily unavailable"
