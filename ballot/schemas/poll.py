"""
Pydantic schemas for poll requests and responses.
Handles validation for poll-related API endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ballot.schemas.common import CamelModel, Pagination
from ballot.utils.datetime_utils import ensure_utc, utc_now


# ============================================================================
# Request Schemas
# ============================================================================

class PollOptionCreate(CamelModel):
    """Schema for creating a poll option."""

    text: str = Field(..., min_length=1, max_length=100, description="Option text")
    description: Optional[str] = Field(None, max_length=500, description="Option description")
    image_urls: List[str] = Field(
        default_factory=list,
        max_length=10,
        description="Image references from the upload service; the first is primary"
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Ensure option text is not empty or whitespace."""
        if len(v.strip()) == 0:
            raise ValueError("Option text cannot be empty or whitespace only")
        return v.strip()


def _future_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    v = ensure_utc(v)
    if v <= utc_now():
        raise ValueError("End date must be in the future")
    return v


class PollCreate(CamelModel):
    """Schema for creating a poll."""

    title: str = Field(..., min_length=3, max_length=200, description="Poll title")
    description: Optional[str] = Field(None, max_length=1000, description="Poll description")
    image_url: Optional[str] = Field(None, description="Cover image reference")
    end_date: Optional[datetime] = Field(None, description="When voting closes (null for no end)")
    options: List[PollOptionCreate] = Field(
        ...,
        min_length=2,
        max_length=10,
        description="Poll options (2-10)"
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Ensure title is not empty or whitespace."""
        if len(v.strip()) < 3:
            raise ValueError("Title must be at least 3 characters")
        return v.strip()

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _future_utc(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Best lunch spot",
                "description": "Vote once a day",
                "endDate": None,
                "options": [
                    {"text": "Pizza", "imageUrls": ["https://cdn.example.com/pizza.jpg"]},
                    {"text": "Salad"}
                ]
            }
        }
    )


class PollUpdate(CamelModel):
    """
    Schema for updating a poll (creator only). Only provided fields change.

    An explicit null clears description or end_date; title and is_active
    cannot be null.
    """

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("title", "is_active")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _future_utc(v)


# ============================================================================
# Response Schemas
# ============================================================================

class OptionImageResponse(CamelModel):
    """Image reference attached to an option."""

    url: str
    is_primary: bool
    display_order: int


class OptionResult(CamelModel):
    """One option of a poll with its live vote count and share."""

    id: str
    text: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    images: List[OptionImageResponse] = Field(default_factory=list)
    vote_count: int
    percentage: int


class PollResultView(CamelModel):
    """
    Aggregated results of a poll.

    This is the document stored in the result snapshot cache, so it must
    never carry per-viewer fields.
    """

    id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    creator_id: str
    creator_name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    total_votes: int
    options: List[OptionResult]


class PollDetailResponse(PollResultView):
    """Poll results plus fields specific to the requesting user."""

    has_voted_today: bool = False
    can_edit: bool = False


class PollOptionSummary(CamelModel):
    """Option entry in poll listings."""

    id: str
    text: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    vote_count: int


class PollSummary(CamelModel):
    """Poll entry in poll listings."""

    id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    creator_id: str
    creator_name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    total_votes: int
    options: List[PollOptionSummary]


class PollListResponse(CamelModel):
    """Paginated poll listing."""

    polls: List[PollSummary]
    pagination: Pagination


class PollCreateResponse(CamelModel):
    """Response when creating a new poll."""

    message: str = "Poll created successfully"
    poll: PollResultView


class PollUpdateResponse(CamelModel):
    """Response when updating a poll."""

    message: str = "Poll updated successfully"
    poll: PollResultView
