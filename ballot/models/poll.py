"""
Poll, PollOption, PollOptionImage and VoteRecord models.

Handles polls, their options (with image references) and daily vote records.
"""
from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ballot.models.base import Base, TimestampMixin, UUIDMixin
from ballot.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from ballot.models.user import User


class Poll(Base, UUIDMixin, TimestampMixin):
    """
    Poll model.

    Owned by its creator, who alone may update or delete it. Deleting a poll
    removes its options, option images and vote records.
    """

    __tablename__ = "polls"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Poll title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Optional poll description"
    )

    image_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Cover image reference supplied by the upload service"
    )

    creator_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="User who created the poll"
    )

    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="When voting opened"
    )

    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When voting closes (null for no end)"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Whether the poll accepts votes"
    )

    # Relationships
    creator: Mapped["User"] = relationship(back_populates="polls", lazy="joined")

    options: Mapped[List["PollOption"]] = relationship(
        back_populates="poll",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PollOption.position",
        lazy="selectin"  # Always load options with polls
    )

    def __repr__(self) -> str:
        return f"<Poll(id={self.id}, title='{self.title[:50]}')>"


class PollOption(Base, UUIDMixin):
    """
    PollOption model - individual options in a poll.

    vote_count is a cached counter recomputed from vote_records on every
    vote; reads of results count vote_records directly.
    """

    __tablename__ = "poll_options"

    poll_id: Mapped[str] = mapped_column(
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Poll this option belongs to"
    )

    text: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Option text"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Optional option description"
    )

    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        doc="Display position/order of this option"
    )

    vote_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        doc="Recomputed count of vote records for this option"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )

    # Relationships
    poll: Mapped["Poll"] = relationship(back_populates="options", lazy="raise")

    images: Mapped[List["PollOptionImage"]] = relationship(
        back_populates="option",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PollOptionImage.display_order",
        lazy="selectin"
    )

    @property
    def primary_image_url(self) -> Optional[str]:
        """First image flagged primary, else the first image, else None."""
        if not self.images:
            return None
        for image in self.images:
            if image.is_primary:
                return image.image_url
        return self.images[0].image_url

    def __repr__(self) -> str:
        return f"<PollOption(id={self.id}, text='{self.text}')>"


class PollOptionImage(Base, UUIDMixin):
    """Image reference attached to a poll option. Opaque to voting logic."""

    __tablename__ = "poll_option_images"

    option_id: Mapped[str] = mapped_column(
        ForeignKey("poll_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    image_url: Mapped[str] = mapped_column(Text, nullable=False)

    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    option: Mapped["PollOption"] = relationship(back_populates="images", lazy="raise")

    def __repr__(self) -> str:
        return f"<PollOptionImage(option_id={self.option_id}, display_order={self.display_order})>"


class VoteRecord(Base, UUIDMixin):
    """
    VoteRecord model - one vote by a user on a poll for one UTC day.

    vote_day is the UTC calendar date of voted_at. The unique constraint on
    (user_id, poll_id, vote_day) is the authoritative one-vote-per-day rule.
    """

    __tablename__ = "vote_records"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who voted"
    )

    poll_id: Mapped[str] = mapped_column(
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Poll voted on"
    )

    option_id: Mapped[str] = mapped_column(
        ForeignKey("poll_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Option chosen"
    )

    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="When the vote was cast"
    )

    vote_day: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="UTC calendar date of voted_at"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "poll_id", "vote_day", name="uq_vote_user_poll_day"),
        Index("ix_vote_records_user_poll", "user_id", "poll_id"),
    )

    def __repr__(self) -> str:
        return f"<VoteRecord(poll_id={self.poll_id}, option_id={self.option_id}, user_id={self.user_id}, vote_day={self.vote_day})>"
