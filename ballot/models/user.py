"""
User model - registered voters and poll creators.
"""
from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ballot.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from ballot.models.poll import Poll


class User(Base, UUIDMixin, TimestampMixin):
    """
    User model.

    Email is unique and immutable after registration; name and password
    hash may change through profile updates.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Login email address"
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Display name"
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="bcrypt password hash"
    )

    polls: Mapped[List["Poll"]] = relationship(
        back_populates="creator",
        passive_deletes=True,
        lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
