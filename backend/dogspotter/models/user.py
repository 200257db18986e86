"""
Dog Spotter Backend — User SQLAlchemy Model
============================================

What:  ORM model for the `users` table (accounts that report sightings).
Who:   AuthService, UserService and the auth dependencies.

Table Design Rationale:
    - UUID primary key: non-sequential, cannot be enumerated
    - email: unique, always stored lowercase (lookups lowercase the input too)
    - password: passlib hash string, never the plain password
    - dogs: 1:N, deleting a user deletes their sightings (ON DELETE CASCADE)
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dogspotter.database import Base

if TYPE_CHECKING:
    from dogspotter.models.dog import Dog


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered account. Owns zero or more Dog sightings."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login email, stored lowercase",
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Password hash (passlib)",
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # passive_deletes: rely on the FK's ON DELETE CASCADE instead of loading
    # every sighting before deleting the account
    dogs: Mapped[List["Dog"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
