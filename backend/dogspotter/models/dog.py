"""
Dog Spotter Backend — Dog (Sighting) SQLAlchemy Model
======================================================

What:  ORM model for the `dogs` table: one reported lost/found dog with its
       location and descriptive metadata.
Who:   DogService (CRUD, search, map), UserService (stats), Alembic.

Table Design Rationale:
    - latitude/longitude: plain DOUBLE columns in decimal degrees (WGS84).
      Range is NOT constrained at the database level.
    - status: free text, "found" by default ("lost" is the other value the
      clients send)
    - user_id: owner, set once at creation and never part of an update patch

Indexes (mirroring the query patterns):
    - dogs_user_id_idx:           "my dogs" listing, ownership-scoped updates
    - dogs_status_idx:            status filter in search
    - dogs_latitude_longitude_idx: map window and radius bounding box
    - dogs_created_at_idx (DESC): every listing is newest first
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dogspotter.database import Base

if TYPE_CHECKING:
    from dogspotter.models.user import User

DEFAULT_STATUS = "found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Dog(Base):
    """
    A dog sighting.

    Lifecycle:
        1. Created by an authenticated user (breed possibly filled in later
           by the ML service)
        2. Updated only by its owner
        3. Deleted by its owner, or together with the owner's account
    """

    __tablename__ = "dogs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    breed: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_STATUS,
        server_default=text(f"'{DEFAULT_STATUS}'"),
    )

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

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )

    owner: Mapped["User"] = relationship(back_populates="dogs")

    __table_args__ = (
        Index("dogs_user_id_idx", "user_id"),
        Index("dogs_status_idx", "status"),
        Index("dogs_latitude_longitude_idx", "latitude", "longitude"),
        Index("dogs_created_at_idx", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Dog(id={self.id}, status='{self.status}', "
            f"lat={self.latitude}, lon={self.longitude})>"
        )
