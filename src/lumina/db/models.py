"""SQLAlchemy ORM models — the durable side of the notification dual-write.

Learn: Only notifications are stored by this service. Posts, prayers and
users live in the main Lumina document store; we keep their ids as opaque
strings (`recipient`, `related_entity_id`) and never join against them.

Column types are the portable SQLAlchemy 2.0 ones (Uuid, Boolean,
DateTime) so the same model runs on PostgreSQL in production and on
SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class Notification(Base):
    """A notification for one user (like, comment, prayer, follow, ...).

    Learn: This row is the source of truth. The realtime push that goes
    out after it is created is advisory — if nobody is online the user
    still finds the notification here on their next page load.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_created", "recipient", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    recipient: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    related_entity_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
