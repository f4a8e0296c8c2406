"""Durable notification store — the persistence half of the dual-write.

Learn: NotificationService only needs `create()`. The read/mark-read
methods exist for the REST API, which is how clients catch up on
anything they missed while offline (pushes are never queued).

Any SQLAlchemy or connection failure during create() is rolled back and
re-raised as PersistenceError, so callers never have to know which
database is behind the store.
"""

import uuid
from typing import Optional, Protocol

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lumina.db.models import Notification
from lumina.realtime.errors import PersistenceError

logger = structlog.get_logger()


class NotificationStore(Protocol):
    """What NotificationService needs from durable storage."""

    async def create(self, notification: Notification) -> Notification:
        ...


class SqlNotificationStore:
    """NotificationStore backed by an AsyncSession (one per request)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, notification: Notification) -> Notification:
        try:
            self.db.add(notification)
            await self.db.commit()
        except (SQLAlchemyError, OSError) as e:
            # Driver-level connect failures (refused, reset) arrive unwrapped.
            try:
                await self.db.rollback()
            except (SQLAlchemyError, OSError) as rollback_error:
                logger.warning(
                    "notifications.rollback_failed", error=str(rollback_error)
                )
            logger.error(
                "notifications.persist_failed",
                recipient=notification.recipient,
                kind=notification.kind,
                error=str(e),
            )
            raise PersistenceError(f"Could not store notification: {e}") from e
        return notification

    # ─── Reads ────────────────────────────────────────────

    async def get(self, notification_id: uuid.UUID) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        return result.scalars().first()

    async def list_for(
        self,
        recipient: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """Newest first, the way the notification drawer shows them."""
        query = (
            select(Notification)
            .where(Notification.recipient == recipient)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_unread(self, recipient: str) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.recipient == recipient,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    # ─── Read-state updates ───────────────────────────────

    async def mark_read(self, notification_id: uuid.UUID) -> Optional[Notification]:
        notification = await self.get(notification_id)
        if not notification:
            return None
        notification.is_read = True
        await self.db.commit()
        return notification

    async def mark_all_read(self, recipient: str) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.recipient == recipient,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount or 0
