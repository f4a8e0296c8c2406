"""Notification service — persist first, then push.

Learn: This is the dual-write contract every domain event goes through
("X prayed for your request", "Y liked your post", ...):

1. Create the Notification row in the durable store. If that fails the
   caller gets PersistenceError and *nothing* is pushed — a client must
   never see a realtime alert for something that vanishes on reload.
2. Emit `newNotification` to the recipient's room. This is best-effort:
   whether zero or five devices got it, the call has already succeeded,
   and a failed emit never rolls back the stored row.

Two notify() calls awaited one after the other are persisted in that
order. Push order across *concurrent* calls is not guaranteed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog

from lumina.db.models import Notification, new_uuid
from lumina.events.types import NEW_NOTIFICATION
from lumina.realtime.rooms import RoomRouter
from lumina.services.notification_store import NotificationStore

logger = structlog.get_logger()


class NotificationKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    PRAYER = "prayer"
    FOLLOW = "follow"
    OTHER = "other"


def notification_payload(notification: Notification) -> dict:
    """Body of the `newNotification` frame."""
    return {
        "message": notification.message,
        "kind": notification.kind,
        "relatedEntityId": notification.related_entity_id,
        "notificationId": str(notification.id),
    }


class NotificationService:
    """Creates notifications and pushes them to the recipient's devices."""

    def __init__(self, store: NotificationStore, router: RoomRouter):
        self.store = store
        self.router = router

    async def notify(
        self,
        recipient: str,
        kind: NotificationKind | str,
        message: str,
        related_entity_id: Optional[str] = None,
    ) -> Notification:
        """Persist a notification, then push it. Raises PersistenceError."""
        kind = NotificationKind(kind)

        notification = Notification(
            id=new_uuid(),
            recipient=recipient,
            message=message,
            kind=kind.value,
            related_entity_id=related_entity_id,
            is_read=False,
            created_at=datetime.now(timezone.utc),
        )

        # Step 1: durable record. PersistenceError propagates untouched.
        notification = await self.store.create(notification)

        # Step 2: advisory push. Never fails the call.
        try:
            delivered = await self.router.emit(
                self.router.room_name_for(recipient),
                NEW_NOTIFICATION,
                notification_payload(notification),
            )
        except Exception as e:
            logger.warning(
                "notifications.push_failed",
                notification_id=str(notification.id),
                recipient=recipient,
                error=str(e),
            )
            delivered = 0

        logger.info(
            "notifications.created",
            notification_id=str(notification.id),
            recipient=recipient,
            kind=kind.value,
            delivered=delivered,
        )
        return notification

    async def notify_interaction(
        self,
        actor: str,
        recipient: str,
        kind: NotificationKind | str,
        message: str,
        related_entity_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """notify() for "actor did something to recipient's content".

        Praying for or liking your own post creates nothing; returns None.
        """
        if actor == recipient:
            return None
        return await self.notify(recipient, kind, message, related_entity_id)
