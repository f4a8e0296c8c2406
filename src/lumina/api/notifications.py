"""Notification API routes — durable side of the realtime pushes.

Learn: Pushes are best-effort and never queued, so these routes are how a
client catches up: list what it missed, then mark it read. POST is the
entry point for domain event producers (prayer, post, follow handlers in
the main backend) that want a notification created and pushed.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lumina.auth.dependencies import CurrentIdentity, get_current_user
from lumina.db.engine import get_db
from lumina.realtime.errors import PersistenceError
from lumina.realtime.hub import RealtimeHub, get_realtime
from lumina.schemas.notification import (
    MarkAllReadResult,
    NotificationCreate,
    NotificationList,
    NotificationRead,
)
from lumina.services.notification_store import SqlNotificationStore

router = APIRouter()


def _store(db: AsyncSession = Depends(get_db)) -> SqlNotificationStore:
    return SqlNotificationStore(db)


@router.post("/notifications", response_model=NotificationRead, status_code=201)
async def create_notification(
    body: NotificationCreate,
    store: SqlNotificationStore = Depends(_store),
    hub: RealtimeHub = Depends(get_realtime),
):
    """Persist a notification and push it to the recipient's devices.

    Returns 204 when `actor` is the recipient (nothing to notify).
    """
    svc = hub.notification_service(store)
    try:
        if body.actor is not None:
            notification = await svc.notify_interaction(
                actor=body.actor,
                recipient=body.recipient,
                kind=body.kind,
                message=body.message,
                related_entity_id=body.related_entity_id,
            )
        else:
            notification = await svc.notify(
                recipient=body.recipient,
                kind=body.kind,
                message=body.message,
                related_entity_id=body.related_entity_id,
            )
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if notification is None:
        return Response(status_code=204)
    return notification


@router.get("/notifications", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    store: SqlNotificationStore = Depends(_store),
    identity: CurrentIdentity = Depends(get_current_user),
):
    """The current user's notifications, newest first."""
    items = await store.list_for(identity.user_id, unread_only=unread_only, limit=limit)
    unread = await store.count_unread(identity.user_id)
    return {"unread": unread, "items": items}


@router.post("/notifications/read-all", response_model=MarkAllReadResult)
async def mark_all_read(
    store: SqlNotificationStore = Depends(_store),
    identity: CurrentIdentity = Depends(get_current_user),
):
    return {"updated": await store.mark_all_read(identity.user_id)}


@router.post("/notifications/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: uuid.UUID,
    store: SqlNotificationStore = Depends(_store),
    identity: CurrentIdentity = Depends(get_current_user),
):
    """Mark one of the current user's notifications as read."""
    notification = await store.get(notification_id)
    # Someone else's notification is reported as missing, not forbidden.
    if not notification or notification.recipient != identity.user_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return await store.mark_read(notification_id)
