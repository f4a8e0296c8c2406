"""Pydantic schemas for notifications and presence."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from lumina.services.notification_service import NotificationKind


# ─── Notifications ────────────────────────────────────────


class NotificationCreate(BaseModel):
    recipient: str = Field(min_length=1, max_length=64)
    # Who caused it. Nothing is created when actor == recipient.
    actor: Optional[str] = Field(None, max_length=64)
    kind: NotificationKind = NotificationKind.OTHER
    message: str = Field(min_length=1)
    related_entity_id: Optional[str] = Field(None, max_length=64)


class NotificationRead(BaseModel):
    id: uuid.UUID
    recipient: str
    message: str
    kind: str
    related_entity_id: Optional[str]
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    unread: int
    items: list[NotificationRead]


class MarkAllReadResult(BaseModel):
    updated: int


# ─── Presence ─────────────────────────────────────────────


class PresenceRead(BaseModel):
    user_identity: str
    online: bool
    sessions: int
