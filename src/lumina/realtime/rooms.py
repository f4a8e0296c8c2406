"""Room router — fan-out of one event to every live session in a room.

Learn: A room is a named delivery group. In Lumina every user "joins their
own room", so by default the room name *is* the user identity. That
convention is a constructor argument (`room_name_for`) rather than a
hard-coded assumption, so group rooms can be added later without changing
emit()/join().

Delivery is best-effort: an offline recipient gives a delivery count of 0
(the normal case, not an error), and one dead socket never stops delivery
to the user's other devices.
"""

import asyncio
from typing import Any, Callable, Protocol

import structlog

from lumina.realtime.sessions import Session, SessionRegistry

logger = structlog.get_logger()


class Pusher(Protocol):
    """Anything that can write one frame to one session (TransportGateway)."""

    async def push(self, session: Session, event_type: str, payload: Any) -> bool:
        ...


def identity_room(user_identity: str) -> str:
    """Default room mapping: one room per user, named after the user."""
    return user_identity


class RoomRouter:
    """Resolves room names to live sessions and emits frames to them."""

    def __init__(
        self,
        registry: SessionRegistry,
        pusher: Pusher,
        room_name_for: Callable[[str], str] = identity_room,
    ):
        self.registry = registry
        self.pusher = pusher
        self.room_name_for = room_name_for

    def join(self, session_id: str, room_name: str) -> None:
        """Put a session into a room by binding it to the room's identity."""
        self.registry.bind(session_id, room_name)

    def members(self, room_name: str) -> frozenset[Session]:
        """Snapshot of the live sessions currently in a room."""
        if self.room_name_for is identity_room:
            return self.registry.live_sessions_for(room_name)
        return frozenset(
            session
            for identity in self.registry.online_identities()
            if self.room_name_for(identity) == room_name
            for session in self.registry.live_sessions_for(identity)
        )

    async def emit(self, room_name: str, event_type: str, payload: Any) -> int:
        """Push {event_type, payload} to every session in the room.

        Returns how many sessions were pushed to successfully.
        """
        sessions = self.members(room_name)
        if not sessions:
            logger.debug("rooms.emit_offline", room=room_name, event_type=event_type)
            return 0

        results = await asyncio.gather(
            *(self.pusher.push(s, event_type, payload) for s in sessions),
            return_exceptions=True,
        )

        delivered = 0
        for session, result in zip(sessions, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "rooms.push_error",
                    room=room_name,
                    event_type=event_type,
                    session_id=session.session_id,
                    error=str(result),
                )
            elif result:
                delivered += 1

        logger.debug(
            "rooms.emit",
            room=room_name,
            event_type=event_type,
            sessions=len(sessions),
            delivered=delivered,
        )
        return delivered
