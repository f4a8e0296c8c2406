"""Session registry — which live connections belong to which user.

Learn: A user can have several tabs or devices open at once, so the
registry maps one identity to a *set* of sessions. Rooms are never stored
anywhere: a room's membership is always derived from this map, which makes
the registry the only shared mutable state in the realtime layer.

All mutations are plain synchronous methods with no await inside them.
On a single asyncio event loop that makes every register/bind/unregister
atomic, so a user's two tabs connecting and one immediately closing can
never lose an update.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from lumina.realtime.errors import DuplicateSessionError, UnknownSessionError

logger = structlog.get_logger()


@dataclass(eq=False)
class Session:
    """One live transport connection, possibly not yet bound to a user.

    Learn: `transport` is owned by TransportGateway. Nothing else may
    write to it; other components only pass Session objects around.
    eq=False keeps identity hashing so sessions can live in frozensets.
    """

    session_id: str
    transport: Any = field(default=None, repr=False)
    user_identity: Optional[str] = None
    # JWT subject the socket authenticated as, if it sent a token.
    token_subject: Optional[str] = None
    connected_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_bound(self) -> bool:
        return self.user_identity is not None


class SessionRegistry:
    """In-memory map of identity → live sessions. No I/O."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._by_identity: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    # ─── Mutations ────────────────────────────────────────

    def register(self, session: Session) -> None:
        """Add a freshly accepted session (not yet bound to anyone)."""
        if session.session_id in self._sessions:
            raise DuplicateSessionError(session.session_id)
        self._sessions[session.session_id] = session
        logger.debug("sessions.registered", session_id=session.session_id)

    def bind(self, session_id: str, user_identity: str) -> None:
        """Associate a session with a user (the `join` operation).

        Rebinding to another identity moves the session out of the old
        identity's set. Binding to the same identity again is a no-op.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)

        previous = session.user_identity
        if previous == user_identity:
            return
        if previous is not None:
            self._discard(previous, session_id)

        session.user_identity = user_identity
        self._by_identity.setdefault(user_identity, set()).add(session_id)
        logger.info(
            "sessions.bound",
            session_id=session_id,
            user=user_identity,
            previous_user=previous,
        )

    def unregister(self, session_id: str) -> Optional[Session]:
        """Remove a session. Returns it, or None if it was already gone.

        Disconnect can race with natural teardown, so removing an unknown
        session is not an error.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        if session.user_identity is not None:
            self._discard(session.user_identity, session_id)
        logger.debug(
            "sessions.unregistered",
            session_id=session_id,
            user=session.user_identity,
        )
        return session

    def _discard(self, user_identity: str, session_id: str) -> None:
        ids = self._by_identity.get(user_identity)
        if not ids:
            return
        ids.discard(session_id)
        if not ids:
            del self._by_identity[user_identity]

    # ─── Reads (always safe, return snapshots) ────────────

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def live_sessions_for(self, user_identity: str) -> frozenset[Session]:
        ids = self._by_identity.get(user_identity, ())
        return frozenset(self._sessions[sid] for sid in ids)

    def is_online(self, user_identity: str) -> bool:
        return bool(self._by_identity.get(user_identity))

    def online_identities(self) -> frozenset[str]:
        return frozenset(self._by_identity)
