"""Realtime error taxonomy.

Learn: Only two of these ever cross a component boundary on purpose:
PersistenceError (propagated to the domain-event caller, because no
notification was durably created) and FrameValidationError (reported back
to the sending client as an `error` frame). The rest are caught and logged
where they happen — a late frame or a dead socket must never take down
delivery to anyone else.
"""


class RealtimeError(Exception):
    """Base class for realtime subsystem errors."""


class DuplicateSessionError(RealtimeError):
    """A session id was registered twice. Internal invariant violation."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already registered")


class UnknownSessionError(RealtimeError):
    """A frame or bind referenced a session that is not (or no longer) registered."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is not registered")


class PersistenceError(RealtimeError):
    """The durable notification store failed to create a record."""


class TransportPushFailure(RealtimeError):
    """Writing a frame to a transport failed (closed or half-closed socket)."""


class FrameValidationError(RealtimeError):
    """An inbound frame had an unknown shape or an invalid payload."""

    def __init__(self, frame_type: str | None, detail: str):
        self.frame_type = frame_type
        self.detail = detail
        super().__init__(f"Invalid {frame_type or 'untyped'} frame: {detail}")
