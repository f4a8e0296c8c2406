"""Transport gateway — the boundary between sockets and the realtime core.

Learn: The gateway is the only component that touches a transport:

- on_connect()    accepts a transport, creates and registers a Session
- on_frame()      validates an inbound frame and dispatches it
- on_disconnect() unregisters the session and lets signaling clean up
- push()          writes one frame to one session, returning False on
                  any transport fault instead of raising

A "transport" is anything with `async send_json(data)`; the FastAPI
WebSocket endpoint wraps Starlette's WebSocket in one, tests use fakes.
"""

import uuid
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

from lumina.events.types import ERROR, PONG
from lumina.realtime.errors import (
    DuplicateSessionError,
    FrameValidationError,
    TransportPushFailure,
    UnknownSessionError,
)
from lumina.realtime.frames import (
    INBOUND_FRAME_TYPES,
    AnswerCallFrame,
    CallUserFrame,
    EndCallFrame,
    JoinFrame,
    PingFrame,
    envelope,
    parse_inbound,
)
from lumina.realtime.sessions import Session, SessionRegistry

logger = structlog.get_logger()

FrameHandler = Callable[[Session, str, Any], Awaitable[None]]


class Transport(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


def new_session_id() -> str:
    return uuid.uuid4().hex


class TransportGateway:
    """Owns transports; routes inbound frames to rooms and signaling."""

    def __init__(
        self,
        registry: SessionRegistry,
        session_id_factory: Callable[[], str] = new_session_id,
        fallback: Optional[FrameHandler] = None,
    ):
        self.registry = registry
        self.session_id_factory = session_id_factory
        self.fallback = fallback
        # Wired by RealtimeHub once the router and coordinator exist.
        self.router = None
        self.signaling = None

    def mount(self, router, signaling) -> None:
        self.router = router
        self.signaling = signaling

    # ─── Connection lifecycle ─────────────────────────────

    def on_connect(
        self, transport: Transport, token_subject: Optional[str] = None
    ) -> Session:
        """Register a new, unbound session. Raises DuplicateSessionError."""
        session = Session(
            session_id=self.session_id_factory(),
            transport=transport,
            token_subject=token_subject,
        )
        try:
            self.registry.register(session)
        except DuplicateSessionError:
            logger.error("gateway.duplicate_session", session_id=session.session_id)
            raise
        logger.info(
            "gateway.connected",
            session_id=session.session_id,
            token_subject=token_subject,
        )
        return session

    async def on_disconnect(self, session_id: str) -> None:
        session = self.registry.unregister(session_id)
        if session is None:
            return
        session.transport = None
        logger.info(
            "gateway.disconnected",
            session_id=session_id,
            user=session.user_identity,
        )
        if self.signaling is not None:
            await self.signaling.on_disconnect(session)

    # ─── Inbound ──────────────────────────────────────────

    async def on_frame(self, session_id: str, frame_type: Any, payload: Any) -> None:
        """Validate and dispatch one inbound frame.

        Late frames from torn-down sessions are logged and dropped.
        Invalid frames are answered with an `error` frame.
        """
        session = self.registry.get(session_id)
        if session is None:
            logger.info(
                "gateway.frame_from_unknown_session",
                session_id=session_id,
                frame=frame_type,
            )
            return

        if not isinstance(frame_type, str):
            logger.info(
                "gateway.invalid_frame_type",
                session_id=session_id,
                frame_type=repr(frame_type),
            )
            await self.push(
                session, ERROR, {"frame": None, "detail": "frame type must be a string"}
            )
            return

        if frame_type not in INBOUND_FRAME_TYPES:
            if self.fallback is not None:
                await self.fallback(session, frame_type, payload)
            else:
                logger.info(
                    "gateway.unhandled_frame",
                    session_id=session_id,
                    frame=frame_type,
                )
            return

        try:
            frame = parse_inbound(frame_type, payload)
        except FrameValidationError as e:
            logger.info(
                "gateway.invalid_frame",
                session_id=session_id,
                frame=frame_type,
                detail=e.detail,
            )
            await self.push(session, ERROR, {"frame": e.frame_type, "detail": e.detail})
            return

        try:
            await self._dispatch(session, frame)
        except UnknownSessionError:
            # Session was torn down while the frame was in flight.
            logger.info("gateway.late_frame", session_id=session_id, frame=frame_type)

    async def _dispatch(self, session: Session, frame) -> None:
        if isinstance(frame, JoinFrame):
            identity = frame.data.user_identity
            if session.token_subject is not None and identity != session.token_subject:
                # Join identity is trusted as sent; the mismatch is only recorded.
                logger.warning(
                    "gateway.join_identity_mismatch",
                    session_id=session.session_id,
                    token_subject=session.token_subject,
                    claimed=identity,
                )
            self.router.join(session.session_id, identity)
        elif isinstance(frame, CallUserFrame):
            await self.signaling.call_user(
                session,
                user_to_call=frame.data.user_to_call,
                signal_data=frame.data.signal_data,
                from_=frame.data.from_,
                name=frame.data.name,
            )
        elif isinstance(frame, AnswerCallFrame):
            await self.signaling.answer_call(session, frame.data.signal, frame.data.to)
        elif isinstance(frame, EndCallFrame):
            await self.signaling.end_call(session, frame.data.to)
        elif isinstance(frame, PingFrame):
            await self.push(session, PONG, {})

    # ─── Outbound ─────────────────────────────────────────

    async def push(self, session: Session, event_type: str, payload: Any) -> bool:
        """Write one frame to one session. Never raises on transport faults."""
        transport = session.transport
        if transport is None:
            return False
        try:
            await transport.send_json(envelope(event_type, payload))
        except (TransportPushFailure, OSError, RuntimeError) as e:
            logger.warning(
                "gateway.push_failed",
                session_id=session.session_id,
                user=session.user_identity,
                event_type=event_type,
                error=str(e),
            )
            return False
        return True
