"""Call signaling — two-party offer/answer/end relay over user rooms.

Learn: The server never looks inside the signal blobs (SDP offers,
answers, ICE candidates). It only relays them between two user rooms and
tracks just enough state per (caller, callee) pair to clean up:

    Idle ──callUser──▶ Ringing ──answerCall──▶ Connected
      ▲                   │                        │
      └──── endCall / disconnect / ring timeout ◀──┘

"Ended" is not stored: ending a call simply drops the pair, which puts it
back to Idle for the next attempt.

Trust boundary: `from`, `to` and `userToCall` are taken from the client as
sent. A mismatch with the session's own identity is logged, not rejected.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog

from lumina.events.types import (
    CALL_ACCEPTED,
    CALL_ENDED,
    END_REASON_DISCONNECT,
    END_REASON_TIMEOUT,
    INCOMING_CALL,
)
from lumina.realtime.rooms import RoomRouter
from lumina.realtime.sessions import Session

logger = structlog.get_logger()


class CallStatus(str, Enum):
    IDLE = "idle"
    RINGING = "ringing"
    CONNECTED = "connected"


@dataclass
class Call:
    """An in-progress call between two identities. Never persisted."""

    caller: str
    callee: str
    display_name: str
    caller_session_id: str
    status: CallStatus = CallStatus.RINGING
    callee_session_id: Optional[str] = None
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    timer: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.caller, self.callee)


class SignalingCoordinator:
    """Relays call frames and tracks Ringing/Connected pairs."""

    def __init__(
        self,
        router: RoomRouter,
        ring_timeout: Optional[float] = 45.0,
        end_call_on_disconnect: bool = True,
    ):
        self.router = router
        self.ring_timeout = ring_timeout or None
        self.end_call_on_disconnect = end_call_on_disconnect
        self._calls: dict[tuple[str, str], Call] = {}

    # ─── Inspection ───────────────────────────────────────

    def status(self, caller: str, callee: str) -> CallStatus:
        call = self._calls.get((caller, callee))
        return call.status if call else CallStatus.IDLE

    def active_calls(self) -> list[Call]:
        return list(self._calls.values())

    # ─── Inbound frames ───────────────────────────────────

    async def call_user(
        self,
        session: Session,
        user_to_call: str,
        signal_data: Any,
        from_: str,
        name: str,
    ) -> int:
        """Idle → Ringing: ring every device of `user_to_call`."""
        if not session.is_bound:
            logger.warning(
                "signaling.unbound_caller",
                session_id=session.session_id,
                callee=user_to_call,
            )
            return 0
        if from_ != session.user_identity:
            logger.warning(
                "signaling.from_mismatch",
                session_id=session.session_id,
                user=session.user_identity,
                claimed_from=from_,
            )

        # Track before emitting so an answer that races the emit finds the pair.
        self._drop((from_, user_to_call))
        call = Call(
            caller=from_,
            callee=user_to_call,
            display_name=name,
            caller_session_id=session.session_id,
        )
        self._calls[call.key] = call

        delivered = await self.router.emit(
            self.router.room_name_for(user_to_call),
            INCOMING_CALL,
            {"signal": signal_data, "from": from_, "name": name},
        )

        if delivered == 0:
            # Callee offline: no retry, and the caller is not told.
            if self._calls.get(call.key) is call:
                self._drop(call.key)
            logger.info("signaling.callee_offline", caller=from_, callee=user_to_call)
            return 0

        if (
            self.ring_timeout
            and self._calls.get(call.key) is call
            and call.status is CallStatus.RINGING
        ):
            call.timer = asyncio.create_task(self._expire_ringing(call))

        logger.info(
            "signaling.ringing",
            caller=from_,
            callee=user_to_call,
            devices=delivered,
        )
        return delivered

    async def answer_call(self, session: Session, signal: Any, to: str) -> int:
        """Ringing → Connected: hand the callee's answer back to the caller."""
        me = session.user_identity
        call = self._calls.get((to, me)) if me is not None else None

        if call is None:
            logger.info(
                "signaling.answer_without_call",
                session_id=session.session_id,
                user=me,
                to=to,
            )
        elif call.status is CallStatus.RINGING:
            call.status = CallStatus.CONNECTED
            call.callee_session_id = session.session_id
            self._cancel_timer(call)
            logger.info("signaling.connected", caller=to, callee=me)

        return await self.router.emit(
            self.router.room_name_for(to), CALL_ACCEPTED, signal
        )

    async def end_call(self, session: Session, to: str) -> int:
        """Any state → Idle: tell the peer the call is over."""
        me = session.user_identity
        if me is not None:
            self._drop((me, to))
            self._drop((to, me))
        logger.info("signaling.ended", user=me, peer=to)
        return await self.router.emit(self.router.room_name_for(to), CALL_ENDED, {})

    # ─── Lifecycle events ─────────────────────────────────

    async def on_disconnect(self, session: Session) -> None:
        """End calls that lost one side when `session` went away.

        Must run after the session was unregistered, so presence checks
        already reflect the disconnect.
        """
        if not self.end_call_on_disconnect or not session.is_bound:
            return

        identity = session.user_identity
        registry = self.router.registry
        for call in list(self._calls.values()):
            # An earlier iteration awaited; another disconnect may have ended it.
            if self._calls.get(call.key) is not call:
                continue
            if call.caller_session_id == session.session_id:
                peer = call.callee
            elif call.callee_session_id == session.session_id:
                peer = call.caller
            elif (
                call.status is CallStatus.RINGING
                and call.callee == identity
                and not registry.is_online(identity)
            ):
                peer = call.caller
            else:
                continue

            self._drop(call.key)
            logger.info(
                "signaling.ended_by_disconnect",
                caller=call.caller,
                callee=call.callee,
                session_id=session.session_id,
            )
            await self.router.emit(
                self.router.room_name_for(peer),
                CALL_ENDED,
                {"reason": END_REASON_DISCONNECT},
            )

    async def _expire_ringing(self, call: Call) -> None:
        await asyncio.sleep(self.ring_timeout)
        if self._calls.get(call.key) is not call or call.status is not CallStatus.RINGING:
            return
        self._drop(call.key)
        logger.info("signaling.ring_timeout", caller=call.caller, callee=call.callee)
        payload = {"reason": END_REASON_TIMEOUT}
        await self.router.emit(self.router.room_name_for(call.callee), CALL_ENDED, payload)
        await self.router.emit(self.router.room_name_for(call.caller), CALL_ENDED, payload)

    # ─── Helpers ──────────────────────────────────────────

    def _drop(self, key: tuple[str, str]) -> None:
        call = self._calls.pop(key, None)
        if call is not None:
            self._cancel_timer(call)

    @staticmethod
    def _cancel_timer(call: Call) -> None:
        timer, call.timer = call.timer, None
        if timer is None:
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:  # no running loop
            current = None
        if timer is not current:
            timer.cancel()

    def shutdown(self) -> None:
        """Cancel pending ring timers and forget every call."""
        for call in self._calls.values():
            self._cancel_timer(call)
        self._calls.clear()
