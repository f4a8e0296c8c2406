"""RealtimeHub — builds and wires the realtime components for one process.

Learn: There is no module-level socket server. create_app() builds one hub,
stores it on `app.state.realtime`, and request handlers reach it through
the `get_realtime` dependency. Tests build their own hubs directly.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request

from lumina.realtime.gateway import FrameHandler, TransportGateway
from lumina.realtime.rooms import RoomRouter, identity_room
from lumina.realtime.sessions import SessionRegistry
from lumina.realtime.signaling import SignalingCoordinator
from lumina.services.notification_service import NotificationService
from lumina.services.notification_store import NotificationStore


@dataclass
class RealtimeHub:
    registry: SessionRegistry
    gateway: TransportGateway
    router: RoomRouter
    signaling: SignalingCoordinator

    def notification_service(self, store: NotificationStore) -> NotificationService:
        """A NotificationService pushing through this hub's router."""
        return NotificationService(store=store, router=self.router)

    def stats(self) -> dict:
        return {
            "sessions": len(self.registry),
            "online_users": len(self.registry.online_identities()),
            "active_calls": len(self.signaling.active_calls()),
        }

    def shutdown(self) -> None:
        self.signaling.shutdown()


def build_realtime(
    ring_timeout_seconds: Optional[float] = 45.0,
    end_call_on_disconnect: bool = True,
    room_name_for: Callable[[str], str] = identity_room,
    fallback: Optional[FrameHandler] = None,
) -> RealtimeHub:
    registry = SessionRegistry()
    gateway = TransportGateway(registry, fallback=fallback)
    router = RoomRouter(registry, gateway, room_name_for=room_name_for)
    signaling = SignalingCoordinator(
        router,
        ring_timeout=ring_timeout_seconds,
        end_call_on_disconnect=end_call_on_disconnect,
    )
    gateway.mount(router, signaling)
    return RealtimeHub(
        registry=registry,
        gateway=gateway,
        router=router,
        signaling=signaling,
    )


def get_realtime(request: Request) -> RealtimeHub:
    """FastAPI dependency — the hub built by create_app()."""
    return request.app.state.realtime
