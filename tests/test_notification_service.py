"""NotificationService tests — the persist-then-push contract."""

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from lumina.realtime.errors import PersistenceError
from lumina.services.notification_service import NotificationKind, NotificationService


class RecordingRouter:
    """Wraps a real router and remembers every emit and its delivery count."""

    def __init__(self, router):
        self._router = router
        self.room_name_for = router.room_name_for
        self.emits = []

    async def emit(self, room, event_type, payload):
        delivered = await self._router.emit(room, event_type, payload)
        self.emits.append((room, event_type, payload, delivered))
        return delivered


@pytest.mark.asyncio
async def test_persistence_failure_never_pushes(hub, failing_store):
    router = RecordingRouter(hub.router)
    router.emit = AsyncMock()
    svc = NotificationService(failing_store, router)

    with pytest.raises(PersistenceError):
        await svc.notify("bob", "like", "Alice liked your post", "post1")

    router.emit.assert_not_called()


@pytest.mark.asyncio
async def test_offline_recipient_still_gets_durable_record(hub, stub_store):
    router = RecordingRouter(hub.router)
    svc = NotificationService(stub_store, router)

    n = await svc.notify("carol", "like", "X liked your post", "post123")

    assert len(stub_store.created) == 1
    assert stub_store.created[0] is n
    assert n.recipient == "carol"
    assert n.kind == "like"
    assert n.related_entity_id == "post123"
    assert n.is_read is False
    assert n.id is not None and n.created_at is not None
    assert [e[3] for e in router.emits] == [0]


@pytest.mark.asyncio
async def test_every_device_receives_the_push(hub, connect, stub_store):
    _, d1 = connect("dave")
    _, d2 = connect("dave")
    svc = hub.notification_service(stub_store)

    n = await svc.notify("dave", NotificationKind.PRAYER, "Erin prayed for you", "prayer9")

    expected = {
        "message": "Erin prayed for you",
        "kind": "prayer",
        "relatedEntityId": "prayer9",
        "notificationId": str(n.id),
    }
    assert d1.of_type("newNotification") == [expected]
    assert d2.of_type("newNotification") == [expected]


@pytest.mark.asyncio
async def test_created_log_reports_devices_reached(hub, connect, stub_store):
    connect("dave")
    connect("dave")
    connect("dave", fail=True)
    svc = hub.notification_service(stub_store)

    with capture_logs() as logs:
        await svc.notify("dave", "follow", "Finn followed you")

    events = [entry["event"] for entry in logs]
    assert "notifications.push_failed" not in events
    created = next(entry for entry in logs if entry["event"] == "notifications.created")
    assert created["delivered"] == 2


@pytest.mark.asyncio
async def test_push_failure_does_not_fail_notify(hub, stub_store):
    router = RecordingRouter(hub.router)
    router.emit = AsyncMock(side_effect=RuntimeError("router exploded"))
    svc = NotificationService(stub_store, router)

    n = await svc.notify("bob", "comment", "New comment", "post2")

    assert stub_store.created == [n]
    router.emit.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_kind_rejected_before_persisting(hub, stub_store):
    svc = hub.notification_service(stub_store)
    with pytest.raises(ValueError):
        await svc.notify("bob", "poke", "Someone poked you")
    assert stub_store.created == []


@pytest.mark.asyncio
async def test_sequential_notifies_persist_in_call_order(hub, stub_store):
    svc = hub.notification_service(stub_store)
    await svc.notify("bob", "follow", "first")
    await svc.notify("bob", "follow", "second")
    assert [n.message for n in stub_store.created] == ["first", "second"]


@pytest.mark.asyncio
async def test_push_goes_out_after_the_record_exists(hub, connect, stub_store):
    """The store sees the record before any transport sees the frame."""
    order = []
    _, transport = connect("bob")
    original_send = transport.send_json

    async def tracking_send(data):
        order.append("push")
        await original_send(data)

    transport.send_json = tracking_send

    original_create = stub_store.create

    async def tracking_create(notification):
        order.append("persist")
        return await original_create(notification)

    stub_store.create = tracking_create

    await hub.notification_service(stub_store).notify("bob", "like", "hi")
    assert order == ["persist", "push"]


@pytest.mark.asyncio
async def test_interaction_on_own_content_creates_nothing(hub, connect, stub_store):
    _, tab = connect("bob")
    svc = hub.notification_service(stub_store)

    assert await svc.notify_interaction("bob", "bob", "prayer", "You prayed for yourself") is None
    assert stub_store.created == []
    assert tab.frames == []


@pytest.mark.asyncio
async def test_interaction_by_someone_else_notifies(hub, stub_store):
    svc = hub.notification_service(stub_store)
    n = await svc.notify_interaction("alice", "bob", "like", "Alice liked your post", "post1")
    assert n is not None and n.recipient == "bob"
    assert stub_store.created == [n]
