"""Presence endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_offline_user(client):
    r = await client.get("/api/v1/presence/carol")
    assert r.status_code == 200
    assert r.json() == {"user_identity": "carol", "online": False, "sessions": 0}


@pytest.mark.asyncio
async def test_online_user_with_two_devices(client, connect):
    connect("dave")
    connect("dave")

    r = await client.get("/api/v1/presence/dave")

    assert r.json() == {"user_identity": "dave", "online": True, "sessions": 2}


@pytest.mark.asyncio
async def test_presence_follows_disconnects(client, connect, hub):
    session, _ = connect("dave")
    await hub.gateway.on_disconnect(session.session_id)

    r = await client.get("/api/v1/presence/dave")

    assert r.json()["online"] is False
