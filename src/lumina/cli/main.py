"""Lumina CLI — poke the realtime service from a terminal.

Usage:
    lumina health                                  # Server, database, realtime counters
    lumina presence alice                          # Is alice connected?
    lumina notify bob "Alice prayed for you" -k prayer -r prayer123
    lumina notifications --unread                  # Current user's notifications
    lumina read 6c1e...                            # Mark one read
    lumina read-all                                # Mark everything read

Auth: set LUMINA_TOKEN to a bearer token issued by the main backend.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"
KINDS = ["like", "comment", "prayer", "follow", "other"]


def _api_url() -> str:
    return os.environ.get("LUMINA_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str]) -> httpx.AsyncClient:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=15.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(token: Optional[str], method: str, path: str, **kwargs) -> dict:
    """Run one API call and return the JSON body, exiting on HTTP errors."""

    async def go():
        async with _client(token) as c:
            return await c.request(method, f"/api/v1{path}", **kwargs)

    try:
        resp = asyncio.run(go())
    except httpx.HTTPError as e:
        click.secho(f"Error: cannot reach {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)

    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        click.secho(f"Error {resp.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return resp.json()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--token",
    envvar="LUMINA_TOKEN",
    default=None,
    help="Bearer token (defaults to $LUMINA_TOKEN).",
)
@click.pass_context
def cli(ctx: click.Context, token: Optional[str]):
    """Lumina realtime service CLI."""
    ctx.obj = {"token": token}


@cli.command()
@click.pass_obj
def health(obj):
    """Server, database and realtime status."""
    data = _request(obj["token"], "GET", "/health")
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(f"{data.get('status')}  v{data.get('version')}", fg=color, bold=True)
    click.echo(f"  database: {data.get('database')}")
    for key, value in (data.get("realtime") or {}).items():
        click.echo(f"  {key}: {value}")


@cli.command()
@click.argument("user")
@click.pass_obj
def presence(obj, user: str):
    """Show whether USER has live sessions."""
    data = _request(obj["token"], "GET", f"/presence/{user}")
    if data["online"]:
        click.secho(f"{user} is online ({data['sessions']} session(s))", fg="green")
    else:
        click.secho(f"{user} is offline", fg="bright_black")


@cli.command()
@click.argument("recipient")
@click.argument("message")
@click.option("--kind", "-k", type=click.Choice(KINDS), default="other")
@click.option("--related", "-r", "related_entity_id", default=None, help="Related post/prayer/event id.")
@click.pass_obj
def notify(obj, recipient: str, message: str, kind: str, related_entity_id: Optional[str]):
    """Create a notification for RECIPIENT and push it."""
    data = _request(
        obj["token"],
        "POST",
        "/notifications",
        json={
            "recipient": recipient,
            "kind": kind,
            "message": message,
            "related_entity_id": related_entity_id,
        },
    )
    click.secho(f"Created notification {data['id']}", fg="green")


@cli.command()
@click.option("--unread", is_flag=True, help="Only unread notifications.")
@click.option("--limit", default=20, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output.")
@click.pass_obj
def notifications(obj, unread: bool, limit: int, as_json: bool):
    """List the current user's notifications."""
    data = _request(
        obj["token"],
        "GET",
        "/notifications",
        params={"unread_only": str(unread).lower(), "limit": limit},
    )
    if as_json:
        click.echo(_pretty_json(data))
        return

    click.secho(f"{data['unread']} unread", bold=True)
    for n in data["items"]:
        marker = " " if n["is_read"] else "*"
        click.echo(f"{marker} {n['created_at'][:19]}  [{n['kind']:<7}] {n['message']}")
        click.secho(f"    {n['id']}", fg="bright_black")


@cli.command()
@click.argument("notification_id")
@click.pass_obj
def read(obj, notification_id: str):
    """Mark one notification as read."""
    _request(obj["token"], "POST", f"/notifications/{notification_id}/read")
    click.secho("Marked read", fg="green")


@cli.command("read-all")
@click.pass_obj
def read_all(obj):
    """Mark every notification as read."""
    data = _request(obj["token"], "POST", "/notifications/read-all")
    click.secho(f"Marked {data['updated']} notification(s) read", fg="green")


if __name__ == "__main__":
    cli()
