"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
notification database is reachable, and reports realtime counters.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from lumina import __version__
from lumina.db.engine import engine
from lumina.realtime.hub import RealtimeHub, get_realtime

router = APIRouter()


@router.get("/health")
async def health_check(hub: RealtimeHub = Depends(get_realtime)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check the notification database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks, "realtime": hub.stats()}
