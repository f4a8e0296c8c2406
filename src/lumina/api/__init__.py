"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health is open; everything else needs a token.
"""

from fastapi import APIRouter, Depends

from lumina.api.health import router as health_router
from lumina.api.notifications import router as notifications_router
from lumina.api.presence import router as presence_router
from lumina.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])

# Protected routes require a valid JWT
api_router.include_router(notifications_router, tags=["notifications"], dependencies=_auth)
api_router.include_router(presence_router, tags=["presence"], dependencies=_auth)
