"""Presence API — is a user connected right now?"""

from fastapi import APIRouter, Depends

from lumina.realtime.hub import RealtimeHub, get_realtime
from lumina.schemas.notification import PresenceRead

router = APIRouter()


@router.get("/presence/{user_identity}", response_model=PresenceRead)
async def get_presence(
    user_identity: str,
    hub: RealtimeHub = Depends(get_realtime),
):
    sessions = hub.registry.live_sessions_for(user_identity)
    return PresenceRead(
        user_identity=user_identity,
        online=bool(sessions),
        sessions=len(sessions),
    )
