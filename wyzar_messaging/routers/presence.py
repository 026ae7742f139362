from fastapi import APIRouter, Depends

from wyzar_messaging.utils.dependencies import get_current_user, get_relay
from wyzar_messaging.utils.relay import Relay


router = APIRouter(prefix="/presence", tags=["chat"])


@router.get("/{user_id}")
async def presence(user_id: str, current_user: dict = Depends(get_current_user), relay: Relay = Depends(get_relay)):
    """
    Online status: a live session in this process, or a fresh Redis presence key when the backplane is on.
    """
    return {"user_id": user_id, "online": await relay.is_online(user_id)}
