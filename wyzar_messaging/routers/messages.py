import asyncio
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from redis.exceptions import RedisError

from wyzar_messaging.config import Settings
from wyzar_messaging.database.connection import mongo_db_dependency
from wyzar_messaging.repositories.conversation_repository import ConversationRepository
from wyzar_messaging.repositories.message_repository import MessageRepository
from wyzar_messaging.repositories.product_repository import ProductRepository
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.schemas.message import (
    MessagePage,
    MessagePublic,
    MessageTemplate,
    SendMessageRequest,
    SendMessageResponse,
)
from wyzar_messaging.services.chat_service import ChatService
from wyzar_messaging.utils.dependencies import get_app_settings, get_current_user, get_relay, resolve_user
from wyzar_messaging.utils.realtime_bus import user_channel
from wyzar_messaging.utils.relay import STOP_TYPING, TYPING, Relay


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["chat"])

PRESENCE_TTL_SECONDS = 60


def get_chat_service(db=Depends(mongo_db_dependency), settings: Settings = Depends(get_app_settings)) -> ChatService:
    return ChatService(
        MessageRepository(db),
        ConversationRepository(db),
        UserRepository(db),
        ProductRepository(db),
        settings,
    )


@router.post("/send", response_model=SendMessageResponse)
async def send_message(
    payload: SendMessageRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    relay: Relay = Depends(get_relay),
):
    saved, conversation_id = await service.send_message(
        current_user["_id"],
        payload.receiver_id,
        payload.message,
        product_id=payload.product_id,
        attachments=payload.attachments,
    )
    message = MessagePublic.model_validate(saved)
    await relay.message_created(conversation_id, message.model_dump(mode="json"))
    return SendMessageResponse(message=message, conversation_id=conversation_id)


@router.get("/conversation/{conversation_id}", response_model=MessagePage)
async def get_conversation_messages(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=200),
    cursor: Optional[str] = None,
    mark_read: bool = True,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    messages, next_cursor = await service.get_history(
        conversation_id, current_user["_id"], limit=limit, cursor=cursor, mark_read=mark_read
    )
    return {"items": messages, "next_cursor": next_cursor}


@router.post("/mark-read/{conversation_id}")
async def mark_read(conversation_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    count = await service.mark_read(conversation_id, current_user["_id"])
    return {"updated": count}


@router.get("/unread-count")
async def unread_count(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    return {"unread_count": await service.total_unread(current_user["_id"])}


@router.get("/templates", response_model=List[MessageTemplate])
async def message_templates(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    return service.get_templates()


@router.get("/search")
async def search_messages(
    query: str = "",
    conversation_id: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    items = await service.search_messages(current_user["_id"], query, conversation_id)
    return {"items": [MessagePublic.model_validate(m) for m in items]}


async def _presence_heartbeat(bus, user_id: str) -> None:
    while True:
        try:
            await bus.set_presence(user_id, ttl_seconds=PRESENCE_TTL_SECONDS)
        except Exception:
            logger.warning("Presence heartbeat for %s failed", user_id, exc_info=True)
        await asyncio.sleep(PRESENCE_TTL_SECONDS / 2)


async def _handle_client_frame(relay: Relay, convo_repo: ConversationRepository, user_id: str, raw: str) -> None:
    try:
        frame = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring non-JSON frame from %s", user_id)
        return
    if not isinstance(frame, dict) or frame.get("event") not in (TYPING, STOP_TYPING):
        return
    data = frame.get("data") or {}
    conversation_id = data.get("conversation_id") or data.get("conversationId")
    convo = await convo_repo.get_by_id(conversation_id) if isinstance(conversation_id, str) else None
    if convo is None or user_id not in convo["participants"]:
        return
    if frame["event"] == TYPING:
        peer_id = next(p for p in convo["participants"] if p != user_id)
        await relay.typing.start(convo["_id"], user_id, peer_id)
    else:
        await relay.typing.stop(convo["_id"], user_id)


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, db=Depends(mongo_db_dependency)):
    # bearer token travels as ?token=...
    settings: Settings = websocket.app.state.settings
    relay: Relay = websocket.app.state.relay
    user = await resolve_user(websocket.query_params.get("token"), settings, db)
    if user is None:
        await websocket.close(code=4401)
        return

    user_id = user["_id"]
    await relay.registry.connect(user_id, websocket)
    logger.info("Realtime session opened for %s", user_id)
    subscription = None
    tasks = []
    convo_repo = ConversationRepository(db)
    try:
        if relay.bus.enabled:
            subscription = await relay.bus.subscribe(user_channel(user_id), websocket.send_text)
            tasks.append(asyncio.create_task(subscription.run()))
            tasks.append(asyncio.create_task(_presence_heartbeat(relay.bus, user_id)))
        while True:
            raw = await websocket.receive_text()
            await _handle_client_frame(relay, convo_repo, user_id, raw)
    except WebSocketDisconnect:
        pass
    except RedisError:
        logger.warning("Realtime backplane unavailable for %s", user_id, exc_info=True)
        await websocket.close(code=1011)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if subscription is not None:
            await subscription.cancel()
        await relay.session_closed(user_id, websocket)
        logger.info("Realtime session closed for %s", user_id)
