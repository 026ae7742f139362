from typing import Optional

from fastapi import APIRouter, Depends, Query

from wyzar_messaging.routers.messages import get_chat_service
from wyzar_messaging.schemas.conversation import ConversationPage
from wyzar_messaging.schemas.message import MessagePage
from wyzar_messaging.services.chat_service import ChatService
from wyzar_messaging.utils.dependencies import get_current_user


router = APIRouter(prefix="/conversations", tags=["chat"])


@router.get("", response_model=ConversationPage)
async def list_conversations(limit: int = Query(20, ge=1, le=100), cursor: Optional[str] = None, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    items, next_cursor = await service.list_conversations(current_user["_id"], limit=limit, cursor=cursor)
    return {"items": items, "next_cursor": next_cursor}


@router.get("/{conversation_id}/messages", response_model=MessagePage)
async def list_messages(conversation_id: str, limit: int = Query(50, ge=1, le=200), cursor: Optional[str] = None, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    # read-only history; /messages/conversation/{id} also clears the unread counter
    messages, next_cursor = await service.get_history(conversation_id, current_user["_id"], limit=limit, cursor=cursor)
    return {"items": messages, "next_cursor": next_cursor}
