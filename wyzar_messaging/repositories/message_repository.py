import re
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from wyzar_messaging.models.message import MessageDocument
from wyzar_messaging.utils.ids import normalize_document, parse_object_id, utcnow
from wyzar_messaging.utils.pagination import encode_cursor, keyset_filter


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("conversation_id", ASCENDING), ("created_at", DESCENDING)])
        await self.collection.create_index([("sender_id", ASCENDING), ("receiver_id", ASCENDING)])
        await self.collection.create_index([("is_read", ASCENDING)])

    async def save_message(
        self,
        conversation_id: str,
        sender_id: str,
        receiver_id: str,
        body: str,
        attachments: Optional[List[str]] = None,
    ) -> MessageDocument:
        doc: Dict[str, Any] = {
            "conversation_id": parse_object_id(conversation_id),
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "body": body,
            "attachments": list(attachments or []),
            "is_read": False,
            "read_at": None,
            "created_at": utcnow(),
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return normalize_document(doc, "conversation_id")

    async def get_messages_by_conversation(
        self,
        conversation_id: str,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        query: Dict[str, Any] = {"conversation_id": parse_object_id(conversation_id)}
        query.update(keyset_filter("created_at", cursor))
        # latest page first; each page handed back oldest-first
        sort = [("created_at", DESCENDING), ("_id", DESCENDING)]
        cur = self.collection.find(query).sort(sort).limit(limit)
        items = await cur.to_list(length=limit)
        next_cursor = None
        if len(items) == limit:
            last = items[-1]
            next_cursor = encode_cursor(last["created_at"], last["_id"])
        for it in items:
            normalize_document(it, "conversation_id")
        return list(reversed(items)), next_cursor

    async def mark_read(self, conversation_id: str, receiver_id: str) -> int:
        result = await self.collection.update_many(
            {
                "conversation_id": parse_object_id(conversation_id),
                "receiver_id": receiver_id,
                "is_read": False,
            },
            {"$set": {"is_read": True, "read_at": utcnow()}},
        )
        return result.modified_count or 0

    async def search(self, user_id: str, text: str, conversation_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {
            "$or": [{"sender_id": user_id}, {"receiver_id": user_id}],
            "body": {"$regex": re.escape(text), "$options": "i"},
        }
        if conversation_id:
            query["conversation_id"] = parse_object_id(conversation_id)
        cur = self.collection.find(query).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        items = await cur.to_list(length=limit)
        for it in items:
            normalize_document(it, "conversation_id")
        return items
