from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from wyzar_messaging.models.conversation import ConversationDocument
from wyzar_messaging.utils.ids import canonical_id, normalize_document, parse_object_id, utcnow
from wyzar_messaging.utils.pagination import encode_cursor, keyset_filter


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        # one conversation per unordered pair + product
        await self.collection.create_index([("pair_key", ASCENDING), ("product_id", ASCENDING)], unique=True)
        await self.collection.create_index([("participants", ASCENDING)])
        await self.collection.create_index([("last_message_at", DESCENDING)])

    async def get_or_create(self, user_a: str, user_b: str, product_id: Optional[str] = None) -> ConversationDocument:
        user_a, user_b, product_id = canonical_id(user_a), canonical_id(user_b), canonical_id(product_id)
        participants = sorted([user_a, user_b])
        query = {"pair_key": ":".join(participants), "product_id": product_id}
        now = utcnow()
        try:
            doc = await self.collection.find_one_and_update(
                query,
                {
                    "$setOnInsert": {
                        "participants": participants,
                        "last_message_id": None,
                        "last_message_preview": None,
                        "last_message_at": now,
                        "unread_counts": {user_a: 0, user_b: 0},
                        "created_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # a concurrent upsert won the insert; read its document
            doc = await self.collection.find_one(query)
        return normalize_document(doc)

    async def get_by_id(self, conversation_id: str) -> Optional[ConversationDocument]:
        oid = parse_object_id(conversation_id)
        if oid is None:
            return None
        return normalize_document(await self.collection.find_one({"_id": oid}))

    async def update_on_new_message(self, conversation_id: str, message_id: str, preview: str, receiver_id: str, at) -> None:
        await self.collection.update_one(
            {"_id": parse_object_id(conversation_id)},
            {
                "$set": {
                    "last_message_id": message_id,
                    "last_message_preview": preview,
                    "last_message_at": at,
                },
                "$inc": {f"unread_counts.{receiver_id}": 1},
            },
        )

    async def reset_unread(self, conversation_id: str, user_id: str) -> None:
        await self.collection.update_one(
            {"_id": parse_object_id(conversation_id)},
            {"$set": {f"unread_counts.{user_id}": 0}},
        )

    async def list_for_user(self, user_id: str, limit: int = 20, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        query: Dict[str, Any] = {"participants": user_id}
        query.update(keyset_filter("last_message_at", cursor))
        sort = [("last_message_at", DESCENDING), ("_id", DESCENDING)]
        cursor_db = self.collection.find(query).sort(sort).limit(limit)
        items = await cursor_db.to_list(length=limit)
        for it in items:
            normalize_document(it)
        next_cursor = None
        if len(items) == limit:
            last = items[-1]
            next_cursor = encode_cursor(last["last_message_at"], last["_id"])
        return items, next_cursor

    async def total_unread(self, user_id: str) -> int:
        cur = self.collection.find({"participants": user_id}, {f"unread_counts.{user_id}": 1})
        total = 0
        async for doc in cur:
            total += int((doc.get("unread_counts") or {}).get(user_id, 0))
        return total
