from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from wyzar_messaging.models.user import UserDocument
from wyzar_messaging.utils.ids import normalize_document, parse_object_id


# fields other participants may see
PUBLIC_PROJECTION = {"email": 1, "seller_details": 1}


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return normalize_document(await self._collection.find_one({"_id": oid}))

    async def get_public_users(self, user_ids: List[str]) -> Dict[str, dict]:
        oids = [oid for oid in (parse_object_id(u) for u in user_ids) if oid is not None]
        if not oids:
            return {}
        cursor = self._collection.find({"_id": {"$in": oids}}, PUBLIC_PROJECTION)
        users = {}
        async for doc in cursor:
            normalize_document(doc)
            users[doc["_id"]] = doc
        return users

    async def get_blocked_users(self, user_id: str) -> List[str]:
        user = await self._collection.find_one({"_id": parse_object_id(user_id)}, {"blocked_users": 1})
        return list(user.get("blocked_users", [])) if user else []

    async def has_blocked(self, user_id: str, other_id: str) -> bool:
        count = await self._collection.count_documents({"_id": parse_object_id(user_id), "blocked_users": other_id})
        return count > 0

    async def add_blocked_user(self, user_id: str, blocked_id: str) -> bool:
        # $addToSet keeps the list free of duplicates
        result = await self._collection.update_one(
            {"_id": parse_object_id(user_id)}, {"$addToSet": {"blocked_users": blocked_id}}
        )
        return result.modified_count > 0

    async def remove_blocked_user(self, user_id: str, blocked_id: str) -> bool:
        result = await self._collection.update_one(
            {"_id": parse_object_id(user_id)}, {"$pull": {"blocked_users": blocked_id}}
        )
        return result.modified_count > 0
