from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from wyzar_messaging.models.report import ReportDocument
from wyzar_messaging.utils.ids import normalize_document, utcnow


class ReportRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("reports")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("reporter_id", ASCENDING), ("created_at", DESCENDING)])

    async def create_report(
        self,
        reporter_id: str,
        reported_user_id: str,
        reason: str,
        description: Optional[str] = None,
        message_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        doc = {
            "reporter_id": reporter_id,
            "reported_user_id": reported_user_id,
            "reason": reason,
            "description": description,
            "message_id": message_id,
            "conversation_id": conversation_id,
            "status": "pending",
            "created_at": utcnow(),
        }
        result = await self._collection.insert_one(doc)
        return str(result.inserted_id)

    async def list_by_reporter(self, reporter_id: str, limit: int = 100) -> List[ReportDocument]:
        cursor = self._collection.find({"reporter_id": reporter_id}).sort("created_at", DESCENDING)
        items = await cursor.to_list(length=limit)
        for it in items:
            normalize_document(it)
        return items
