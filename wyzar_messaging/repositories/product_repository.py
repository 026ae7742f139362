from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from wyzar_messaging.models.product import ProductDocument
from wyzar_messaging.utils.ids import normalize_document, parse_object_id


SUMMARY_PROJECTION = {"name": 1, "images": 1, "price": 1}


class ProductRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("products")

    async def get_product_by_id(self, product_id: str) -> Optional[ProductDocument]:
        oid = parse_object_id(product_id)
        if oid is None:
            return None
        return normalize_document(await self._collection.find_one({"_id": oid}, SUMMARY_PROJECTION))

    async def get_summaries(self, product_ids: List[str]) -> Dict[str, dict]:
        oids = [oid for oid in (parse_object_id(p) for p in product_ids) if oid is not None]
        if not oids:
            return {}
        products = {}
        async for doc in self._collection.find({"_id": {"$in": oids}}, SUMMARY_PROJECTION):
            normalize_document(doc)
            products[doc["_id"]] = doc
        return products
