from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def canonical_id(value: Any) -> Any:
    """Lowercase hex form of a valid ObjectId string; anything else unchanged."""
    oid = parse_object_id(value)
    return str(oid) if oid is not None else value


def utcnow() -> datetime:
    # naive UTC truncated to BSON's millisecond precision
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_document(doc: Optional[Dict[str, Any]], *fields: str) -> Optional[Dict[str, Any]]:
    """Stringify ``_id`` and any ObjectId-valued ``fields`` for the API layer."""
    if doc is None:
        return None
    doc["_id"] = str(doc.get("_id"))
    for name in fields:
        if isinstance(doc.get(name), ObjectId):
            doc[name] = str(doc[name])
    return doc
