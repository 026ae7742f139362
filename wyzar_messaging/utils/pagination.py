from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from bson import ObjectId

from wyzar_messaging.errors import ValidationError
from wyzar_messaging.utils.ids import as_utc


# Cursor format: timestamp_ms:object_id_hex
_EPOCH = datetime(1970, 1, 1)


def encode_cursor(ts: datetime, oid: Any) -> str:
    return f"{int(as_utc(ts).timestamp() * 1000)}:{oid}"


def keyset_filter(field: str, cursor: Optional[str]) -> Dict[str, Any]:
    """Filter selecting documents strictly older than ``cursor`` on (field, _id)."""
    if not cursor:
        return {}
    try:
        ts_str, oid_hex = cursor.split(":", 1)
        ts = _EPOCH + timedelta(milliseconds=int(ts_str))
        oid = ObjectId(oid_hex)
    except Exception as exc:
        raise ValidationError("Malformed pagination cursor") from exc
    return {
        "$or": [
            {field: {"$lt": ts}},
            {field: ts, "_id": {"$lt": oid}},
        ]
    }
