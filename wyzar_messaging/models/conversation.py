from datetime import datetime
from typing import List, Optional, TypedDict


class ConversationDocument(TypedDict, total=False):
    _id: str
    participants: List[str]
    # "<min_id>:<max_id>", unique together with product_id
    pair_key: str
    product_id: Optional[str]
    last_message_id: Optional[str]
    last_message_preview: Optional[str]
    last_message_at: datetime
    # per-user unread counters (user_id -> count)
    unread_counts: dict[str, int]
    created_at: datetime
