from datetime import datetime
from typing import List, Optional, TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    body: str
    attachments: List[str]
    # read receipt
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime
