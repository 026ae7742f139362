from datetime import datetime
from typing import Literal, Optional, TypedDict


ReportStatus = Literal["pending", "reviewed", "dismissed"]


class ReportDocument(TypedDict, total=False):
    _id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    description: Optional[str]
    message_id: Optional[str]
    conversation_id: Optional[str]
    status: ReportStatus
    created_at: datetime
