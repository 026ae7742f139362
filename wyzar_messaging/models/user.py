from typing import Any, List, Optional, TypedDict


class UserDocument(TypedDict, total=False):

    _id: str
    email: str
    seller_details: Optional[dict[str, Any]]
    blocked_users: List[str]
