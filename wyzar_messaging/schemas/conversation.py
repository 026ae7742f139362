from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from wyzar_messaging.schemas.common import UtcDatetime


class UserSummary(BaseModel):

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    email: Optional[str] = None
    seller_details: Optional[dict[str, Any]] = None


class ProductSummary(BaseModel):

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    price: Optional[float] = None


class ConversationSummary(BaseModel):

    id: str
    other_user: Optional[UserSummary] = None
    product: Optional[ProductSummary] = None
    last_message_id: Optional[str] = None
    last_message_preview: Optional[str] = None
    last_message_at: UtcDatetime
    unread_count: int = 0
    created_at: Optional[UtcDatetime] = None


class ConversationPage(BaseModel):

    items: List[ConversationSummary]
    next_cursor: Optional[str] = None
