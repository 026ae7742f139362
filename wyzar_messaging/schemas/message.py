from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from wyzar_messaging.schemas.common import UtcDatetime


class SendMessageRequest(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    receiver_id: str = Field(alias="receiverId")
    message: Optional[str] = None
    product_id: Optional[str] = Field(default=None, alias="productId")
    attachments: List[str] = Field(default_factory=list)


class MessagePublic(BaseModel):

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    conversation_id: str
    sender_id: str
    receiver_id: str
    body: str = ""
    attachments: List[str] = Field(default_factory=list)
    is_read: bool = False
    read_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime


class SendMessageResponse(BaseModel):

    message: MessagePublic
    conversation_id: str


class MessagePage(BaseModel):

    items: List[MessagePublic]
    next_cursor: Optional[str] = None


class MessageTemplate(BaseModel):

    id: int
    title: str
    message: str
