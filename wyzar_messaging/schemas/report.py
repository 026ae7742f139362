from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from wyzar_messaging.schemas.common import UtcDatetime


class ReportCreate(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    reported_user_id: str = Field(alias="reportedUserId")
    reason: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    message_id: Optional[str] = Field(default=None, alias="messageId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")


class ReportPublic(BaseModel):

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    reported_user_id: str
    reason: str
    description: Optional[str] = None
    message_id: Optional[str] = None
    conversation_id: Optional[str] = None
    status: str
    created_at: UtcDatetime
