from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from support_desk.domain.enums import MessageStatus, UrgencyLevel


class SendCustomerMessageRequest(BaseModel):
    customer_id: int = Field(gt=0)
    message_body: str = Field(min_length=1, max_length=4000)


class AgentReplyRequest(BaseModel):
    agent_id: int = Field(gt=0)
    message_body: str = Field(min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: int
    customer_id: int
    message_body: str
    timestamp: datetime
    is_from_customer: bool
    status: MessageStatus
    agent_id: int | None = None
    agent_name: str | None = None
    current_agent_id: int | None = None
    urgency_level: UrgencyLevel

    model_config = ConfigDict(from_attributes=True)


class SendMessageResponse(BaseModel):
    success: bool = True
    message_id: int


class ReplyResponse(BaseModel):
    success: bool = True
    message_id: int
    message: MessageResponse


class ClaimConflictResponse(BaseModel):
    error: str
    current_agent_id: int | None
    current_agent_name: str | None
