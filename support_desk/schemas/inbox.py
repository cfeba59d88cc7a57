from datetime import datetime

from pydantic import BaseModel, ConfigDict

from support_desk.domain.enums import MessageStatus, UrgencyLevel


class InboxEntryResponse(BaseModel):
    customer_id: int
    customer_created_at: datetime | None
    latest_message_id: int
    latest_message: str
    latest_timestamp: datetime
    status: MessageStatus
    agent_id: int | None
    agent_name: str | None
    current_agent_id: int | None
    current_agent_name: str | None
    urgency_level: UrgencyLevel
    total_messages: int
    pending_count: int

    model_config = ConfigDict(from_attributes=True)
