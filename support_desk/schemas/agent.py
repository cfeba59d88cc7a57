from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AgentResponse(BaseModel):
    id: int
    name: str
    is_online: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AgentLoginRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class AgentLogoutRequest(BaseModel):
    agent_id: int = Field(gt=0)


class AgentSessionResponse(BaseModel):
    success: bool = True
    agent: AgentResponse
    message: str = "Login successful"


class AgentLogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logout successful"
