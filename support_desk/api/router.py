from fastapi import APIRouter

from support_desk.api.v1.routes import agents, health, messages, realtime

api_router = APIRouter()
api_router.include_router(health.router, prefix="/v1", tags=["health"])
api_router.include_router(messages.router, prefix="/v1", tags=["messages"])
api_router.include_router(agents.router, prefix="/v1/agents", tags=["agents"])
api_router.include_router(realtime.router, prefix="/v1/realtime", tags=["realtime"])
