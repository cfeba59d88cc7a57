from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.core.db import get_db_session
from support_desk.schemas.agent import (
    AgentLoginRequest,
    AgentLogoutRequest,
    AgentLogoutResponse,
    AgentResponse,
    AgentSessionResponse,
)
from support_desk.services.agent_service import AgentService
from support_desk.services.errors import (
    AgentNotFoundError,
    InvalidInputError,
    StoreFailureError,
)

router = APIRouter()


async def get_agent_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> AgentService:
    realtime = getattr(request.app.state, "realtime_hub", None)
    return AgentService(session=session, realtime=realtime)


def _to_agent_response(agent) -> AgentResponse:
    return AgentResponse.model_validate(agent)


def _raise_for_service_error(exc: Exception) -> None:
    if isinstance(exc, AgentNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidInputError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, StoreFailureError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process the request",
        ) from exc
    raise exc


@router.get("", response_model=list[AgentResponse])
async def list_agents(
    service: AgentService = Depends(get_agent_service),
) -> list[AgentResponse]:
    try:
        agents = await service.list_agents()
    except StoreFailureError as exc:
        _raise_for_service_error(exc)
    return [_to_agent_response(agent) for agent in agents]


@router.post("/login", response_model=AgentSessionResponse)
async def login_agent(
    payload: AgentLoginRequest,
    service: AgentService = Depends(get_agent_service),
) -> AgentSessionResponse:
    try:
        agent = await service.login(payload.name)
    except (InvalidInputError, StoreFailureError) as exc:
        _raise_for_service_error(exc)
    return AgentSessionResponse(agent=_to_agent_response(agent))


@router.post("/logout", response_model=AgentLogoutResponse)
async def logout_agent(
    payload: AgentLogoutRequest,
    service: AgentService = Depends(get_agent_service),
) -> AgentLogoutResponse:
    try:
        await service.logout(payload.agent_id)
    except (AgentNotFoundError, InvalidInputError, StoreFailureError) as exc:
        _raise_for_service_error(exc)
    return AgentLogoutResponse()


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: int,
    service: AgentService = Depends(get_agent_service),
) -> AgentResponse:
    try:
        agent = await service.get_agent(agent_id)
    except (AgentNotFoundError, StoreFailureError) as exc:
        _raise_for_service_error(exc)
    return _to_agent_response(agent)
