from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.core.db import get_db_session
from support_desk.schemas.inbox import InboxEntryResponse
from support_desk.schemas.message import (
    AgentReplyRequest,
    ClaimConflictResponse,
    MessageResponse,
    ReplyResponse,
    SendCustomerMessageRequest,
    SendMessageResponse,
)
from support_desk.services.errors import (
    AgentNotFoundError,
    ConversationNotFoundError,
    InvalidInputError,
    MessageNotFoundError,
    StoreFailureError,
)
from support_desk.services.inbox_service import InboxService, ReplyResult

router = APIRouter()

_REPLY_RESPONSES = {status.HTTP_409_CONFLICT: {"model": ClaimConflictResponse}}


async def get_inbox_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> InboxService:
    realtime = getattr(request.app.state, "realtime_hub", None)
    return InboxService(session=session, realtime=realtime)


def _raise_for_service_error(exc: Exception) -> None:
    if isinstance(exc, (ConversationNotFoundError, MessageNotFoundError, AgentNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidInputError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, StoreFailureError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process the request",
        ) from exc
    raise exc


def _to_reply_response(result: ReplyResult) -> ReplyResponse | JSONResponse:
    if not result.ok:
        conflict = ClaimConflictResponse(
            error=result.conflict_detail,
            current_agent_id=result.owner_agent_id,
            current_agent_name=result.owner_name,
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=conflict.model_dump(),
        )

    reply = result.message
    if reply is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Reply was not recorded",
        )
    return ReplyResponse(
        message_id=reply.id,
        message=MessageResponse.model_validate(reply),
    )


@router.get("/messages", response_model=list[InboxEntryResponse])
async def list_inbox(
    service: InboxService = Depends(get_inbox_service),
) -> list[InboxEntryResponse]:
    try:
        entries = await service.list_inbox()
    except StoreFailureError as exc:
        _raise_for_service_error(exc)
    return [InboxEntryResponse.model_validate(entry) for entry in entries]


@router.post("/messages/send", response_model=SendMessageResponse)
async def send_customer_message(
    payload: SendCustomerMessageRequest,
    service: InboxService = Depends(get_inbox_service),
) -> SendMessageResponse:
    try:
        message = await service.submit_customer_message(
            customer_id=payload.customer_id,
            message_body=payload.message_body,
        )
    except (InvalidInputError, StoreFailureError) as exc:
        _raise_for_service_error(exc)
    return SendMessageResponse(message_id=message.id)


@router.get("/messages/{customer_id}", response_model=list[MessageResponse])
async def get_thread(
    customer_id: int,
    service: InboxService = Depends(get_inbox_service),
) -> list[MessageResponse]:
    try:
        thread = await service.list_thread(customer_id, strict=True)
    except (ConversationNotFoundError, StoreFailureError) as exc:
        _raise_for_service_error(exc)
    return [MessageResponse.model_validate(message) for message in thread]


@router.post(
    "/messages/{message_id}/respond",
    response_model=ReplyResponse,
    responses=_REPLY_RESPONSES,
)
async def respond_to_message(
    message_id: int,
    payload: AgentReplyRequest,
    service: InboxService = Depends(get_inbox_service),
):
    try:
        result = await service.claim_and_reply_to_message(
            message_id=message_id,
            agent_id=payload.agent_id,
            message_body=payload.message_body,
        )
    except (
        AgentNotFoundError,
        ConversationNotFoundError,
        MessageNotFoundError,
        InvalidInputError,
        StoreFailureError,
    ) as exc:
        _raise_for_service_error(exc)
    return _to_reply_response(result)


@router.post(
    "/conversations/{customer_id}/reply",
    response_model=ReplyResponse,
    responses=_REPLY_RESPONSES,
)
async def reply_to_conversation(
    customer_id: int,
    payload: AgentReplyRequest,
    service: InboxService = Depends(get_inbox_service),
):
    try:
        result = await service.claim_and_reply(
            customer_id=customer_id,
            agent_id=payload.agent_id,
            message_body=payload.message_body,
        )
    except (
        AgentNotFoundError,
        ConversationNotFoundError,
        InvalidInputError,
        StoreFailureError,
    ) as exc:
        _raise_for_service_error(exc)
    return _to_reply_response(result)
