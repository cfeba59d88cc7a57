import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.domain.enums import ReplyStatus, TransitionAction
from support_desk.domain.state_machine import ConversationLifecycle
from support_desk.domain.urgency import classify_urgency
from support_desk.infra.db.models import Message
from support_desk.infra.db.repositories import (
    AgentRepository,
    CustomerRepository,
    InboxEntry,
    MessageRepository,
    ThreadMessage,
)
from support_desk.infra.realtime.channels import INBOX_CHANNEL, conversation_channel
from support_desk.infra.realtime.events import ConversationOutcome, RealtimeEvent
from support_desk.infra.realtime.publisher import (
    NoopRealtimePublisher,
    RealtimePublisher,
    publish_best_effort,
)
from support_desk.services.claim_service import ClaimCoordinator, ClaimOutcome
from support_desk.services.errors import (
    AgentNotFoundError,
    ConversationNotFoundError,
    InvalidInputError,
    MessageNotFoundError,
)
from support_desk.services.transaction import store_operation

logger = logging.getLogger(__name__)

FALLBACK_OWNER_NAME = "another agent"


@dataclass(slots=True)
class ReplyResult:
    status: ReplyStatus
    customer_id: int
    message: ThreadMessage | None = None
    owner_agent_id: int | None = None
    owner_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReplyStatus.OK

    @property
    def conflict_detail(self) -> str:
        return (
            "This conversation is already in progress by "
            f"{self.owner_name or FALLBACK_OWNER_NAME}."
        )


class InboxService:
    def __init__(
        self,
        session: AsyncSession,
        customers: CustomerRepository | None = None,
        messages: MessageRepository | None = None,
        agents: AgentRepository | None = None,
        realtime: RealtimePublisher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session = session
        self.customers = customers or CustomerRepository(session)
        self.messages = messages or MessageRepository(session)
        self.agents = agents or AgentRepository(session)
        self.realtime = realtime or NoopRealtimePublisher()
        self.coordinator = ClaimCoordinator(self.messages)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def submit_customer_message(self, customer_id: int, message_body: str) -> Message:
        self._require_customer_id(customer_id)
        cleaned_body = self._require_body(message_body)
        urgency = classify_urgency(cleaned_body)
        action = TransitionAction.CUSTOMER_MESSAGE

        async with store_operation(self.session, "submit_customer_message"):
            await self.customers.ensure(customer_id)
            if ConversationLifecycle.resets_ownership(action):
                await self.messages.release_ownership(customer_id)
            message = await self.messages.create(
                customer_id=customer_id,
                message_body=cleaned_body,
                timestamp=self._clock(),
                is_from_customer=True,
                status=ConversationLifecycle.entry_status(action),
                urgency_level=urgency,
                current_agent_id=None,
            )
            await self.session.commit()

        logger.info(
            "Stored customer message %s for customer %s (%s urgency)",
            message.id,
            customer_id,
            urgency.value,
        )

        await publish_best_effort(
            self.realtime,
            [conversation_channel(customer_id)],
            RealtimeEvent.NEW_MESSAGE,
            self._message_payload(ThreadMessage.from_message(message)),
        )
        await publish_best_effort(
            self.realtime,
            [INBOX_CHANNEL],
            RealtimeEvent.NEW_CUSTOMER_MESSAGE,
            {"id": message.id, "customer_id": customer_id},
        )
        await self._emit_conversation_updated(
            customer_id,
            outcome=ConversationOutcome.PENDING,
            acted_by=None,
            owner_agent_id=None,
        )
        return message

    async def claim_and_reply(
        self,
        customer_id: int,
        agent_id: int,
        message_body: str,
    ) -> ReplyResult:
        self._require_customer_id(customer_id)
        cleaned_body = self._require_body(message_body)

        async with store_operation(self.session, "claim_and_reply"):
            agent = await self.agents.get_by_id(agent_id)
            if agent is None:
                raise AgentNotFoundError(agent_id)

            claim = await self.coordinator.try_claim(customer_id, agent_id)
            if claim.conflict:
                await self.session.rollback()
            else:
                reply = await self._record_reply(
                    customer_id, agent_id, agent.name, cleaned_body
                )
                await self.session.commit()

        if claim.conflict:
            return await self._report_conflict(claim)

        await publish_best_effort(
            self.realtime,
            [conversation_channel(customer_id)],
            RealtimeEvent.NEW_MESSAGE,
            self._message_payload(reply),
        )
        await self._emit_conversation_updated(
            customer_id,
            outcome=ConversationOutcome.RESPONDED,
            acted_by=agent_id,
            owner_agent_id=agent_id,
            owner_name=agent.name,
        )
        return ReplyResult(
            status=ReplyStatus.OK,
            customer_id=customer_id,
            message=reply,
            owner_agent_id=agent_id,
            owner_name=agent.name,
        )

    async def claim_and_reply_to_message(
        self,
        message_id: int,
        agent_id: int,
        message_body: str,
    ) -> ReplyResult:
        self._require_body(message_body)
        async with store_operation(self.session, "resolve_message"):
            message = await self.messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return await self.claim_and_reply(message.customer_id, agent_id, message_body)

    async def list_inbox(self) -> list[InboxEntry]:
        async with store_operation(self.session, "list_inbox"):
            return await self.messages.list_inbox()

    async def list_thread(
        self, customer_id: int, strict: bool = False
    ) -> list[ThreadMessage]:
        async with store_operation(self.session, "list_thread"):
            thread = await self.messages.list_thread(customer_id)
        if strict and not thread:
            raise ConversationNotFoundError(customer_id)
        return thread

    async def _record_reply(
        self,
        customer_id: int,
        agent_id: int,
        agent_name: str,
        body: str,
    ) -> ThreadMessage:
        action = TransitionAction.AGENT_REPLY
        urgency = await self.messages.latest_customer_urgency(customer_id)
        reply_timestamp = self._clock()
        reply = await self.messages.create(
            customer_id=customer_id,
            message_body=body,
            timestamp=reply_timestamp,
            is_from_customer=False,
            status=ConversationLifecycle.entry_status(action),
            urgency_level=urgency or classify_urgency(body),
            agent_id=agent_id,
            current_agent_id=agent_id,
        )
        resolved = await self.messages.resolve_outstanding(
            customer_id,
            up_to=reply_timestamp,
            statuses=ConversationLifecycle.outstanding_statuses(),
        )
        logger.info(
            "Agent %s replied to customer %s; %d message(s) resolved",
            agent_id,
            customer_id,
            resolved,
        )
        return ThreadMessage.from_message(reply, agent_name)

    async def _report_conflict(self, claim: ClaimOutcome) -> ReplyResult:
        await self._emit_conversation_updated(
            claim.customer_id,
            outcome=ConversationOutcome.CONFLICT,
            acted_by=claim.owner_agent_id,
            owner_agent_id=claim.owner_agent_id,
            owner_name=claim.owner_name,
        )
        return ReplyResult(
            status=ReplyStatus.CONFLICT,
            customer_id=claim.customer_id,
            owner_agent_id=claim.owner_agent_id,
            owner_name=claim.owner_name
            or (str(claim.owner_agent_id) if claim.owner_agent_id is not None else None),
        )

    async def _emit_conversation_updated(
        self,
        customer_id: int,
        outcome: ConversationOutcome,
        acted_by: int | None,
        owner_agent_id: int | None,
        owner_name: str | None = None,
    ) -> None:
        await publish_best_effort(
            self.realtime,
            [INBOX_CHANNEL, conversation_channel(customer_id)],
            RealtimeEvent.CONVERSATION_UPDATED,
            {
                "customer_id": customer_id,
                "outcome": outcome.value,
                "acted_by": acted_by,
                "current_agent_id": owner_agent_id,
                "current_agent_name": owner_name,
            },
        )

    @staticmethod
    def _require_customer_id(customer_id: int | None) -> None:
        if customer_id is None or customer_id <= 0:
            raise InvalidInputError("Customer ID is required.")

    @staticmethod
    def _require_body(message_body: str | None) -> str:
        cleaned = (message_body or "").strip()
        if not cleaned:
            raise InvalidInputError("Message body cannot be empty.")
        return cleaned

    @staticmethod
    def _message_payload(message: ThreadMessage) -> dict[str, Any]:
        return {
            "id": message.id,
            "customer_id": message.customer_id,
            "message_body": message.message_body,
            "timestamp": message.timestamp.isoformat(),
            "is_from_customer": message.is_from_customer,
            "agent_id": message.agent_id,
            "agent_name": message.agent_name,
            "current_agent_id": message.current_agent_id,
            "urgency_level": message.urgency_level.value,
            "status": message.status.value,
        }
