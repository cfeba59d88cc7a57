import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from support_desk.domain.enums import MessageStatus, TransitionAction, UrgencyLevel
from support_desk.domain.state_machine import ConversationLifecycle
from support_desk.infra.db.repositories import (
    ConditionalWriteResult,
    InboxEntry,
    OwnerRef,
    ThreadMessage,
)
from support_desk.infra.realtime.events import RealtimeEvent
from support_desk.services.agent_service import AgentService
from support_desk.services.inbox_service import InboxService


class DummySession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, _: object) -> None:
        return None


@dataclass(slots=True)
class FakeAgent:
    id: int
    name: str
    is_online: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class FakeMessage:
    id: int
    customer_id: int
    message_body: str
    timestamp: datetime
    is_from_customer: bool
    status: MessageStatus
    urgency_level: UrgencyLevel
    agent_id: int | None = None
    current_agent_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class FakeCustomerRepository:
    def __init__(self) -> None:
        self.customers: dict[int, datetime] = {}
        self.owners: dict[int, int] = {}

    async def ensure(self, customer_id: int) -> bool:
        await asyncio.sleep(0)
        if customer_id in self.customers:
            return False
        self.customers[customer_id] = datetime.now(UTC)
        return True


class FakeAgentRepository:
    def __init__(self) -> None:
        self.agents: dict[int, FakeAgent] = {}

    def add(self, agent_id: int, name: str, is_online: bool = True) -> FakeAgent:
        agent = FakeAgent(id=agent_id, name=name, is_online=is_online)
        self.agents[agent.id] = agent
        return agent

    async def get_by_id(self, agent_id: int) -> FakeAgent | None:
        return self.agents.get(agent_id)

    async def get_or_create(self, name: str) -> tuple[FakeAgent, bool]:
        for agent in self.agents.values():
            if agent.name == name:
                return agent, False
        return self.add(max(self.agents, default=0) + 1, name), True

    async def set_online(self, agent: FakeAgent, is_online: bool) -> None:
        agent.is_online = is_online

    async def list_all(self) -> list[FakeAgent]:
        return sorted(
            self.agents.values(),
            key=lambda agent: (agent.created_at, agent.id),
            reverse=True,
        )


class FakeMessageRepository:
    """In-memory store; the claim checks and sets the owner with no await between."""

    def __init__(self, agents: FakeAgentRepository, customers: FakeCustomerRepository) -> None:
        self.agents = agents
        self.customers = customers
        self.messages: list[FakeMessage] = []
        self.claim_writes = 0

    async def get_by_id(self, message_id: int) -> FakeMessage | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    async def create(
        self,
        customer_id: int,
        message_body: str,
        timestamp: datetime,
        is_from_customer: bool,
        status: MessageStatus,
        urgency_level: UrgencyLevel,
        agent_id: int | None = None,
        current_agent_id: int | None = None,
    ) -> FakeMessage:
        await asyncio.sleep(0)
        message = FakeMessage(
            id=len(self.messages) + 1,
            customer_id=customer_id,
            message_body=message_body,
            timestamp=timestamp,
            is_from_customer=is_from_customer,
            status=status,
            urgency_level=urgency_level,
            agent_id=agent_id,
            current_agent_id=current_agent_id,
        )
        self.messages.append(message)
        return message

    async def conversation_exists(self, customer_id: int) -> bool:
        return any(message.customer_id == customer_id for message in self.messages)

    async def claim_conversation(
        self, customer_id: int, agent_id: int
    ) -> ConditionalWriteResult:
        await asyncio.sleep(0)
        self.claim_writes += 1
        if customer_id not in self.customers.customers:
            return ConditionalWriteResult(applied=False, rows_affected=0)
        if self.customers.owners.get(customer_id) not in (None, agent_id):
            return ConditionalWriteResult(applied=False, rows_affected=0)

        self.customers.owners[customer_id] = agent_id
        changes = ConversationLifecycle.changes_for(TransitionAction.CLAIM)
        rows = self.conversation(customer_id)
        for message in rows:
            message.current_agent_id = agent_id
            message.status = changes.get(message.status, message.status)
        return ConditionalWriteResult(applied=True, rows_affected=len(rows))

    async def release_ownership(self, customer_id: int) -> int:
        await asyncio.sleep(0)
        self.customers.owners.pop(customer_id, None)
        released = 0
        for message in self.conversation(customer_id):
            if message.current_agent_id is not None:
                message.current_agent_id = None
                released += 1
        return released

    async def resolve_outstanding(
        self,
        customer_id: int,
        up_to: datetime,
        statuses: Iterable[MessageStatus],
    ) -> int:
        targets = set(statuses)
        resolved = 0
        for message in self.messages:
            if (
                message.customer_id == customer_id
                and message.is_from_customer
                and message.status in targets
                and message.timestamp <= up_to
            ):
                message.status = MessageStatus.RESPONDED
                resolved += 1
        return resolved

    async def get_current_owner(self, customer_id: int) -> OwnerRef | None:
        owner_id = self.customers.owners.get(customer_id)
        if owner_id is None:
            return None
        return OwnerRef(agent_id=owner_id, name=self._agent_name(owner_id))

    async def latest_customer_urgency(self, customer_id: int) -> UrgencyLevel | None:
        for message in reversed(self.messages):
            if message.customer_id == customer_id and message.is_from_customer:
                return message.urgency_level
        return None

    async def list_thread(self, customer_id: int) -> list[ThreadMessage]:
        thread = sorted(
            (message for message in self.messages if message.customer_id == customer_id),
            key=lambda message: (message.timestamp, message.id),
        )
        return [
            ThreadMessage.from_message(message, self._agent_name(message.agent_id))
            for message in thread
        ]

    async def list_inbox(self) -> list[InboxEntry]:
        latest: dict[int, FakeMessage] = {}
        for message in self.messages:
            current = latest.get(message.customer_id)
            if current is None or message.id > current.id:
                latest[message.customer_id] = message

        entries = []
        for customer_id, message in latest.items():
            conversation = [m for m in self.messages if m.customer_id == customer_id]
            entries.append(
                InboxEntry(
                    customer_id=customer_id,
                    customer_created_at=self.customers.customers.get(customer_id),
                    latest_message_id=message.id,
                    latest_message=message.message_body,
                    latest_timestamp=message.timestamp,
                    status=message.status,
                    agent_id=message.agent_id,
                    agent_name=self._agent_name(message.agent_id),
                    current_agent_id=self.customers.owners.get(customer_id),
                    current_agent_name=self._agent_name(self.customers.owners.get(customer_id)),
                    urgency_level=message.urgency_level,
                    total_messages=len(conversation),
                    pending_count=sum(
                        1 for m in conversation if m.status == MessageStatus.PENDING
                    ),
                )
            )
        return sorted(
            entries,
            key=lambda entry: (
                0 if entry.urgency_level == UrgencyLevel.HIGH else 1,
                -entry.pending_count,
                -entry.latest_timestamp.timestamp(),
            ),
        )

    def conversation(self, customer_id: int) -> list[FakeMessage]:
        return [message for message in self.messages if message.customer_id == customer_id]

    def _agent_name(self, agent_id: int | None) -> str | None:
        if agent_id is None:
            return None
        agent = self.agents.agents.get(agent_id)
        return agent.name if agent is not None else None


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[list[str], RealtimeEvent, dict[str, Any]]] = []

    async def publish(
        self,
        channels: Sequence[str],
        event: RealtimeEvent,
        payload: Mapping[str, Any],
    ) -> None:
        self.events.append((list(channels), event, dict(payload)))

    def of(self, event: RealtimeEvent) -> list[tuple[list[str], dict[str, Any]]]:
        return [(channels, payload) for channels, kind, payload in self.events if kind == event]


class TickingClock:
    def __init__(self) -> None:
        self.current = datetime(2026, 10, 17, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@dataclass(slots=True)
class DeskState:
    session: DummySession
    customers: FakeCustomerRepository
    agents: FakeAgentRepository
    messages: FakeMessageRepository
    realtime: RecordingPublisher
    clock: TickingClock

    def inbox_service(self) -> InboxService:
        return InboxService(
            session=self.session,
            customers=self.customers,
            messages=self.messages,
            agents=self.agents,
            realtime=self.realtime,
            clock=self.clock,
        )

    def agent_service(self) -> AgentService:
        return AgentService(
            session=self.session,
            agents=self.agents,
            realtime=self.realtime,
        )


@pytest.fixture
def desk() -> DeskState:
    customers = FakeCustomerRepository()
    agents = FakeAgentRepository()
    return DeskState(
        session=DummySession(),
        customers=customers,
        agents=agents,
        messages=FakeMessageRepository(agents, customers),
        realtime=RecordingPublisher(),
        clock=TickingClock(),
    )


@pytest.fixture
def service(desk: DeskState) -> InboxService:
    return desk.inbox_service()


@pytest.fixture
def make_agents(desk: DeskState) -> Callable[..., list[FakeAgent]]:
    def _make(*pairs: tuple[int, str]) -> list[FakeAgent]:
        return [desk.agents.add(agent_id, name) for agent_id, name in pairs]

    return _make


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()
