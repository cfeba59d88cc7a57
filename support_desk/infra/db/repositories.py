from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, case, func, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from support_desk.domain.enums import MessageStatus, TransitionAction, UrgencyLevel
from support_desk.domain.state_machine import ConversationLifecycle
from support_desk.infra.db.models import Agent, Customer, Message


@dataclass(frozen=True, slots=True)
class ConditionalWriteResult:
    applied: bool
    rows_affected: int


@dataclass(frozen=True, slots=True)
class OwnerRef:
    agent_id: int
    name: str | None


@dataclass(slots=True)
class ThreadMessage:
    id: int
    customer_id: int
    message_body: str
    timestamp: datetime
    is_from_customer: bool
    agent_id: int | None
    agent_name: str | None
    current_agent_id: int | None
    urgency_level: UrgencyLevel
    status: MessageStatus

    @classmethod
    def from_message(cls, message: Message, agent_name: str | None = None) -> "ThreadMessage":
        return cls(
            id=message.id,
            customer_id=message.customer_id,
            message_body=message.message_body,
            timestamp=message.timestamp,
            is_from_customer=message.is_from_customer,
            agent_id=message.agent_id,
            agent_name=agent_name,
            current_agent_id=message.current_agent_id,
            urgency_level=message.urgency_level,
            status=message.status,
        )


@dataclass(slots=True)
class InboxEntry:
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


class CustomerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, customer_id: int) -> Customer | None:
        return await self.session.get(Customer, customer_id)

    async def ensure(self, customer_id: int) -> bool:
        """Create the customer row if missing. Returns True when it was created."""
        if await self.session.get(Customer, customer_id) is not None:
            return False

        try:
            async with self.session.begin_nested():
                self.session.add(Customer(user_id=customer_id))
        except IntegrityError:
            # A concurrent first message for the same customer won the insert.
            return False
        return True


class MessageRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, message_id: int) -> Message | None:
        return await self.session.get(Message, message_id)

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
    ) -> Message:
        message = Message(
            customer_id=customer_id,
            message_body=message_body,
            timestamp=timestamp,
            is_from_customer=is_from_customer,
            agent_id=agent_id,
            current_agent_id=current_agent_id,
            status=status,
            urgency_level=urgency_level,
        )
        self.session.add(message)
        await self.session.flush()
        await self.session.refresh(message)
        return message

    async def conversation_exists(self, customer_id: int) -> bool:
        stmt: Select[tuple[int]] = (
            select(Message.id).where(Message.customer_id == customer_id).limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def claim_conversation(
        self, customer_id: int, agent_id: int
    ) -> ConditionalWriteResult:
        """Compare-and-set the conversation owner on the customer row.

        Applies only when the conversation is unowned or already owned by
        ``agent_id``. On success the owner is copied onto every message and
        pending messages move to assigned, inside the caller's transaction.
        """
        claim = (
            update(Customer)
            .where(
                Customer.user_id == customer_id,
                or_(
                    Customer.current_agent_id.is_(None),
                    Customer.current_agent_id == agent_id,
                ),
            )
            .values(current_agent_id=agent_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(claim)
        if not result.rowcount:
            return ConditionalWriteResult(applied=False, rows_affected=0)

        stamp = (
            update(Message)
            .where(Message.customer_id == customer_id)
            .values(
                current_agent_id=agent_id,
                status=case(
                    *[
                        (Message.status == source, literal(target.value))
                        for source, target in ConversationLifecycle.changes_for(
                            TransitionAction.CLAIM
                        ).items()
                    ],
                    else_=Message.status,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stamp)
        return ConditionalWriteResult(
            applied=True, rows_affected=int(result.rowcount or 0)
        )

    async def release_ownership(self, customer_id: int) -> int:
        """Clear the owner. Returns the number of messages released."""
        await self.session.execute(
            update(Customer)
            .where(Customer.user_id == customer_id)
            .values(current_agent_id=None)
            .execution_options(synchronize_session=False)
        )
        stmt = (
            update(Message)
            .where(
                Message.customer_id == customer_id,
                Message.current_agent_id.is_not(None),
            )
            .values(current_agent_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def resolve_outstanding(
        self,
        customer_id: int,
        up_to: datetime,
        statuses: Iterable[MessageStatus],
    ) -> int:
        stmt = (
            update(Message)
            .where(
                Message.customer_id == customer_id,
                Message.is_from_customer.is_(True),
                Message.status.in_(list(statuses)),
                Message.timestamp <= up_to,
            )
            .values(status=MessageStatus.RESPONDED)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def get_current_owner(self, customer_id: int) -> OwnerRef | None:
        stmt = (
            select(Customer.current_agent_id, Agent.name)
            .outerjoin(Agent, Agent.id == Customer.current_agent_id)
            .where(
                Customer.user_id == customer_id,
                Customer.current_agent_id.is_not(None),
            )
        )
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return OwnerRef(agent_id=row[0], name=row[1])

    async def latest_customer_urgency(self, customer_id: int) -> UrgencyLevel | None:
        stmt: Select[tuple[UrgencyLevel]] = (
            select(Message.urgency_level)
            .where(
                Message.customer_id == customer_id,
                Message.is_from_customer.is_(True),
            )
            .order_by(Message.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_thread(self, customer_id: int) -> list[ThreadMessage]:
        stmt = (
            select(Message, Agent.name)
            .outerjoin(Agent, Agent.id == Message.agent_id)
            .where(Message.customer_id == customer_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [
            ThreadMessage.from_message(message, agent_name)
            for message, agent_name in result.all()
        ]

    async def list_inbox(self) -> list[InboxEntry]:
        latest = (
            select(func.max(Message.id).label("id"))
            .group_by(Message.customer_id)
            .subquery()
        )
        counts = (
            select(
                Message.customer_id.label("customer_id"),
                func.count(Message.id).label("total_messages"),
                func.count(
                    case((Message.status == MessageStatus.PENDING, Message.id))
                ).label("pending_count"),
            )
            .group_by(Message.customer_id)
            .subquery()
        )
        author = aliased(Agent)
        owner = aliased(Agent)

        stmt = (
            select(
                Message,
                Customer.created_at,
                Customer.current_agent_id,
                author.name,
                owner.name,
                counts.c.total_messages,
                counts.c.pending_count,
            )
            .join(latest, latest.c.id == Message.id)
            .join(Customer, Customer.user_id == Message.customer_id)
            .join(counts, counts.c.customer_id == Message.customer_id)
            .outerjoin(author, author.id == Message.agent_id)
            .outerjoin(owner, owner.id == Customer.current_agent_id)
            .order_by(
                case((Message.urgency_level == UrgencyLevel.HIGH, 0), else_=1),
                counts.c.pending_count.desc(),
                Message.timestamp.desc(),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [
            InboxEntry(
                customer_id=message.customer_id,
                customer_created_at=customer_created_at,
                latest_message_id=message.id,
                latest_message=message.message_body,
                latest_timestamp=message.timestamp,
                status=message.status,
                agent_id=message.agent_id,
                agent_name=agent_name,
                current_agent_id=owner_id,
                current_agent_name=owner_name,
                urgency_level=message.urgency_level,
                total_messages=int(total_messages or 0),
                pending_count=int(pending_count or 0),
            )
            for (
                message,
                customer_created_at,
                owner_id,
                agent_name,
                owner_name,
                total_messages,
                pending_count,
            ) in result.all()
        ]


class AgentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, agent_id: int) -> Agent | None:
        return await self.session.get(Agent, agent_id)

    async def get_by_name(self, name: str) -> Agent | None:
        stmt: Select[tuple[Agent]] = select(Agent).where(Agent.name == name).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Agent]:
        stmt: Select[tuple[Agent]] = select(Agent).order_by(
            Agent.created_at.desc(), Agent.id.desc()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, name: str, is_online: bool = True) -> Agent:
        agent = Agent(name=name, is_online=is_online)
        self.session.add(agent)
        await self.session.flush()
        await self.session.refresh(agent)
        return agent

    async def get_or_create(self, name: str) -> tuple[Agent, bool]:
        agent = await self.get_by_name(name)
        if agent is not None:
            return agent, False

        try:
            async with self.session.begin_nested():
                agent = Agent(name=name, is_online=True)
                self.session.add(agent)
        except IntegrityError:
            # Two first logins with the same name raced on uq_agent_name.
            agent = await self.get_by_name(name)
            if agent is None:
                raise
            return agent, False

        await self.session.refresh(agent)
        return agent, True

    async def set_online(self, agent: Agent, is_online: bool) -> None:
        agent.is_online = is_online
        await self.session.flush()

    async def set_all_offline(self) -> None:
        await self.session.execute(
            update(Agent).where(Agent.is_online.is_(True)).values(is_online=False)
        )
