import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.infra.db.models import Agent
from support_desk.infra.db.repositories import AgentRepository
from support_desk.infra.realtime.channels import INBOX_CHANNEL
from support_desk.infra.realtime.events import RealtimeEvent
from support_desk.infra.realtime.publisher import (
    NoopRealtimePublisher,
    RealtimePublisher,
    publish_best_effort,
)
from support_desk.services.errors import AgentNotFoundError, InvalidInputError
from support_desk.services.transaction import store_operation

logger = logging.getLogger(__name__)


class AgentService:
    """Agent identity: login by name (upsert), logout and listing.

    There is no credential check; the name is the identity.
    """

    def __init__(
        self,
        session: AsyncSession,
        agents: AgentRepository | None = None,
        realtime: RealtimePublisher | None = None,
    ) -> None:
        self.session = session
        self.agents = agents or AgentRepository(session)
        self.realtime = realtime or NoopRealtimePublisher()

    async def login(self, name: str) -> Agent:
        cleaned_name = (name or "").strip()
        if not cleaned_name:
            raise InvalidInputError("Agent name is required.")

        async with store_operation(self.session, "agent_login"):
            agent, created = await self.agents.get_or_create(cleaned_name)
            await self.agents.set_online(agent, True)
            await self.session.commit()

        if created:
            logger.info("Registered agent %s (%s)", agent.id, agent.name)
        logger.info("Agent %s (%s) logged in", agent.id, agent.name)
        await publish_best_effort(
            self.realtime,
            [INBOX_CHANNEL],
            RealtimeEvent.AGENT_LOGGED_IN,
            self._agent_payload(agent),
        )
        return agent

    async def logout(self, agent_id: int | None) -> Agent:
        if agent_id is None:
            raise InvalidInputError("Agent ID is required.")

        async with store_operation(self.session, "agent_logout"):
            agent = await self.agents.get_by_id(agent_id)
            if agent is None:
                raise AgentNotFoundError(agent_id)
            await self.agents.set_online(agent, False)
            await self.session.commit()

        logger.info("Agent %s (%s) logged out", agent.id, agent.name)
        await publish_best_effort(
            self.realtime,
            [INBOX_CHANNEL],
            RealtimeEvent.AGENT_LOGGED_OUT,
            {"agent_id": agent.id},
        )
        return agent

    async def get_agent(self, agent_id: int) -> Agent:
        async with store_operation(self.session, "get_agent"):
            agent = await self.agents.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def list_agents(self) -> list[Agent]:
        async with store_operation(self.session, "list_agents"):
            return await self.agents.list_all()

    @staticmethod
    def _agent_payload(agent: Agent) -> dict[str, Any]:
        return {
            "id": agent.id,
            "name": agent.name,
            "is_online": agent.is_online,
        }
