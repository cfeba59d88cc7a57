import logging
from dataclasses import dataclass
from typing import Protocol

from support_desk.infra.db.repositories import ConditionalWriteResult, OwnerRef
from support_desk.services.errors import ConversationNotFoundError

logger = logging.getLogger(__name__)


class ClaimStore(Protocol):
    async def claim_conversation(
        self, customer_id: int, agent_id: int
    ) -> ConditionalWriteResult: ...

    async def conversation_exists(self, customer_id: int) -> bool: ...

    async def get_current_owner(self, customer_id: int) -> OwnerRef | None: ...


@dataclass(frozen=True, slots=True)
class ClaimOutcome:
    customer_id: int
    agent_id: int
    granted: bool
    owner_agent_id: int | None
    owner_name: str | None = None

    @property
    def conflict(self) -> bool:
        return not self.granted


class ClaimCoordinator:
    """Grants one agent exclusive ownership of a customer's conversation.

    The claim is a single conditional write; there is no read-then-write and
    no in-process lock. A conflict is an ordinary outcome, not an error, and
    it is never retried here.
    """

    def __init__(self, store: ClaimStore) -> None:
        self.store = store

    async def try_claim(self, customer_id: int, agent_id: int) -> ClaimOutcome:
        write = await self.store.claim_conversation(customer_id, agent_id)
        if write.applied:
            logger.info(
                "Agent %s holds conversation %s (%d message(s) stamped)",
                agent_id,
                customer_id,
                write.rows_affected,
            )
            return ClaimOutcome(
                customer_id=customer_id,
                agent_id=agent_id,
                granted=True,
                owner_agent_id=agent_id,
            )

        # Nothing matched: either there is no conversation or someone else owns it.
        if not await self.store.conversation_exists(customer_id):
            raise ConversationNotFoundError(customer_id)

        owner = await self.store.get_current_owner(customer_id)
        if owner is None:
            # Released by a new customer message after the write was rejected.
            logger.info(
                "Claim by agent %s on conversation %s rejected; owner released since",
                agent_id,
                customer_id,
            )
        else:
            logger.warning(
                "Claim by agent %s on conversation %s rejected; owner is %s",
                agent_id,
                customer_id,
                owner.agent_id,
            )
        return ClaimOutcome(
            customer_id=customer_id,
            agent_id=agent_id,
            granted=False,
            owner_agent_id=owner.agent_id if owner is not None else None,
            owner_name=owner.name if owner is not None else None,
        )
