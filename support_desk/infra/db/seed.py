from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.infra.db.models import Agent, Message
from support_desk.services.inbox_service import InboxService

DEFAULT_AGENT_NAMES: list[str] = [
    "Amina Otieno",
    "Brian Mwangi",
    "Support Lead",
]

DEFAULT_DEMO_MESSAGES: list[dict[str, str | int]] = [
    {
        "customer_id": 1001,
        "message_body": "When will my loan be approved?",
    },
    {
        "customer_id": 1002,
        "message_body": "Thanks, everything is fine now.",
    },
    {
        "customer_id": 1003,
        "message_body": "My payment was rejected, please review it urgently.",
    },
]


async def seed_default_agents(session: AsyncSession) -> None:
    existing_rows = await session.execute(select(Agent.name))
    existing_names = {name for name in existing_rows.scalars().all()}

    inserts = [
        Agent(name=name, is_online=False)
        for name in DEFAULT_AGENT_NAMES
        if name not in existing_names
    ]
    if inserts:
        session.add_all(inserts)
        await session.flush()


async def seed_demo_conversations(session: AsyncSession) -> None:
    existing_rows = await session.execute(select(Message.customer_id).distinct())
    existing_customers = {customer_id for customer_id in existing_rows.scalars().all()}

    service = InboxService(session)
    for item in DEFAULT_DEMO_MESSAGES:
        customer_id = int(item["customer_id"])
        if customer_id in existing_customers:
            continue
        await service.submit_customer_message(customer_id, str(item["message_body"]))
