import asyncio
import logging

from support_desk.core.config import get_settings
from support_desk.core.db import (
    close_engine,
    create_schema,
    create_session_factory,
    init_engine,
)
from support_desk.core.logging import configure_logging
from support_desk.infra.db.seed import seed_default_agents, seed_demo_conversations

logger = logging.getLogger("run_seed")


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    engine = init_engine(settings)
    try:
        if settings.db_auto_create:
            await create_schema(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            if settings.seed_default_agents:
                await seed_default_agents(session)
                await session.commit()
            await seed_demo_conversations(session)
        logger.info("Seed data loaded")
    finally:
        await close_engine(engine)


if __name__ == "__main__":
    asyncio.run(main())
