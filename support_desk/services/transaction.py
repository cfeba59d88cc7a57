import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_desk.services.errors import StoreFailureError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_operation(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and surface store errors as StoreFailureError.

    Domain errors raised inside the block also roll back but propagate as-is.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store operation '%s' failed", operation)
        await session.rollback()
        raise StoreFailureError(operation) from exc
    except Exception:
        await session.rollback()
        raise
