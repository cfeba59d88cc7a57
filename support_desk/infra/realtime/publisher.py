import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from support_desk.infra.realtime.events import RealtimeEvent

logger = logging.getLogger(__name__)


class RealtimePublisher(Protocol):
    async def publish(
        self,
        channels: Sequence[str],
        event: RealtimeEvent,
        payload: Mapping[str, Any],
    ) -> None: ...


class NoopRealtimePublisher:
    async def publish(
        self,
        channels: Sequence[str],
        event: RealtimeEvent,
        payload: Mapping[str, Any],
    ) -> None:
        return None


async def publish_best_effort(
    publisher: RealtimePublisher,
    channels: Sequence[str],
    event: RealtimeEvent,
    payload: Mapping[str, Any],
) -> None:
    """Publish without letting delivery problems reach the caller.

    Clients reconcile by refetching the inbox and thread, so a lost event
    only delays their view.
    """
    try:
        await publisher.publish(channels, event, payload)
    except Exception:
        logger.warning(
            "Realtime publish of '%s' to %s failed", event.value, list(channels),
            exc_info=True,
        )
