import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from support_desk.infra.realtime.channels import INBOX_CHANNEL
from support_desk.infra.realtime.events import RealtimeEvent

logger = logging.getLogger(__name__)


class InMemoryRealtimeHub:
    """In-process channel hub for websocket fanout.

    Every connected socket listens on the global inbox channel and may join
    any number of conversation channels. Sends are bounded by
    ``send_timeout``; a socket that fails or stalls is dropped from the
    channel instead of holding up the publisher.
    """

    def __init__(self, send_timeout: float = 2.0) -> None:
        self._channel_subscribers: dict[str, set[WebSocket]] = defaultdict(set)
        self._socket_channels: dict[WebSocket, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._send_timeout = send_timeout

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        await self.subscribe(websocket, INBOX_CHANNEL)

    def subscriber_count(self, channel: str) -> int:
        subscribers = self._channel_subscribers.get(channel)
        if subscribers is None:
            return 0
        return len(subscribers)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            channels = self._socket_channels.pop(websocket, set())
            for channel in channels:
                self._discard_subscriber(channel, websocket)

    async def subscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            self._channel_subscribers[channel].add(websocket)
            self._socket_channels[websocket].add(channel)

    async def unsubscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            self._discard_subscriber(channel, websocket)

            channels = self._socket_channels.get(websocket)
            if channels is not None:
                channels.discard(channel)
                if not channels:
                    self._socket_channels.pop(websocket, None)

    async def publish(
        self,
        channels: Sequence[str],
        event: RealtimeEvent,
        payload: Mapping[str, Any],
    ) -> None:
        unique_channels = [channel for channel in dict.fromkeys(channels) if channel]
        if not unique_channels:
            return

        async with self._lock:
            recipients_by_channel = {
                channel: set(self._channel_subscribers.get(channel, set()))
                for channel in unique_channels
            }

        for channel, recipients in recipients_by_channel.items():
            if not recipients:
                continue

            envelope = {
                "event": event.value,
                "channel": channel,
                "payload": dict(payload),
                "sent_at": datetime.now(UTC).isoformat(),
            }

            ordered = list(recipients)
            results = await asyncio.gather(
                *(self._send(websocket, envelope) for websocket in ordered)
            )
            stale = [websocket for websocket, delivered in zip(ordered, results) if not delivered]
            if not stale:
                continue

            logger.debug(
                "Dropping %d stale subscriber(s) from channel '%s'", len(stale), channel
            )
            async with self._lock:
                for websocket in stale:
                    subscribed_channels = self._socket_channels.get(websocket)
                    if subscribed_channels is not None:
                        subscribed_channels.discard(channel)
                        if not subscribed_channels:
                            self._socket_channels.pop(websocket, None)
                    self._discard_subscriber(channel, websocket)

    async def _send(self, websocket: WebSocket, envelope: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(envelope), timeout=self._send_timeout)
        except (RuntimeError, WebSocketDisconnect, asyncio.TimeoutError):
            return False
        return True

    def _discard_subscriber(self, channel: str, websocket: WebSocket) -> None:
        subscribers = self._channel_subscribers.get(channel)
        if subscribers is None:
            return
        subscribers.discard(websocket)
        if not subscribers:
            self._channel_subscribers.pop(channel, None)
