"""Realtime event transport (WebSocket) adapters."""

from support_desk.infra.realtime.hub import InMemoryRealtimeHub

__all__ = ["InMemoryRealtimeHub"]
