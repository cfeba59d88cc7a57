import json
import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from support_desk.infra.realtime.channels import INBOX_CHANNEL, conversation_channel

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_customer_id(raw: Any) -> int | None:
    if raw is None:
        return None
    try:
        customer_id = int(str(raw))
    except ValueError:
        return None
    return customer_id if customer_id > 0 else None


def _system_event(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": event,
        "payload": payload,
        "sent_at": datetime.now(UTC).isoformat(),
    }


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket) -> None:
    """Agent session feed.

    Every session receives the global inbox events; conversation events
    arrive once the session joins ``conversation:{customer_id}``. Delivery is
    best effort, so clients refetch the inbox and thread on reconnect.
    """
    hub = getattr(websocket.app.state, "realtime_hub", None)
    if hub is None:
        await websocket.close(code=1011, reason="Realtime hub not initialized")
        return

    raw_customer_id = websocket.query_params.get("customer_id")
    requested_customer_id = _parse_customer_id(raw_customer_id)
    if raw_customer_id is not None and requested_customer_id is None:
        await websocket.close(code=1008, reason="Invalid customer_id")
        return

    await hub.connect(websocket)
    channels = [INBOX_CHANNEL]
    if requested_customer_id is not None:
        channel = conversation_channel(requested_customer_id)
        await hub.subscribe(websocket, channel)
        channels.append(channel)

    await websocket.send_json(_system_event("system.connected", {"channels": channels}))

    try:
        while True:
            raw_message = await websocket.receive_text()
            if raw_message.strip().lower() == "ping":
                await websocket.send_json(_system_event("system.pong", {}))
                continue

            try:
                message = json.loads(raw_message)
            except json.JSONDecodeError:
                await websocket.send_json(
                    _system_event("system.error", {"detail": "Expected JSON payload"})
                )
                continue
            if not isinstance(message, dict):
                await websocket.send_json(
                    _system_event("system.error", {"detail": "Expected JSON object"})
                )
                continue

            action = message.get("action")
            if action == "ping":
                await websocket.send_json(_system_event("system.pong", {}))
                continue

            if action in ("join_conversation", "leave_conversation"):
                customer_id = _parse_customer_id(message.get("customer_id"))
                if customer_id is None:
                    await websocket.send_json(
                        _system_event("system.error", {"detail": "Invalid customer_id"})
                    )
                    continue

                channel = conversation_channel(customer_id)
                if action == "join_conversation":
                    await hub.subscribe(websocket, channel)
                    event = "system.subscribed"
                else:
                    await hub.unsubscribe(websocket, channel)
                    event = "system.unsubscribed"
                await websocket.send_json(_system_event(event, {"channel": channel}))
                continue

            await websocket.send_json(
                _system_event("system.error", {"detail": "Unsupported action"})
            )
    except WebSocketDisconnect:
        logger.debug("Realtime session disconnected")
    finally:
        await hub.disconnect(websocket)
