import asyncio
import enum
import logging
from typing import Any, Dict, List

from starlette.websockets import WebSocket, WebSocketState

from starcheckin.schemas import AttendeeResult

logger = logging.getLogger(__name__)


class ChannelState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


def channel_state(channel: WebSocket) -> ChannelState:
    client = getattr(channel, "client_state", None)
    application = getattr(channel, "application_state", None)

    if client == WebSocketState.DISCONNECTED or application == WebSocketState.DISCONNECTED:
        return ChannelState.CLOSED
    if client == WebSocketState.CONNECTED and application == WebSocketState.CONNECTED:
        return ChannelState.OPEN
    return ChannelState.CONNECTING


def update_message(record: AttendeeResult) -> Dict[str, Any]:
    return {"type": "attendee_update", "attendee": record.model_dump(mode="json")}


class Broadcaster:
    """
    Owns the set of live-update subscribers.

    A channel that is not open at send time, or whose send fails, is dropped
    on the spot; the subscriber has to reconnect to get a new channel.
    Broadcasts are fanned out one at a time so every subscriber receives them
    in the order broadcast() was called.
    """

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._fanout_lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self.active_connections)

    async def register(self, channel: WebSocket) -> bool:
        """Add an accepted channel and greet it. Returns False if the greeting failed."""
        if channel not in self.active_connections:
            self.active_connections.append(channel)

        try:
            await channel.send_json({
                "type": "connected",
                "message": "Connected to attendee live updates",
            })
        except Exception as e:
            logger.info(f"Subscriber dropped during greeting: {e}")
            self.unregister(channel)
            return False

        logger.info(f"📡 Subscriber connected ({self.subscriber_count} active)")
        return True

    def unregister(self, channel: WebSocket):
        if channel in self.active_connections:
            self.active_connections.remove(channel)
            logger.info(f"Subscriber disconnected ({self.subscriber_count} active)")

    async def broadcast(self, record: AttendeeResult) -> int:
        """Send one attendee record to every open subscriber. Returns the delivery count."""
        message = update_message(record)
        delivered = 0

        async with self._fanout_lock:
            for channel in list(self.active_connections):
                if channel_state(channel) is not ChannelState.OPEN:
                    self.unregister(channel)
                    continue
                try:
                    await channel.send_json(message)
                    delivered += 1
                except Exception as e:
                    # Any send failure is treated as a disconnect
                    logger.info(f"Dropping subscriber after failed send: {e}")
                    self.unregister(channel)

        logger.debug(f"Broadcast attendee {record.id} to {delivered} subscriber(s)")
        return delivered
