"""
Broadcast service for real-time logging to WebSocket clients
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from models import BroadcastEvent, EventType

logger = logging.getLogger(__name__)

# notify(event_type, message); fire-and-forget
Notifier = Callable[[EventType, str], Awaitable[None]]


async def notify_safely(notify: Optional[Notifier], event_type: EventType, message: str):
    """Call a notifier if one is set; a failing sink never breaks the caller"""
    if notify is None:
        return
    try:
        await notify(event_type, message)
    except Exception as e:
        logger.warning(f"[WS] Notifier failed: {e}")


class BroadcastService:
    """Fan-out of status/output events to every connected WebSocket"""

    def __init__(self):
        self._clients: Set = set()
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def add(self, websocket):
        async with self._lock:
            self._clients.add(websocket)
        logger.debug(f"[WS] Client connected ({len(self._clients)} total)")

    async def remove(self, websocket):
        async with self._lock:
            self._clients.discard(websocket)
        logger.debug(f"[WS] Client disconnected ({len(self._clients)} total)")

    async def send_to(self, websocket, event_type: EventType, message: str):
        """Send one event to a single client"""
        await websocket.send_text(BroadcastEvent(type=event_type, message=message).model_dump_json())

    async def publish(self, event_type: EventType, message: str):
        """Send an event to all connected clients; dead clients are dropped"""
        # Also log to console for debugging
        logger.info(f"[LOG] {event_type.value}: {message.rstrip()}")

        async with self._lock:
            clients = list(self._clients)

        data = BroadcastEvent(type=event_type, message=message).model_dump_json()
        disconnected: List = []
        for client in clients:
            try:
                await client.send_text(data)
            except Exception as e:
                logger.warning(f"[WS ERROR] Failed to send to client: {e}")
                disconnected.append(client)

        # Clean up disconnected clients
        if disconnected:
            async with self._lock:
                for client in disconnected:
                    self._clients.discard(client)

    async def __call__(self, event_type: EventType, message: str):
        await self.publish(event_type, message)
