"""
WebSocket consumer for live sleigh position pushes.

Viewers that can hold a socket open receive every recorded fix as it
arrives instead of polling ``GET /api/santa-tour/location``.
"""
import json
import logging
from typing import Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from santa_tour import STARTUP_TIMESTAMP

from .store import get_location_store
from .views import LOCATION_GROUP

logger = logging.getLogger(__name__)


@database_sync_to_async
def _current_fix_data() -> dict[str, Any] | None:
    fix = get_location_store().get_current_fix()
    return fix.as_dict() if fix is not None else None


class SleighLocationConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for live sleigh positions.

    On connect the client receives a welcome message carrying the server
    startup timestamp, then the current fix (``null`` before the first one).
    """

    def get_client_address(self) -> str:
        """Get formatted client address (IP:port)."""
        headers = dict(self.scope.get('headers', []))
        x_forwarded_for = headers.get(b'x-forwarded-for')
        if x_forwarded_for:
            return x_forwarded_for.decode().split(',')[0].strip()
        client = self.scope.get('client')
        if client:
            return f"{client[0]}:{client[1]}" if len(client) > 1 else str(client[0])
        return 'unknown'

    async def connect(self) -> None:
        """Handle new WebSocket connection."""
        await self.channel_layer.group_add(LOCATION_GROUP, self.channel_name)
        await self.accept()

        client_addr = self.get_client_address()
        logger.info(
            "Sleigh viewer connected from %s", client_addr,
            extra={"channel": self.channel_name, "client_address": client_addr}
        )

        await self.send(text_data=json.dumps({
            'type': 'welcome',
            'server_startup': STARTUP_TIMESTAMP
        }))
        await self.send(text_data=json.dumps({
            'type': 'location',
            'data': await _current_fix_data()
        }))

    async def disconnect(self, close_code: int) -> None:
        """Handle WebSocket disconnection."""
        await self.channel_layer.group_discard(LOCATION_GROUP, self.channel_name)
        logger.info(
            "Sleigh viewer disconnected from %s", self.get_client_address(),
            extra={"channel": self.channel_name, "close_code": close_code}
        )

    async def location_update(self, event: dict[str, Any]) -> None:
        """
        Receive a recorded fix from the channel layer and send it on.

        Args:
            event: Dictionary containing the fix data
        """
        await self.send(text_data=json.dumps({
            'type': 'location',
            'data': event['data']
        }))
