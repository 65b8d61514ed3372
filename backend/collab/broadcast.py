"""
Broadcast fanout - deliver server events to a channel or a single connection.

Frames are JSON text ``{"type": <event>, "payload": <payload>}``. There is no
acknowledgement; ordering is whatever the socket gives per connection.
"""

import logging
from typing import Any

from .registry import Connection, SessionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    """Sends events to registry members, dropping connections that fail."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def emit(self, document_id: str, event: str, payload: Any) -> int:
        """Send to every member of the document's channel. Returns deliveries."""
        delivered = 0
        for connection in self.registry.members(document_id):
            if await self.emit_to(connection, event, payload):
                delivered += 1
        logger.debug(f"Channel {document_id}: {event} delivered to {delivered} connections")
        return delivered

    async def emit_to(self, connection: Connection, event: str, payload: Any) -> bool:
        """Send to one connection. Returns False when the send failed."""
        if connection.closed:
            self.registry.remove_connection(connection)
            return False
        try:
            await connection.send({"type": event, "payload": payload})
            return True
        except Exception as e:
            logger.warning(f"Error sending {event} to {connection.id}: {e}")
            connection.closed = True
            self.registry.remove_connection(connection)
            return False
