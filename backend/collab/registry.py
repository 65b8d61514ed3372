"""
Session Registry - which live connections are subscribed to which presentation.

Pure in-memory membership bookkeeping. One registry is built per app and
handed to the handlers and the broadcaster, so tests can use their own.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Set, Tuple

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    """One client socket, addressable by a server-assigned id."""

    def __init__(self, websocket: WebSocket, connection_id: str = None):
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex
        self.closed = False

    async def send(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(message))

    def __repr__(self) -> str:
        return f"Connection({self.id})"


class SessionRegistry:
    """
    Maps presentation ids to the connections in their channel.

    Also remembers which participant each connection joined as, which is
    what authorization checks on role changes go by.
    """

    def __init__(self):
        # document_id -> connections
        self._channels: Dict[str, Set[Connection]] = {}
        # (document_id, connection_id) -> user_id
        self._identities: Dict[Tuple[str, str], str] = {}

    def join(self, document_id: str, connection: Connection, user_id: str = None) -> None:
        """Register a connection in a document's channel."""
        if document_id not in self._channels:
            self._channels[document_id] = set()
        self._channels[document_id].add(connection)
        if user_id is not None:
            self._identities[(document_id, connection.id)] = user_id
        logger.info(f"Channel {document_id}: {connection.id} joined ({len(self._channels[document_id])} members)")

    def leave(self, document_id: str, connection: Connection) -> bool:
        """Deregister a connection. Returns whether it was a member."""
        self._identities.pop((document_id, connection.id), None)
        members = self._channels.get(document_id)
        if not members or connection not in members:
            return False
        members.discard(connection)
        if not members:
            del self._channels[document_id]
            logger.info(f"Channel {document_id}: no members left, channel closed")
        else:
            logger.info(f"Channel {document_id}: {connection.id} left ({len(members)} members)")
        return True

    def remove_connection(self, connection: Connection) -> List[str]:
        """Drop a connection from every channel. Returns the channels it left."""
        left = [doc_id for doc_id in self.channels_for(connection)]
        for doc_id in left:
            self.leave(doc_id, connection)
        return left

    def members(self, document_id: str) -> List[Connection]:
        """Snapshot of a channel's members."""
        return list(self._channels.get(document_id, ()))

    def is_member(self, document_id: str, connection: Connection) -> bool:
        return connection in self._channels.get(document_id, ())

    def user_for(self, document_id: str, connection: Connection) -> Optional[str]:
        """Participant id the connection joined the channel as."""
        return self._identities.get((document_id, connection.id))

    def channels_for(self, connection: Connection) -> List[str]:
        return [doc_id for doc_id, members in self._channels.items() if connection in members]

    def get_active_channels(self) -> Dict[str, int]:
        """Get all active channels with their member counts."""
        return {doc_id: len(members) for doc_id, members in self._channels.items()}
