"""
WebSocket API for shared presentation editing.

Each text frame is a JSON object ``{"type": <event>, "payload": {...}}``.
Frames are dispatched as independent tasks so a slow store call on one
event does not hold up the next one.
"""

import asyncio
import json
import logging
from typing import Set

from fastapi import WebSocket, WebSocketDisconnect

from collab import Connection, PresentationHandlers
from collab.schemas import ERROR

logger = logging.getLogger(__name__)


async def websocket_endpoint(websocket: WebSocket, handlers: PresentationHandlers):
    """Serve one client socket until it disconnects."""
    await websocket.accept()
    connection = Connection(websocket)
    logger.info(f"Connection {connection.id} opened")

    # Keep references so running handlers are not garbage collected
    pending: Set[asyncio.Task] = set()

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await handlers.broadcaster.emit_to(connection, ERROR, {"message": "Invalid JSON format"})
                continue

            task = asyncio.create_task(handlers.dispatch(connection, message))
            pending.add(task)
            task.add_done_callback(pending.discard)

    except WebSocketDisconnect:
        logger.info(f"Connection {connection.id} disconnected")
    except Exception as e:
        logger.exception(f"Error on connection {connection.id}: {e}")
    finally:
        # In-flight handlers are left to finish; their broadcasts reach whoever remains
        await handlers.disconnect(connection)
