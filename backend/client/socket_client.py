#!/usr/bin/env python3
"""
Presentation WebSocket client.

Usage: python -m client.socket_client <presentation_id> <user_id> <nickname>
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import websockets
from pydantic import ValidationError

from .session import EditingSession

logger = logging.getLogger(__name__)

USAGE = ("Commands: add <text|image|rectangle|circle|arrow>, slide <n>, "
         "newslide, delslide <n>, undo, redo, show, quit")


class PresentationSocketClient:
    """Carries one EditingSession's events over a WebSocket."""

    def __init__(self, presentation_id: str, user_id: str, nickname: str,
                 server_url: str = "ws://localhost:8000/ws/presentations"):
        self.server_url = server_url
        self.websocket = None
        self.session = EditingSession(presentation_id, user_id, nickname, send=self.send)
        self.joined = asyncio.Event()

    async def connect(self) -> bool:
        """Connect to the WebSocket server"""
        try:
            self.websocket = await websockets.connect(self.server_url)
            logger.info(f"Connected to {self.server_url}")
            return True
        except Exception as e:
            logger.error(f"Connection failed: {e}")
            return False

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.websocket:
            raise ConnectionError("Not connected")
        await self.websocket.send(json.dumps({"type": event, "payload": payload}))

    def handle_frame(self, raw: str) -> Optional[str]:
        """Apply one server frame to the session. Returns the event type."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Dropping non-JSON frame: {raw[:100]}")
            return None
        event = data.get("type")
        try:
            self.session.apply_event(event, data.get("payload"))
        except (ValidationError, KeyError, TypeError) as e:
            logger.warning(f"Dropping malformed {event} frame: {e}")
            return None
        if event == "document_changed":
            self.joined.set()
        return event

    async def listen(self):
        """Feed server frames to the session until the socket closes"""
        try:
            async for raw in self.websocket:
                self.handle_frame(raw)
        except websockets.exceptions.ConnectionClosed:
            logger.info("Connection closed by server")

    async def close(self):
        """Close the connection"""
        if self.websocket:
            await self.session.leave()
            await self.websocket.close()
            self.websocket = None


def _print_state(session: EditingSession):
    print(f"📄 {session.document.title if session.document else '?'} "
          f"({len(session.slides)} slides, role: {session.role.value if session.role else '-'})")
    for slide in session.slides:
        marker = "▶" if slide.order == session.current_slide_index else " "
        kinds = ", ".join(e.type for e in slide.elements) or "empty"
        print(f"  {marker} [{slide.order}] {kinds}")
    print(f"👥 {', '.join(f'{u.nickname} ({u.role.value})' for u in session.users)}")


async def run_command(session: EditingSession, command: str, args: list) -> None:
    """Run one interactive command. Raises ValueError on bad arguments."""
    if command == "add" and args:
        await session.add_element(args[0])
    elif command == "slide" and args:
        session.select_slide(int(args[0]))
    elif command == "newslide":
        await session.add_slide()
    elif command == "delslide" and args:
        await session.remove_slide(int(args[0]))
    elif command == "undo":
        await session.undo()
    elif command == "redo":
        await session.redo()
    elif command != "show":
        raise ValueError(f"Bad command: {' '.join([command] + args)}")


async def main(presentation_id: str, user_id: str, nickname: str):
    """Interactive editing loop"""
    client = PresentationSocketClient(presentation_id, user_id, nickname)
    if not await client.connect():
        return

    listener_task = asyncio.create_task(client.listen())
    await client.session.join()
    try:
        await asyncio.wait_for(client.joined.wait(), timeout=10.0)
    except asyncio.TimeoutError:
        print(f"❌ Join failed: {client.session.last_error or 'no snapshot received'}")
        listener_task.cancel()
        await client.close()
        return

    print(USAGE)
    session = client.session
    try:
        while True:
            line = await asyncio.get_running_loop().run_in_executor(None, lambda: input("\n> "))
            parts = line.strip().split()
            if not parts:
                continue
            command, args = parts[0].lower(), parts[1:]
            if command in ("quit", "exit"):
                break
            try:
                await run_command(session, command, args)
            except ValueError as e:
                print(f"❌ {e}\n{USAGE}")
                continue
            await asyncio.sleep(0.2)
            _print_state(session)
    except (KeyboardInterrupt, EOFError):
        pass
    finally:
        listener_task.cancel()
        await client.close()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(*sys.argv[1:]))
