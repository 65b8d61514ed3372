import json

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi import WebSocketDisconnect

from api.websocket import websocket_endpoint
from collab import Broadcaster, SessionRegistry


class TestWebSocketEndpoint:
    """Test suite for the presentation WebSocket endpoint"""

    @pytest.fixture
    def mock_websocket(self):
        """Create mock WebSocket connection"""
        mock_ws = AsyncMock()
        mock_ws.accept = AsyncMock()
        mock_ws.send_text = AsyncMock()
        mock_ws.receive_text = AsyncMock()
        return mock_ws

    @pytest.fixture
    def mock_handlers(self):
        registry = SessionRegistry()
        handlers = Mock()
        handlers.broadcaster = Broadcaster(registry)
        handlers.dispatch = AsyncMock()
        handlers.disconnect = AsyncMock()
        return handlers

    @pytest.mark.asyncio
    async def test_frames_are_dispatched(self, mock_websocket, mock_handlers):
        """Each decoded frame goes to dispatch on the same connection"""
        frames = [
            {"type": "join_presentation", "payload": {"presentationId": "p1", "userId": "u1", "nickname": "A"}},
            {"type": "add_slide", "payload": {"presentationId": "p1", "userId": "u1"}},
        ]
        mock_websocket.receive_text.side_effect = [json.dumps(f) for f in frames] + [WebSocketDisconnect()]

        await websocket_endpoint(mock_websocket, mock_handlers)

        mock_websocket.accept.assert_called_once()
        calls = mock_handlers.dispatch.call_args_list
        assert [c.args[1] for c in calls] == frames
        assert calls[0].args[0] is calls[1].args[0]

    @pytest.mark.asyncio
    async def test_invalid_json_reports_error_and_continues(self, mock_websocket, mock_handlers):
        mock_websocket.receive_text.side_effect = [
            "{not json",
            json.dumps({"type": "add_slide", "payload": {}}),
            WebSocketDisconnect(),
        ]

        await websocket_endpoint(mock_websocket, mock_handlers)

        first = json.loads(mock_websocket.send_text.call_args_list[0].args[0])
        assert first == {"type": "error", "payload": {"message": "Invalid JSON format"}}
        assert mock_handlers.dispatch.call_count == 1

    @pytest.mark.asyncio
    async def test_disconnect_cleans_up(self, mock_websocket, mock_handlers):
        mock_websocket.receive_text.side_effect = WebSocketDisconnect()

        await websocket_endpoint(mock_websocket, mock_handlers)

        mock_handlers.disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_transport_error_cleans_up(self, mock_websocket, mock_handlers):
        mock_websocket.receive_text.side_effect = RuntimeError("socket reset")

        await websocket_endpoint(mock_websocket, mock_handlers)

        mock_handlers.disconnect.assert_called_once()
