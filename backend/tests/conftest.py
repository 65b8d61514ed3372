import json
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add the parent directory to Python path so we can import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from collab import Connection, DocumentStore, PresentationHandlers, SessionRegistry  # noqa: E402
from database.database import create_tables, make_engine, make_session_factory  # noqa: E402


@pytest.fixture
def database_url(tmp_path):
    """Temporary SQLite file shared by executor threads"""
    return f"sqlite:///{tmp_path / 'presentations.db'}"


@pytest.fixture
def engine(database_url):
    engine = make_engine(database_url, echo=False)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """Store whose compaction retries do not sleep"""
    return DocumentStore(make_session_factory(engine), retry_backoff=lambda attempt: 0)


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def handlers(store, registry):
    return PresentationHandlers(store, registry)


@pytest.fixture
def make_connection():
    """Build connections over mock WebSockets"""
    def factory(connection_id: str = None) -> Connection:
        mock_ws = AsyncMock()
        mock_ws.send_text = AsyncMock()
        return Connection(mock_ws, connection_id)
    return factory


@pytest.fixture
def sent():
    """Decode the frames a connection was sent, optionally of one type"""
    def frames(connection: Connection, event_type: str = None):
        messages = [json.loads(call.args[0]) for call in connection.websocket.send_text.call_args_list]
        if event_type is None:
            return messages
        return [m["payload"] for m in messages if m["type"] == event_type]
    return frames
