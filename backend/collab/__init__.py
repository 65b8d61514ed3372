"""
Real-time synchronization engine for shared presentations.

This module provides:
- SessionRegistry: channel membership of live connections per presentation
- Broadcaster: fanout of server events to a channel or one connection
- DocumentStore: versioned store adapter with conditional writes
- PresentationHandlers: one handler per inbound event
- with_retry: bounded exponential-backoff retry for store conflicts
"""

from .broadcast import Broadcaster
from .handlers import PresentationHandlers
from .registry import Connection, SessionRegistry
from .retry import exponential_backoff, with_retry
from .store import (
    DocumentNotFoundException,
    DocumentStore,
    DocumentStoreException,
    UpdateResult,
    VersionConflictException,
    is_version_conflict,
)

__all__ = [
    'Broadcaster',
    'Connection',
    'DocumentNotFoundException',
    'DocumentStore',
    'DocumentStoreException',
    'PresentationHandlers',
    'SessionRegistry',
    'UpdateResult',
    'VersionConflictException',
    'exponential_backoff',
    'is_version_conflict',
    'with_retry',
]
