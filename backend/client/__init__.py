"""
Client-side reconciliation for shared presentations.

- SlideHistory: bounded linear undo/redo over the slide list
- ElementResolver: provisional id / positional fallback addressing
- EditingSession: folds broadcasts and local edits into the history
"""

from .history import SlideHistory, slides_equal
from .identity import ElementResolver, signature
from .session import EditingSession

__all__ = [
    'EditingSession',
    'ElementResolver',
    'SlideHistory',
    'signature',
    'slides_equal',
]
