"""
Stable addressing of elements across persistence.

A freshly created element carries a provisional id until the store hands
back a permanent one. Lookups by a key fall back from authoritative id to
provisional id to the element's positional signature, so an edit aimed at
an element in the middle of being persisted still finds it.
"""

import uuid
from typing import Dict, List, Optional, Tuple

from collab.schemas import PROVISIONAL_ID_PREFIX, is_provisional_id

Signature = Tuple[str, int, int]


def signature(element) -> Signature:
    """Element type plus rounded position."""
    return (element.type, round(element.position.x), round(element.position.y))


class ElementResolver:
    """Resolves element keys to positions in a slide's element list."""

    def __init__(self):
        # provisional id -> authoritative id
        self._aliases: Dict[str, str] = {}
        # any key the client has used -> last signature seen for it
        self._signatures: Dict[str, Signature] = {}

    def new_provisional_id(self) -> str:
        return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex}"

    def remember(self, element) -> None:
        """Record an element's current signature under every id it is known by."""
        sig = signature(element)
        if element.id is not None:
            self._signatures[element.id] = sig
        if element.provisional_id is not None:
            self._signatures[element.provisional_id] = sig
            if element.id is not None and not is_provisional_id(element.id):
                self._aliases[element.provisional_id] = element.id

    def reconcile(self, elements: List) -> None:
        """Learn permanent ids and positions from an authoritative element list."""
        for element in elements:
            self.remember(element)

    def canonical(self, key: str) -> str:
        """Authoritative id for a key when one is known, else the key itself."""
        return self._aliases.get(key, key)

    def resolve(self, elements: List, key: str) -> Optional[int]:
        """Index of the element addressed by ``key``, or None."""
        target = self.canonical(key)
        for index, element in enumerate(elements):
            if element.id == target:
                return index

        for index, element in enumerate(elements):
            if element.provisional_id == key:
                self.remember(element)
                return index

        sig = self._signatures.get(key)
        if sig is not None:
            for index, element in enumerate(elements):
                if signature(element) == sig:
                    if key.startswith(PROVISIONAL_ID_PREFIX) and not is_provisional_id(element.id):
                        self._aliases[key] = element.id
                    return index
        return None

    def forget(self, key: str) -> None:
        target = self._aliases.pop(key, key)
        self._signatures.pop(key, None)
        self._signatures.pop(target, None)
