"""
EditingSession - one user's live view of a shared presentation.

Folds server broadcasts into the local undo history, applies local edits
optimistically and sends them as ``update_slide`` events. Structural
requests (add/remove slide, role changes) are only sent; the server
decides and answers with a broadcast.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config import HISTORY_LIMIT
from collab.schemas import (
    DOCUMENT_CHANGED,
    ERROR,
    PARTICIPANTS_CHANGED,
    SLIDE_UPDATED,
    Document,
    ElementList,
    Participant,
    Role,
    Slide,
    dump_elements,
    new_element,
)
from .history import SlideHistory, copy_slides, elements_equal
from .identity import ElementResolver

logger = logging.getLogger(__name__)

# (event type, payload) -> delivered to the server
Sender = Callable[[str, Dict[str, Any]], Awaitable[None]]


class EditingSession:
    """
    Client-side state for one presentation.

    Args:
        presentation_id: Presentation being edited
        user_id: Participant id this client joins as
        nickname: Display name sent on join
        send: Coroutine delivering an event to the server
        document: Initial snapshot, if already loaded over REST
        history_limit: Undo depth
    """

    def __init__(
        self,
        presentation_id: str,
        user_id: str,
        nickname: str,
        send: Sender,
        document: Optional[Document] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.presentation_id = presentation_id
        self.user_id = user_id
        self.nickname = nickname
        self._send = send
        self.document = document
        self.history = SlideHistory(document.slides if document else [], limit=history_limit)
        self.resolver = ElementResolver()
        self.current_slide_index = 0
        self.last_error: Optional[str] = None
        if document:
            self._reconcile(document.slides)

    # ─────────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def slides(self) -> List[Slide]:
        return self.history.present

    @property
    def users(self) -> List[Participant]:
        return self.document.users if self.document else []

    @property
    def role(self) -> Optional[Role]:
        return self.document.role_of(self.user_id) if self.document else None

    @property
    def can_edit(self) -> bool:
        return self.role in (Role.OWNER, Role.EDITOR)

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    def current_slide(self) -> Optional[Slide]:
        if 0 <= self.current_slide_index < len(self.slides):
            return self.slides[self.current_slide_index]
        return None

    def select_slide(self, index: int) -> bool:
        if 0 <= index < len(self.slides):
            self.current_slide_index = index
            return True
        return False

    # ─────────────────────────────────────────────────────────────────────────
    # Server events
    # ─────────────────────────────────────────────────────────────────────────

    def apply_event(self, event: str, payload: Any) -> None:
        """Fold one server event into local state."""
        if event == PARTICIPANTS_CHANGED:
            users = [Participant.model_validate(u) for u in payload]
            if self.document:
                self.document = self.document.model_copy(update={"users": users})
        elif event == DOCUMENT_CHANGED:
            self.document = Document.model_validate(payload)
            self._fold(self.document.slides)
        elif event == SLIDE_UPDATED:
            index = payload["slideIndex"]
            elements = ElementList.validate_python(payload["elements"])
            slides = copy_slides(self.slides)
            if 0 <= index < len(slides):
                slides[index] = slides[index].model_copy(update={"elements": elements})
                self._fold(slides)
            else:
                logger.warning(f"slide_updated for unknown slide {index}")
        elif event == ERROR:
            self.last_error = payload.get("message") if isinstance(payload, dict) else str(payload)
            logger.warning(f"Server error: {self.last_error}")
        else:
            logger.debug(f"Ignoring event {event}")

    def _reconcile(self, slides: List[Slide]) -> None:
        for slide in slides:
            self.resolver.reconcile(slide.elements)

    def _fold(self, slides: List[Slide]) -> None:
        self._reconcile(slides)
        self.history.push_state(slides)
        if self.current_slide_index >= len(self.slides):
            self.current_slide_index = max(0, len(self.slides) - 1)

    # ─────────────────────────────────────────────────────────────────────────
    # Outbound requests
    # ─────────────────────────────────────────────────────────────────────────

    async def join(self) -> None:
        await self._send("join_presentation", {
            "presentationId": self.presentation_id,
            "userId": self.user_id,
            "nickname": self.nickname,
        })

    async def leave(self) -> None:
        await self._send("leave_presentation", {
            "presentationId": self.presentation_id,
            "userId": self.user_id,
        })

    async def add_slide(self) -> None:
        await self._send("add_slide", {"presentationId": self.presentation_id, "userId": self.user_id})

    async def remove_slide(self, index: int) -> None:
        await self._send("remove_slide", {
            "presentationId": self.presentation_id,
            "slideIndex": index,
            "userId": self.user_id,
        })

    async def change_role(self, user_id: str, role: str) -> None:
        await self._send("change_user_role", {
            "presentationId": self.presentation_id,
            "userId": user_id,
            "role": role,
        })

    # ─────────────────────────────────────────────────────────────────────────
    # Local element edits on the current slide
    # ─────────────────────────────────────────────────────────────────────────

    async def add_element(self, kind: str, **overrides) -> Optional[str]:
        """Create an element with a provisional id. Returns that id."""
        slide = self.current_slide()
        if slide is None or not self.can_edit:
            return None
        element_id = self.resolver.new_provisional_id()
        element = new_element(kind, element_id, **overrides)
        self.resolver.remember(element)
        await self._commit_elements(list(slide.elements) + [element])
        return element_id

    async def update_element(self, key: str, **changes) -> bool:
        """Replace fields of the element addressed by ``key``."""
        slide = self.current_slide()
        if slide is None or not self.can_edit:
            return False
        elements = list(slide.elements)
        index = self.resolver.resolve(elements, key)
        if index is None:
            logger.debug(f"No element for key {key}")
            return False
        current = elements[index]
        data = current.model_dump()
        data.update(changes)
        elements[index] = type(current).model_validate(data)
        self.resolver.remember(elements[index])
        await self._commit_elements(elements)
        return True

    async def move_element(self, key: str, x: float, y: float) -> bool:
        return await self.update_element(key, position={"x": max(0, x), "y": max(0, y)})

    async def restyle_element(self, key: str, **style: str) -> bool:
        slide = self.current_slide()
        if slide is None:
            return False
        index = self.resolver.resolve(slide.elements, key)
        if index is None:
            return False
        merged = dict(slide.elements[index].style or {})
        merged.update(style)
        return await self.update_element(key, style=merged)

    async def delete_element(self, key: str) -> bool:
        slide = self.current_slide()
        if slide is None or not self.can_edit:
            return False
        elements = list(slide.elements)
        index = self.resolver.resolve(elements, key)
        if index is None:
            return False
        del elements[index]
        self.resolver.forget(key)
        await self._commit_elements(elements)
        return True

    async def _commit_elements(self, elements: List) -> None:
        index = self.current_slide_index
        slides = copy_slides(self.slides)
        slides[index] = slides[index].model_copy(update={"elements": elements})
        if self.history.push_state(slides):
            await self._send_slide(index, elements)

    async def _send_slide(self, index: int, elements: List) -> None:
        await self._send("update_slide", {
            "presentationId": self.presentation_id,
            "slideIndex": index,
            "elements": dump_elements(elements),
        })

    # ─────────────────────────────────────────────────────────────────────────
    # Undo / redo
    # ─────────────────────────────────────────────────────────────────────────

    async def undo(self) -> bool:
        before = self.slides
        if not self.history.undo():
            return False
        await self._sync_changed(before, self.slides)
        return True

    async def redo(self) -> bool:
        before = self.slides
        if not self.history.redo():
            return False
        await self._sync_changed(before, self.slides)
        return True

    async def _sync_changed(self, before: List[Slide], after: List[Slide]) -> None:
        """Send every slide whose elements differ; slide count changes stay local."""
        if not self.can_edit:
            return
        if len(before) != len(after):
            logger.warning("History step changes slide count; not sent to server")
            return
        for index, (old, new) in enumerate(zip(before, after)):
            if not elements_equal(old.elements, new.elements):
                await self._send_slide(index, new.elements)
