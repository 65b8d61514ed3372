"""Linear undo/redo history over a presentation's slide list."""

from typing import List

from config import HISTORY_LIMIT
from collab.schemas import Slide


def copy_slides(slides: List[Slide]) -> List[Slide]:
    return [slide.model_copy(deep=True) for slide in slides]


def elements_equal(a: list, b: list) -> bool:
    """Field-by-field comparison of two element lists."""
    return [e.model_dump() for e in a] == [e.model_dump() for e in b]


def slides_equal(a: List[Slide], b: List[Slide]) -> bool:
    """Deep comparison of every element field and each slide's order."""
    if a is b:
        return True
    if len(a) != len(b):
        return False
    for slide_a, slide_b in zip(a, b):
        if slide_a.order != slide_b.order or not elements_equal(slide_a.elements, slide_b.elements):
            return False
    return True


class SlideHistory:
    """
    ``past`` / ``present`` / ``future`` stacks with a bounded past.

    Pushing after an undo discards the redo stack; there is no branching.
    """

    def __init__(self, initial: List[Slide], limit: int = HISTORY_LIMIT):
        self.limit = limit
        self.past: List[List[Slide]] = []
        self.present: List[Slide] = copy_slides(initial)
        self.future: List[List[Slide]] = []

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def push_state(self, slides: List[Slide]) -> bool:
        """Record a new present unless it equals the current one. Returns whether it did."""
        if slides_equal(slides, self.present):
            return False
        self.force_push_state(slides)
        return True

    def force_push_state(self, slides: List[Slide]) -> None:
        """Record a new present even when it equals the current one."""
        self.past.append(self.present)
        if len(self.past) > self.limit:
            del self.past[:len(self.past) - self.limit]
        self.present = copy_slides(slides)
        self.future = []

    def undo(self) -> bool:
        if not self.past:
            return False
        self.future.insert(0, self.present)
        self.present = self.past.pop()
        return True

    def redo(self) -> bool:
        if not self.future:
            return False
        self.past.append(self.present)
        self.present = self.future.pop(0)
        return True
