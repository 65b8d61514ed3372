"""
Wire and domain models for shared presentations.

Elements are a closed tagged union keyed on ``type``; pydantic picks the
variant from the discriminator and rejects unknown types. All models dump
with camelCase aliases so the JSON on the socket matches what the browser
client sends.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


# Client-generated element ids start with this prefix until the store
# replaces them with permanent ones.
PROVISIONAL_ID_PREFIX = "tmp_"

# Outbound event names
PARTICIPANTS_CHANGED = "participants_changed"
DOCUMENT_CHANGED = "document_changed"
SLIDE_UPDATED = "slide_updated"
ERROR = "error"


def is_provisional_id(element_id: Optional[str]) -> bool:
    return element_id is None or element_id.startswith(PROVISIONAL_ID_PREFIX)


class Role(str, Enum):
    """Role of a participant in one presentation."""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class Position(BaseModel):
    x: float
    y: float


class Size(BaseModel):
    width: float
    height: float


class _ElementBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Browser clients historically send ``_id``
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    provisional_id: Optional[str] = Field(default=None, alias="provisionalId")
    position: Position
    size: Optional[Size] = None
    style: Optional[Dict[str, str]] = None


class TextElement(_ElementBase):
    type: Literal["text"] = "text"
    content: str = ""


class ImageElement(_ElementBase):
    type: Literal["image"] = "image"
    content: str = Field(min_length=1)  # image URL or data reference


class RectangleElement(_ElementBase):
    type: Literal["rectangle"] = "rectangle"


class CircleElement(_ElementBase):
    type: Literal["circle"] = "circle"


class ArrowElement(_ElementBase):
    type: Literal["arrow"] = "arrow"


Element = Annotated[
    Union[TextElement, ImageElement, RectangleElement, CircleElement, ArrowElement],
    Field(discriminator="type"),
]

ELEMENT_TYPES = ("text", "image", "rectangle", "circle", "arrow")

ElementList = TypeAdapter(List[Element])


def new_element(kind: str, element_id: str, **overrides: Any):
    """
    Build an element of ``kind`` with the editor's default geometry and style.

    ``overrides`` replace top-level fields (position, size, style, content).
    """
    if kind == "text":
        element = TextElement(
            id=element_id,
            content="New text",
            position=Position(x=100, y=100),
            size=Size(width=200, height=50),
            style={
                "border": "1px dashed #ccc",
                "padding": "8px",
                "borderRadius": "4px",
                "backgroundColor": "#ffffff",
                "fontSize": "16px",
                "fontFamily": "Arial, sans-serif",
            },
        )
    elif kind == "image":
        element = ImageElement(
            id=element_id,
            content="https://via.placeholder.com/150",
            position=Position(x=300, y=150),
            size=Size(width=150, height=150),
            style={"border": "2px solid #9ca3af", "borderRadius": "4px"},
        )
    elif kind == "rectangle":
        element = RectangleElement(
            id=element_id,
            position=Position(x=150, y=150),
            size=Size(width=150, height=100),
            style={
                "backgroundColor": "#3b82f6",
                "border": "2px solid #1d4ed8",
                "borderRadius": "8px",
            },
        )
    elif kind == "circle":
        element = CircleElement(
            id=element_id,
            position=Position(x=200, y=200),
            size=Size(width=120, height=120),
            style={"backgroundColor": "#ef4444", "borderRadius": "50%"},
        )
    elif kind == "arrow":
        element = ArrowElement(
            id=element_id,
            position=Position(x=250, y=250),
            size=Size(width=100, height=20),
            style={
                "backgroundColor": "#10b981",
                "clipPath": "polygon(0 50%, 80% 50%, 80% 30%, 100% 50%, 80% 70%, 80% 50%)",
            },
        )
    else:
        raise ValueError(f"Unknown element type: {kind}")

    if overrides:
        # Round-trip through validation so overrides get coerced like wire data
        data = element.model_dump(by_alias=True)
        data.update(overrides)
        element = type(element).model_validate(data)
    return element


class Slide(BaseModel):
    id: Optional[str] = None
    order: int = Field(ge=0)
    elements: List[Element] = Field(default_factory=list)


class Participant(BaseModel):
    id: str
    nickname: str
    role: Role = Role.VIEWER


class Document(BaseModel):
    """Snapshot of a presentation as read from the store."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    slides: List[Slide] = Field(default_factory=list)
    users: List[Participant] = Field(default_factory=list)
    version: int = 1
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    def participant(self, user_id: str) -> Optional[Participant]:
        return next((u for u in self.users if u.id == user_id), None)

    def role_of(self, user_id: str) -> Optional[Role]:
        user = self.participant(user_id)
        return user.role if user else None


def dump(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict with wire aliases."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_elements(elements: List[Any]) -> List[Dict[str, Any]]:
    return [dump(e) for e in elements]


def dump_participants(users: List[Participant]) -> List[Dict[str, Any]]:
    return [dump(u) for u in users]


# ─────────────────────────────────────────────────────────────────────────────
# Inbound event payloads
# ─────────────────────────────────────────────────────────────────────────────

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    presentation_id: str = Field(alias="presentationId", min_length=1)


class JoinPresentation(_Payload):
    user_id: str = Field(alias="userId", min_length=1)
    nickname: str = Field(min_length=1)


class LeavePresentation(_Payload):
    user_id: Optional[str] = Field(default=None, alias="userId")


class ChangeUserRole(_Payload):
    user_id: str = Field(alias="userId", min_length=1)
    role: Literal["editor", "viewer"]


class UpdateSlide(_Payload):
    slide_index: int = Field(alias="slideIndex", ge=0)
    elements: List[Element]


class AddSlide(_Payload):
    user_id: str = Field(alias="userId", min_length=1)


class RemoveSlide(_Payload):
    slide_index: int = Field(alias="slideIndex", ge=0)
    user_id: str = Field(alias="userId", min_length=1)
