"""
REST API endpoints for presentations.

Provides list/create/read/rename alongside the WebSocket real-time features.
Creating a presentation is where its first slide and owner come from.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from collab import Broadcaster, DocumentNotFoundException, DocumentStore
from collab.schemas import DOCUMENT_CHANGED, dump

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/presentations", tags=["presentations"])


# ─────────────────────────────────────────────────────────────────────────────
# Pydantic Models
# ─────────────────────────────────────────────────────────────────────────────

class PresentationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    creator_nickname: Optional[str] = Field(default=None, alias="creatorNickname")
    creator_user_id: Optional[str] = Field(default=None, alias="creatorUserId")


class PresentationUpdate(BaseModel):
    title: str = Field(min_length=1)


# ─────────────────────────────────────────────────────────────────────────────
# Dependencies
# ─────────────────────────────────────────────────────────────────────────────

def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/")
async def list_presentations(skip: int = 0, limit: int = 100, store: DocumentStore = Depends(get_store)):
    """List presentations (id, title, createdAt), newest first."""
    return await store.list_documents(skip=skip, limit=limit)


@router.post("/", status_code=201)
async def create_presentation(body: PresentationCreate, store: DocumentStore = Depends(get_store)):
    """Create a presentation with one empty slide owned by its creator."""
    title = (body.title or "").strip()
    nickname = (body.creator_nickname or "").strip()
    user_id = (body.creator_user_id or "").strip()
    if not title or not nickname or not user_id:
        raise HTTPException(
            status_code=400,
            detail="Title, creatorNickname, and creatorUserId are required",
        )

    document = await store.create(title, user_id, nickname)
    return dump(document)


@router.get("/{presentation_id}")
async def get_presentation(presentation_id: str, store: DocumentStore = Depends(get_store)):
    """Get the full presentation snapshot."""
    try:
        document = await store.get(presentation_id)
    except DocumentNotFoundException:
        raise HTTPException(status_code=404, detail="Presentation not found")
    return dump(document)


@router.put("/{presentation_id}")
async def update_presentation(
    presentation_id: str,
    body: PresentationUpdate,
    store: DocumentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Rename a presentation; connected viewers get the new snapshot."""
    try:
        document = await store.update_title(presentation_id, body.title.strip())
    except DocumentNotFoundException:
        raise HTTPException(status_code=404, detail="Presentation not found")

    snapshot = dump(document)
    await broadcaster.emit(presentation_id, DOCUMENT_CHANGED, snapshot)
    return snapshot
