"""
Document Store Adapter - authoritative, versioned storage of presentations.

Every write is a conditional UPDATE guarded by the row's ``version``. The
single-field operations (participants, roles, element lists, appends) are
expressed as pure mutations of the stored record and re-applied against a
fresh read when they lose a version race, which gives them the same effect
as an atomic match-and-modify on the server. Slide removal is the one
application-level read-modify-write: it tombstones the slot, then compacts
and renumbers under the retry policy.

SQLAlchemy sessions are synchronous, so every call runs in the default
executor to keep the event loop free.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from config import RETRY_MAX_ATTEMPTS, STORE_APPLY_ATTEMPTS
from database.crud import PresentationCRUD
from database.database import session_scope
from database.models import Presentation
from .retry import exponential_backoff, with_retry
from .schemas import Document, Participant, Role, dump, is_provisional_id

logger = logging.getLogger(__name__)


class DocumentStoreException(Exception):
    """Base exception for document store operations"""
    pass


class DocumentNotFoundException(DocumentStoreException):
    """Raised when a presentation id does not exist"""
    pass


class VersionConflictException(DocumentStoreException):
    """Raised when a conditional write finds the record at another version"""
    pass


def is_version_conflict(exc: BaseException) -> bool:
    return isinstance(exc, VersionConflictException)


@dataclass
class UpdateResult:
    """Outcome of a conditional update, in matched/modified terms."""
    matched: bool
    modified: bool
    document: Optional[Document] = None
    # Operation specific value, e.g. the element list as persisted
    persisted: Any = None


# A mutation edits the state dict in place and reports whether its
# condition matched.
Mutation = Callable[[Dict[str, Any]], bool]


def _new_id() -> str:
    return uuid.uuid4().hex


def _to_document(row: Presentation, **overrides) -> Document:
    data = row.to_dict()
    data.update(overrides)
    # Tombstoned slots are invisible to readers until compaction
    data["slides"] = [s for s in data["slides"] if s is not None]
    return Document.model_validate(data)


def _compact(slides: List[Optional[dict]]) -> List[dict]:
    compacted = [s for s in slides if s is not None]
    for index, slide in enumerate(compacted):
        slide["order"] = index
    return compacted


def _persistable_elements(elements: List[Any]) -> List[dict]:
    """
    Dump elements for storage, giving permanent ids to new ones.

    Elements without an id or with a provisional id get a fresh id and keep
    the provisional one in ``provisionalId``. Duplicate ids within the list
    are reassigned so ids stay unique per slide.
    """
    persisted = []
    seen = set()
    for element in elements:
        data = element if isinstance(element, dict) else dump(element)
        data = dict(data)
        element_id = data.get("id")
        if is_provisional_id(element_id):
            if element_id is not None:
                data["provisionalId"] = element_id
            data["id"] = _new_id()
        elif element_id in seen:
            logger.warning(f"Duplicate element id {element_id} reassigned")
            data["id"] = _new_id()
        seen.add(data["id"])
        persisted.append(data)
    return persisted


class DocumentStore:
    """
    Async facade over the presentations table.

    Args:
        session_factory: SQLAlchemy sessionmaker bound to the store's engine
        apply_attempts: Bound on re-applying a single-field mutation
        retry_attempts: Bound on compaction retries after slide removal
        retry_backoff: Backoff function for compaction retries
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        apply_attempts: int = STORE_APPLY_ATTEMPTS,
        retry_attempts: int = RETRY_MAX_ATTEMPTS,
        retry_backoff: Callable[[int], float] = None,
    ):
        self._session_factory = session_factory
        self.apply_attempts = apply_attempts
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff or exponential_backoff()

    async def _run(self, fn: Callable, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args))

    # ─────────────────────────────────────────────────────────────────────────
    # Synchronous primitives (executor side)
    # ─────────────────────────────────────────────────────────────────────────

    def _get_sync(self, doc_id: str) -> Document:
        with session_scope(self._session_factory) as db:
            row = PresentationCRUD.get_presentation_by_id(db, doc_id)
            if row is None:
                raise DocumentNotFoundException(f"Presentation '{doc_id}' not found")
            return _to_document(row)

    def _apply_sync(self, doc_id: str, mutate: Mutation) -> UpdateResult:
        for attempt in range(self.apply_attempts):
            with session_scope(self._session_factory) as db:
                row = PresentationCRUD.get_presentation_by_id(db, doc_id)
                if row is None:
                    raise DocumentNotFoundException(f"Presentation '{doc_id}' not found")

                before = {
                    "title": row.title,
                    "slides": copy.deepcopy(row.slides or []),
                    "users": copy.deepcopy(row.users or []),
                }
                state = copy.deepcopy(before)
                if not mutate(state):
                    return UpdateResult(matched=False, modified=False, document=_to_document(row))

                changed = {k: v for k, v in state.items() if v != before[k]}
                if not changed:
                    return UpdateResult(matched=True, modified=False, document=_to_document(row))

                expected = row.version
                written = PresentationCRUD.update_if_version(db, doc_id, expected, **changed)
                if written:
                    document = _to_document(row, version=expected + 1, **state)
                    return UpdateResult(matched=True, modified=True, document=document)

                if not PresentationCRUD.exists(db, doc_id):
                    raise DocumentNotFoundException(f"Presentation '{doc_id}' not found")
                logger.debug(f"Presentation {doc_id}: version moved, re-applying (attempt {attempt + 1})")

        raise VersionConflictException(
            f"Presentation '{doc_id}' kept changing; gave up after {self.apply_attempts} attempts"
        )

    def _compact_sync(self, doc_id: str) -> Document:
        with session_scope(self._session_factory) as db:
            row = PresentationCRUD.get_presentation_by_id(db, doc_id)
            if row is None:
                raise DocumentNotFoundException(f"Presentation '{doc_id}' not found")

            slides = copy.deepcopy(row.slides or [])
            compacted = _compact(copy.deepcopy(slides))
            if compacted == slides:
                return _to_document(row)

            expected = row.version
            written = PresentationCRUD.update_if_version(db, doc_id, expected, slides=compacted)
            if not written:
                if not PresentationCRUD.exists(db, doc_id):
                    raise DocumentNotFoundException(f"Presentation '{doc_id}' not found")
                raise VersionConflictException(
                    f"Presentation '{doc_id}' changed since version {expected}"
                )
            return _to_document(row, slides=compacted, version=expected + 1)

    def _create_sync(self, title: str, creator_id: str, creator_nickname: str) -> Document:
        with session_scope(self._session_factory) as db:
            row = PresentationCRUD.create_presentation(
                db,
                presentation_id=_new_id(),
                title=title,
                slides=[{"id": _new_id(), "order": 0, "elements": []}],
                users=[{"id": creator_id, "nickname": creator_nickname, "role": Role.OWNER.value}],
            )
            return _to_document(row)

    def _list_sync(self, skip: int, limit: int) -> List[Dict[str, Any]]:
        with session_scope(self._session_factory) as db:
            rows = PresentationCRUD.get_all_presentations(db, skip=skip, limit=limit)
            summaries = []
            for row in rows:
                data = row.to_dict()
                summaries.append({"id": data["id"], "title": data["title"], "createdAt": data["createdAt"]})
            return summaries

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    async def create(self, title: str, creator_id: str, creator_nickname: str) -> Document:
        """Create a presentation with one empty slide and its creator as owner."""
        document = await self._run(self._create_sync, title, creator_id, creator_nickname)
        logger.info(f"Created presentation {document.id} for owner {creator_id}")
        return document

    async def list_documents(self, skip: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
        """List presentation summaries (id, title, createdAt)."""
        return await self._run(self._list_sync, skip, limit)

    async def get(self, doc_id: str) -> Document:
        """Read the whole record. Raises DocumentNotFoundException."""
        return await self._run(self._get_sync, doc_id)

    async def update_title(self, doc_id: str, title: str) -> Document:
        def mutate(state):
            state["title"] = title
            return True

        result = await self._run(self._apply_sync, doc_id, mutate)
        return result.document

    async def upsert_participant(self, doc_id: str, participant: Participant) -> UpdateResult:
        """Insert the participant if absent, else update its nickname only."""
        def mutate(state):
            for user in state["users"]:
                if user["id"] == participant.id:
                    user["nickname"] = participant.nickname
                    return True
            state["users"].append(dump(participant))
            return True

        return await self._run(self._apply_sync, doc_id, mutate)

    async def set_participant_role(self, doc_id: str, participant_id: str, role) -> UpdateResult:
        """
        Set a participant's role.

        Unmatched when the participant is absent. The owner is matched but
        never modified: ownership is fixed at creation.
        """
        role = Role(role)

        def mutate(state):
            for user in state["users"]:
                if user["id"] != participant_id:
                    continue
                if user["role"] == Role.OWNER.value or role is Role.OWNER:
                    logger.warning(f"Refusing to change ownership of presentation {doc_id}")
                    return True
                user["role"] = role.value
                return True
            return False

        return await self._run(self._apply_sync, doc_id, mutate)

    async def append_slide(self, doc_id: str) -> UpdateResult:
        """Append an empty slide with order equal to the current slide count."""
        def mutate(state):
            slides = _compact(state["slides"])
            slides.append({"id": _new_id(), "order": len(slides), "elements": []})
            state["slides"] = slides
            return True

        return await self._run(self._apply_sync, doc_id, mutate)

    async def replace_slide_elements(self, doc_id: str, index: int, elements: List[Any]) -> UpdateResult:
        """
        Replace the element list of the slide at ``index`` wholesale.

        Unmatched when no slide exists at that index. ``persisted`` on the
        result holds the element list as stored.
        """
        persisted = _persistable_elements(elements)

        def mutate(state):
            # Indexes address the slide list as readers see it, without holes
            slides = _compact(state["slides"])
            if index >= len(slides):
                return False
            slides[index]["elements"] = copy.deepcopy(persisted)
            state["slides"] = slides
            return True

        result = await self._run(self._apply_sync, doc_id, mutate)
        result.persisted = persisted
        return result

    async def tombstone_slide(self, doc_id: str, index: int) -> UpdateResult:
        """Null the slot at ``index`` unless it is the last live slide."""
        def mutate(state):
            slides = _compact(state["slides"])
            if index >= len(slides) or len(slides) <= 1:
                return False
            slides[index] = None
            state["slides"] = slides
            return True

        return await self._run(self._apply_sync, doc_id, mutate)

    async def compact_slides(self, doc_id: str) -> Document:
        """
        Reload, drop tombstones and renumber ``order`` in one conditional write.

        Raises VersionConflictException when another writer got in between
        the read and the write.
        """
        return await self._run(self._compact_sync, doc_id)

    async def remove_slide_at(self, doc_id: str, index: int) -> UpdateResult:
        """Tombstone the slide at ``index`` then compact under the retry policy."""
        result = await self.tombstone_slide(doc_id, index)
        if not result.matched:
            return result

        document = await with_retry(
            lambda: self.compact_slides(doc_id),
            is_retryable=is_version_conflict,
            max_attempts=self.retry_attempts,
            backoff=self.retry_backoff,
        )
        return UpdateResult(matched=True, modified=True, document=document)
