"""
Mutation handlers - one coroutine per inbound presentation event.

Each handler checks its preconditions, performs one store mutation and
broadcasts the outcome. Only the join path reports failures back to the
caller; every other rejected operation is logged and dropped, and is
visible to clients only as a missing broadcast.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from .broadcast import Broadcaster
from .registry import Connection, SessionRegistry
from .schemas import (
    DOCUMENT_CHANGED,
    ERROR,
    PARTICIPANTS_CHANGED,
    SLIDE_UPDATED,
    AddSlide,
    ChangeUserRole,
    JoinPresentation,
    LeavePresentation,
    Participant,
    RemoveSlide,
    Role,
    UpdateSlide,
    dump,
    dump_participants,
)
from .store import DocumentNotFoundException, DocumentStore

logger = logging.getLogger(__name__)


class PresentationHandlers:
    """
    Routes inbound events to their handlers.

    Args:
        store: Authoritative document store
        registry: Channel membership for this server
        broadcaster: Fanout over the same registry (built if omitted)
    """

    def __init__(self, store: DocumentStore, registry: SessionRegistry, broadcaster: Broadcaster = None):
        self.store = store
        self.registry = registry
        self.broadcaster = broadcaster or Broadcaster(registry)
        self._routes = {
            "join_presentation": (JoinPresentation, self.join),
            "leave_presentation": (LeavePresentation, self.leave),
            "change_user_role": (ChangeUserRole, self.change_role),
            "update_slide": (UpdateSlide, self.update_slide),
            "add_slide": (AddSlide, self.add_slide),
            "remove_slide": (RemoveSlide, self.remove_slide),
        }

    async def dispatch(self, connection: Connection, message: Dict[str, Any]) -> None:
        """Validate a ``{"type", "payload"}`` frame and run its handler."""
        if not isinstance(message, dict):
            await self.broadcaster.emit_to(connection, ERROR, {"message": "Invalid message format"})
            return

        event = message.get("type")
        route = self._routes.get(event)
        if route is None:
            logger.warning(f"Unknown event type from {connection.id}: {event}")
            await self.broadcaster.emit_to(connection, ERROR, {"message": f"Unknown event type: {event}"})
            return

        model, handler = route
        try:
            payload = model.model_validate(message.get("payload") or {})
        except ValidationError as e:
            logger.warning(f"Malformed {event} payload from {connection.id}: {e.errors()}")
            await self.broadcaster.emit_to(connection, ERROR, {"message": f"Invalid {event} payload"})
            return

        await handler(connection, payload)

    async def disconnect(self, connection: Connection) -> None:
        """Forget a closed socket; in-flight operations finish on their own."""
        connection.closed = True
        left = self.registry.remove_connection(connection)
        if left:
            logger.info(f"Connection {connection.id} dropped from {len(left)} channels")

    # ─────────────────────────────────────────────────────────────────────────
    # Handlers
    # ─────────────────────────────────────────────────────────────────────────

    async def join(self, connection: Connection, payload: JoinPresentation) -> None:
        """Add or refresh the participant, subscribe the socket, send a snapshot."""
        doc_id = payload.presentation_id
        try:
            result = await self.store.upsert_participant(
                doc_id,
                Participant(id=payload.user_id, nickname=payload.nickname, role=Role.VIEWER),
            )
        except DocumentNotFoundException:
            logger.warning(f"[JOIN] Presentation {doc_id} not found")
            await self.broadcaster.emit_to(connection, ERROR, {"message": "Presentation not found"})
            return
        except Exception as e:
            logger.exception(f"[JOIN] Error joining presentation {doc_id}: {e}")
            await self.broadcaster.emit_to(connection, ERROR, {"message": "Failed to join presentation"})
            return

        document = result.document
        if connection.closed:
            # Socket went away while the store call was in flight; the roster
            # change still reaches whoever is in the channel
            logger.info(f"[JOIN] Connection {connection.id} closed before joining {doc_id}")
            if result.modified:
                await self.broadcaster.emit(doc_id, PARTICIPANTS_CHANGED, dump_participants(document.users))
            return

        self.registry.join(doc_id, connection, payload.user_id)
        await self.broadcaster.emit(doc_id, PARTICIPANTS_CHANGED, dump_participants(document.users))
        await self.broadcaster.emit_to(connection, DOCUMENT_CHANGED, dump(document))

    async def leave(self, connection: Connection, payload: LeavePresentation) -> None:
        """Unsubscribe the socket. The participant stays on the roster."""
        try:
            self.registry.leave(payload.presentation_id, connection)
        except Exception as e:
            logger.error(f"[LEAVE] Error leaving presentation {payload.presentation_id}: {e}")

    async def change_role(self, connection: Connection, payload: ChangeUserRole) -> None:
        """Owner-only: switch a participant between editor and viewer."""
        doc_id = payload.presentation_id
        try:
            actor_id = self.registry.user_for(doc_id, connection)
            document = await self.store.get(doc_id)
            if actor_id is None or document.role_of(actor_id) is not Role.OWNER:
                logger.warning(f"Role change in {doc_id} refused: {actor_id} is not the owner")
                return

            result = await self.store.set_participant_role(doc_id, payload.user_id, payload.role)
            if not result.matched:
                logger.warning(f"User {payload.user_id} not found in presentation {doc_id} for role change")
                return
            if result.modified:
                await self.broadcaster.emit(doc_id, PARTICIPANTS_CHANGED, dump_participants(result.document.users))
        except DocumentNotFoundException:
            logger.warning(f"Role change for missing presentation {doc_id}")
        except Exception as e:
            logger.exception(f"Error changing user role in {doc_id}: {e}")

    async def update_slide(self, connection: Connection, payload: UpdateSlide) -> None:
        """Replace one slide's elements; everyone in the channel gets the result."""
        doc_id = payload.presentation_id
        index = payload.slide_index
        try:
            result = await self.store.replace_slide_elements(doc_id, index, payload.elements)
            if not result.matched:
                logger.warning(f"Slide {index} not found or out of bounds in presentation {doc_id}")
                return
            await self.broadcaster.emit(doc_id, SLIDE_UPDATED, {
                "slideIndex": index,
                "elements": result.persisted,
            })
        except DocumentNotFoundException:
            logger.warning(f"Slide update for missing presentation {doc_id}")
        except Exception as e:
            logger.exception(f"Error updating slide {index} in {doc_id}: {e}")

    async def add_slide(self, connection: Connection, payload: AddSlide) -> None:
        """Owner-only: append an empty slide."""
        doc_id = payload.presentation_id
        try:
            document = await self.store.get(doc_id)
            if document.role_of(payload.user_id) is not Role.OWNER:
                logger.warning(f"User {payload.user_id} is not owner of presentation {doc_id}; slide not added")
                return

            result = await self.store.append_slide(doc_id)
            if not result.modified:
                logger.warning(f"Slide was not added to presentation {doc_id}")
                return
            await self.broadcaster.emit(doc_id, DOCUMENT_CHANGED, dump(result.document))
        except DocumentNotFoundException:
            logger.warning(f"Add slide for missing presentation {doc_id}")
        except Exception as e:
            logger.exception(f"Error adding slide to {doc_id}: {e}")

    async def remove_slide(self, connection: Connection, payload: RemoveSlide) -> None:
        """Owner-only: remove a slide and renumber the rest. The last slide stays."""
        doc_id = payload.presentation_id
        index = payload.slide_index
        try:
            document = await self.store.get(doc_id)
            if document.role_of(payload.user_id) is not Role.OWNER:
                logger.warning(f"User {payload.user_id} is not owner of presentation {doc_id}; slide not removed")
                return
            if len(document.slides) <= 1:
                logger.warning(f"Cannot remove the only slide of presentation {doc_id}")
                return
            if index >= len(document.slides):
                logger.warning(f"Slide {index} out of bounds in presentation {doc_id}")
                return

            result = await self.store.remove_slide_at(doc_id, index)
            if not result.matched:
                logger.warning(f"Slide {index} was not marked for removal in presentation {doc_id}")
                return
            await self.broadcaster.emit(doc_id, DOCUMENT_CHANGED, dump(result.document))
        except DocumentNotFoundException:
            logger.warning(f"Remove slide for missing presentation {doc_id}")
        except Exception as e:
            logger.exception(f"Error removing slide {index} from {doc_id}: {e}")
