"""Session manager for chat history per space."""

import logging
import uuid

from ..utils import now
from .models import ChatMessage, ChatSession
from .store import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, loads, lists, renames and deletes chat sessions.

    A session lives in exactly one space. Deleted ids are never revived:
    asking for a stale id creates a brand new session instead.

    Writes are whole-session snapshots with no locking, so two concurrent
    turns on the same session may lose one of the updates.
    """

    def __init__(self, store: SessionStore | None = None) -> None:
        self.store = store or InMemorySessionStore()

    async def create_session(self, space_id: str) -> ChatSession:
        timestamp = now()
        session = ChatSession(
            id=str(uuid.uuid4()),
            space_id=space_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        await self.store.set(session)
        logger.info(f"Created session {session.id} for space {space_id}")
        return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        return await self.store.get(session_id)

    async def get_or_create_session(
        self, space_id: str, session_id: str | None = None
    ) -> ChatSession:
        """Return the given session if it belongs to ``space_id``, else a new one."""
        if session_id:
            existing = await self.store.get(session_id)
            if existing is not None and existing.space_id == space_id:
                return existing
        return await self.create_session(space_id)

    async def list_sessions(self, space_id: str) -> list[ChatSession]:
        """Sessions of a space, most recently active first."""
        sessions = await self.store.list_by_space(space_id)
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    async def update_session(
        self, session_id: str, *, name: str | None = None
    ) -> ChatSession | None:
        """Rename a session. Returns None if it does not exist."""
        session = await self.store.get(session_id)
        if session is None:
            return None

        if name is not None:
            session.name = name
        session.updated_at = now()
        await self.store.set(session)
        return session

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist."""
        return await self.store.delete(session_id)

    async def clear_space_sessions(self, space_id: str) -> int:
        """Delete every session of a space. Returns how many were removed."""
        count = 0
        for session in await self.store.list_by_space(space_id):
            if await self.store.delete(session.id):
                count += 1
        return count

    def add_message(self, session: ChatSession, message: ChatMessage) -> None:
        """Append a message to the session history."""
        session.messages.append(message)
        session.updated_at = now()

    async def save_session(self, session: ChatSession) -> None:
        """Persist a session, flattening multimodal content.

        The passed object keeps its image parts so the current turn can still
        send them to the model.
        """
        await self.store.set(session.for_storage())

    async def get_chat_history(self, session_id: str) -> list[ChatMessage]:
        session = await self.store.get(session_id)
        return session.messages if session is not None else []

    async def export_session(self, session_id: str) -> ChatSession | None:
        return await self.store.get(session_id)
