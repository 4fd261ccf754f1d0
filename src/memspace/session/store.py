"""Storage backends for chat sessions.

Both backends keep serialised snapshots, so a session object handed out by
``get`` is never shared with the store: callers must ``set`` it to persist.
"""

import json
from pathlib import Path
from typing import Any, Protocol

from .models import ChatSession


class SessionStore(Protocol):
    """Minimal document interface the session manager needs."""

    async def get(self, session_id: str) -> ChatSession | None: ...

    async def set(self, session: ChatSession) -> None: ...

    async def delete(self, session_id: str) -> bool: ...

    async def list_by_space(self, space_id: str) -> list[ChatSession]: ...


class InMemorySessionStore:
    """Process-local session store."""

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}

    async def get(self, session_id: str) -> ChatSession | None:
        data = self._sessions.get(session_id)
        return ChatSession.from_dict(data) if data is not None else None

    async def set(self, session: ChatSession) -> None:
        self._sessions[session.id] = session.to_dict()

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def list_by_space(self, space_id: str) -> list[ChatSession]:
        return [
            ChatSession.from_dict(data)
            for data in self._sessions.values()
            if data["spaceId"] == space_id
        ]


class FileSessionStore:
    """One JSON file per session in a directory."""

    def __init__(self, sessions_dir: Path) -> None:
        self.sessions_dir = Path(sessions_dir)
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def _session_file(self, session_id: str) -> Path:
        """Get the file path for a session."""
        return self.sessions_dir / f"{session_id}.json"

    def _load(self, path: Path) -> ChatSession | None:
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return ChatSession.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, ValueError, AttributeError, TypeError):
            return None

    async def get(self, session_id: str) -> ChatSession | None:
        return self._load(self._session_file(session_id))

    async def set(self, session: ChatSession) -> None:
        path = self._session_file(session.id)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2, ensure_ascii=False)

    async def delete(self, session_id: str) -> bool:
        path = self._session_file(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    async def list_by_space(self, space_id: str) -> list[ChatSession]:
        sessions = []
        for path in self.sessions_dir.glob("*.json"):
            session = self._load(path)
            if session is not None and session.space_id == space_id:
                sessions.append(session)
        return sessions
