"""Session management and persistence."""

from .manager import SessionManager
from .models import (
    IMAGE_PLACEHOLDER,
    ChatMessage,
    ChatSession,
    ImagePart,
    MessageContent,
    TextPart,
)
from .store import FileSessionStore, InMemorySessionStore, SessionStore

__all__ = [
    "IMAGE_PLACEHOLDER",
    "ChatMessage",
    "ChatSession",
    "FileSessionStore",
    "ImagePart",
    "InMemorySessionStore",
    "MessageContent",
    "SessionManager",
    "SessionStore",
    "TextPart",
]
