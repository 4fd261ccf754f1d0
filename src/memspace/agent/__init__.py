"""Context building, model transport and chat orchestration."""

from .chat import Attachment, ChatRequest, ChatResponse, ChatService, ContextStats
from .prompt import (
    SystemPromptParts,
    build_context_parts,
    build_system_prompt,
    estimate_context_tokens,
)
from .provider import GroqChatProvider

__all__ = [
    "Attachment",
    "ChatRequest",
    "ChatResponse",
    "ChatService",
    "ContextStats",
    "GroqChatProvider",
    "SystemPromptParts",
    "build_context_parts",
    "build_system_prompt",
    "estimate_context_tokens",
]
