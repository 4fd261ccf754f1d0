"""Chat orchestration: one user turn through context, model and memory."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..errors import NotConfiguredError
from ..logging import JSONLLogger, get_logger
from ..memory.extractor import ExtractedMemory, parse_memory_extract, save_extracted_memory
from ..memory.service import SpaceService
from ..session import ChatMessage, ImagePart, MessageContent, SessionManager, TextPart
from ..utils import now
from .prompt import build_system_prompt, count_section_items, estimate_context_tokens
from .provider import GroqChatProvider


@dataclass
class Attachment:
    """A file the client already uploaded somewhere reachable by URL.

    Only ``image`` attachments are sent to the model; text extracted from
    documents must already be folded into the message by the caller.
    """

    type: str
    url: str
    name: str | None = None


@dataclass
class ChatRequest:
    space_id: str
    message: str
    session_id: str | None = None
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class ContextStats:
    """What went into the system prompt for a turn."""

    facts_used: int
    notes_used: int
    tokens_estimate: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "factsUsed": self.facts_used,
            "notesUsed": self.notes_used,
            "tokensEstimate": self.tokens_estimate,
        }


@dataclass
class ChatResponse:
    session_id: str
    message: ChatMessage
    extracted_memory: ExtractedMemory | None
    context: ContextStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "message": self.message.to_dict(),
            "extractedMemory": (
                self.extracted_memory.to_dict() if self.extracted_memory else None
            ),
            "context": self.context.to_dict(),
        }


def build_user_content(message: str, attachments: list[Attachment]) -> MessageContent:
    """Plain text, or text plus image parts when images are attached."""
    images = [a for a in attachments if a.type == "image"]
    if not images:
        return message

    parts: list[TextPart | ImagePart] = []
    if message:
        parts.append(TextPart(text=message))
    parts.extend(ImagePart(url=a.url) for a in images)
    return parts


class ChatService:
    """Runs a chat turn: session → prompt → model → extraction → storage.

    Holds no state of its own between calls.
    """

    def __init__(
        self,
        spaces: SpaceService,
        sessions: SessionManager,
        provider: GroqChatProvider,
        event_logger: JSONLLogger | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> None:
        self.spaces = spaces
        self.sessions = sessions
        self.provider = provider
        self.events = event_logger or get_logger()
        self.conv_logger = conversation_logger or get_conversation_logger()

    async def chat(self, request: ChatRequest, owner_id: str | None = None) -> ChatResponse:
        """Process one user message.

        The user message is persisted before the model is called, so it
        survives a transport failure. Extracted memory is stored only after
        the assistant reply is persisted.

        Raises:
            SpaceNotFoundError: the space does not exist (nothing is written).
            NotConfiguredError: no model credentials (nothing is written).
            TransportError: the model call failed; propagated unchanged.
        """
        await self.spaces.get_space(request.space_id, owner_id)

        if not self.provider.is_configured():
            raise NotConfiguredError(
                "AI not configured. Please set GROQ_API_KEY environment variable."
            )

        session = await self.sessions.get_or_create_session(
            request.space_id, request.session_id
        )

        user_message = ChatMessage(
            id=str(uuid.uuid4()),
            role="user",
            content=build_user_content(request.message, request.attachments),
            timestamp=now(),
        )
        self.sessions.add_message(session, user_message)
        await self.sessions.save_session(session)
        self.conv_logger.log_user_message(
            session.id, request.message, attachments=len(request.attachments)
        )

        system_prompt = await build_system_prompt(self.spaces.storage, request.space_id)
        tokens_estimate = estimate_context_tokens(system_prompt)

        self.conv_logger.log_llm_request(
            session.id,
            model=self.provider.model,
            messages_count=len(session.messages),
            tokens_estimate=tokens_estimate,
        )

        start_time = time.time()
        try:
            raw_response = await self.provider.chat_completion(
                system_prompt, session.messages
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.conv_logger.log_error(session.id, str(e), context="chat_completion")
            self.events.log_chat_error(
                str(e),
                space_id=request.space_id,
                session_id=session.id,
                duration_ms=duration_ms,
            )
            raise
        duration_ms = (time.time() - start_time) * 1000
        self.conv_logger.log_llm_response(session.id, len(raw_response), duration_ms)

        parsed = parse_memory_extract(raw_response)
        extracted = parsed.extracted_memory

        assistant_message = ChatMessage(
            id=str(uuid.uuid4()),
            role="assistant",
            content=parsed.clean_response,
            timestamp=now(),
            extracted_data=extracted,
        )
        self.sessions.add_message(session, assistant_message)
        await self.sessions.save_session(session)
        self.conv_logger.log_assistant_message(session.id, parsed.clean_response)

        if extracted is not None:
            self.conv_logger.log_memory_extract(session.id, extracted.to_dict())
            saved = await save_extracted_memory(
                self.spaces, request.space_id, owner_id, extracted
            )
            self.events.log_memory_saved(
                space_id=request.space_id,
                session_id=session.id,
                saved_facts=saved.saved_facts,
                saved_notes=saved.saved_notes,
                saved_profile_updates=saved.saved_profile_updates,
            )

        stats = ContextStats(
            facts_used=count_section_items(system_prompt, "FACTS"),
            notes_used=count_section_items(system_prompt, "NOTES"),
            tokens_estimate=tokens_estimate,
        )
        self.events.log_chat_turn(
            space_id=request.space_id,
            session_id=session.id,
            duration_ms=duration_ms,
            tokens_estimate=tokens_estimate,
            facts_used=stats.facts_used,
            notes_used=stats.notes_used,
            extracted=extracted is not None,
        )

        return ChatResponse(
            session_id=session.id,
            message=assistant_message,
            extracted_memory=extracted,
            context=stats,
        )
