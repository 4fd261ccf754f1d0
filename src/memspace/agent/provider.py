"""Chat model transport backed by Groq."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from groq import APIError, AsyncGroq

from ..config import ProviderConfig
from ..errors import NotConfiguredError, TransportError
from ..session.models import ChatMessage

logger = logging.getLogger(__name__)


class GroqChatProvider:
    """Sends a system prompt plus session history to the Groq chat API.

    The provider is "not configured" when neither a client nor an API key is
    available; callers should check ``is_configured()`` before chatting.

    Example:
        provider = GroqChatProvider(ProviderConfig(api_key="..."))
        reply = await provider.chat_completion(system_prompt, session.messages)
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        client: AsyncGroq | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Model, credentials and sampling settings.
            client: Optional pre-built client (tests inject a mock here).
        """
        self.config = config or ProviderConfig()
        self._client: AsyncGroq | None = client

        if self._client is None and self.config.api_key:
            self._client = AsyncGroq(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
            )

        if self._client is None:
            logger.warning("Groq API key not configured. Set GROQ_API_KEY.")
        else:
            logger.info(f"AI provider initialized: groq ({self.config.model})")

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self.config.model

    def is_configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> AsyncGroq:
        if self._client is None:
            raise NotConfiguredError(
                "AI provider not initialized. Set GROQ_API_KEY environment variable."
            )
        return self._client

    @staticmethod
    def build_messages(
        system_prompt: str, history: list[ChatMessage]
    ) -> list[dict[str, Any]]:
        """System prompt first, then each message as role + content."""
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(m.for_llm() for m in history)
        return messages

    async def chat_completion(
        self, system_prompt: str, history: list[ChatMessage]
    ) -> str:
        """Return the completion text for the conversation.

        Raises:
            NotConfiguredError: if there is no client.
            TransportError: if the API fails or returns no content.
        """
        client = self._require_client()

        try:
            response = await client.chat.completions.create(
                model=self.config.model,
                messages=self.build_messages(system_prompt, history),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except APIError as e:
            logger.error(f"Groq API error: {e.message}")
            raise TransportError(f"AI Error: {e.message}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise TransportError("Empty response from AI")
        return content

    async def stream_completion(
        self, system_prompt: str, history: list[ChatMessage]
    ) -> AsyncIterator[str]:
        """Yield completion text deltas as they arrive."""
        client = self._require_client()

        try:
            stream = await client.chat.completions.create(
                model=self.config.model,
                messages=self.build_messages(system_prompt, history),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                stream=True,
            )
            async for chunk in stream:
                delta = chunk.choices[0].delta.content if chunk.choices else None
                if delta:
                    yield delta
        except APIError as e:
            logger.error(f"Groq API error: {e.message}")
            raise TransportError(f"AI Error: {e.message}") from e
