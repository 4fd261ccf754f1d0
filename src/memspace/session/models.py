"""Chat session and message models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union

from ..memory.extractor import ExtractedMemory

IMAGE_PLACEHOLDER = "[Image attachment omitted from history]"


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


ContentPart = Union[TextPart, ImagePart]
MessageContent = Union[str, list[ContentPart]]


def content_to_json(content: MessageContent) -> str | list[dict[str, Any]]:
    """Serialise message content in the chat-completions wire format."""
    if isinstance(content, str):
        return content
    return [part.to_dict() for part in content]


def content_from_json(data: Any) -> MessageContent:
    if isinstance(data, str):
        return data
    if not isinstance(data, list):
        raise ValueError(f"Unsupported message content: {data!r}")

    parts: list[ContentPart] = []
    for part in data:
        part_type = part.get("type")
        if part_type == "text":
            parts.append(TextPart(text=part["text"]))
        elif part_type == "image_url":
            parts.append(ImagePart(url=part["image_url"]["url"]))
        else:
            raise ValueError(f"Unknown content part type: {part_type!r}")
    return parts


def flatten_content(content: MessageContent) -> str:
    """Collapse multimodal content to text for persistence.

    Text parts are joined with blank lines; image-only content becomes a
    placeholder so the turn is not lost.
    """
    if isinstance(content, str):
        return content

    texts = [
        part.text.strip()
        for part in content
        if isinstance(part, TextPart) and part.text.strip()
    ]
    combined = "\n\n".join(texts).strip()
    if combined:
        return combined
    if any(isinstance(part, ImagePart) for part in content):
        return IMAGE_PLACEHOLDER
    return ""


@dataclass
class ChatMessage:
    """A single turn in a chat session."""

    id: str
    role: str
    content: MessageContent
    timestamp: str
    extracted_data: ExtractedMemory | None = None

    @property
    def text(self) -> str:
        return flatten_content(self.content)

    def for_llm(self) -> dict[str, Any]:
        """Only role and content, as the chat API expects."""
        return {"role": self.role, "content": content_to_json(self.content)}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": content_to_json(self.content),
            "timestamp": self.timestamp,
        }
        if self.extracted_data is not None:
            data["extractedData"] = self.extracted_data.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        extracted = data.get("extractedData")
        return cls(
            id=data["id"],
            role=data["role"],
            content=content_from_json(data["content"]),
            timestamp=data["timestamp"],
            extracted_data=ExtractedMemory.from_dict(extracted) if extracted else None,
        )


@dataclass
class ChatSession:
    """An ordered, append-only conversation inside a space."""

    id: str
    space_id: str
    created_at: str
    updated_at: str
    name: str | None = None
    messages: list[ChatMessage] = field(default_factory=list)

    def for_storage(self) -> "ChatSession":
        """Copy with multimodal message content flattened to text."""
        return replace(
            self,
            messages=[
                replace(m, content=flatten_content(m.content)) for m in self.messages
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "spaceId": self.space_id}
        if self.name is not None:
            data["name"] = self.name
        data["messages"] = [m.to_dict() for m in self.messages]
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatSession":
        return cls(
            id=data["id"],
            space_id=data["spaceId"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            name=data.get("name"),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
        )
