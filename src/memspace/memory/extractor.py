"""Memory extraction from model replies.

The model is asked to append a fenced ``memory_extract`` block with a JSON
object whenever it notices new information. This module strips that block
from the reply, validates its contents and stores what survives.

Only the first block in a reply is honoured; further blocks are left in the
text untouched.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .models import CONFIDENCE_LEVELS, IMPORTANCE_LEVELS, ProfileValue

if TYPE_CHECKING:
    from .service import SpaceService

logger = logging.getLogger(__name__)

MEMORY_EXTRACT_PATTERN = re.compile(r"```memory_extract\s*([\s\S]*?)```")

PROVENANCE_PREFIX = "Auto-extracted"


@dataclass
class ExtractedFact:
    category: str
    statement: str
    confidence: str
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "statement": self.statement,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass
class ExtractedNote:
    content: str
    importance: str
    category: str | None = None
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"content": self.content}
        if self.category is not None:
            data["category"] = self.category
        data["importance"] = self.importance
        data["reason"] = self.reason
        return data


@dataclass
class ExtractedProfileUpdate:
    category: str
    key: str
    value: ProfileValue
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "key": self.key,
            "value": self.value,
            "reason": self.reason,
        }


@dataclass
class ExtractedMemory:
    """Validated contents of a ``memory_extract`` block.

    Transient: it is turned into real facts, notes and profile entries and
    otherwise only kept on the assistant message for audit.
    """

    facts: list[ExtractedFact] = field(default_factory=list)
    notes: list[ExtractedNote] = field(default_factory=list)
    profile_updates: list[ExtractedProfileUpdate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.facts or self.notes or self.profile_updates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "facts": [f.to_dict() for f in self.facts],
            "notes": [n.to_dict() for n in self.notes],
            "profileUpdates": [u.to_dict() for u in self.profile_updates],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractedMemory":
        """Build from a JSON object, silently dropping invalid items."""
        return cls(
            facts=_validate_facts(data.get("facts")),
            notes=_validate_notes(data.get("notes")),
            profile_updates=_validate_profile_updates(data.get("profileUpdates")),
        )


@dataclass
class ParseResult:
    clean_response: str
    extracted_memory: ExtractedMemory | None = None


@dataclass
class SaveResult:
    """How many extracted items were actually stored."""

    saved_facts: int = 0
    saved_notes: int = 0
    saved_profile_updates: int = 0

    @property
    def total(self) -> int:
        return self.saved_facts + self.saved_notes + self.saved_profile_updates


def _reason(item: dict[str, Any]) -> str:
    reason = item.get("reason")
    return reason if isinstance(reason, str) else ""


def _validate_facts(items: Any) -> list[ExtractedFact]:
    if not isinstance(items, list):
        return []

    facts = []
    for item in items:
        if (
            isinstance(item, dict)
            and isinstance(item.get("category"), str)
            and isinstance(item.get("statement"), str)
            and item.get("confidence") in CONFIDENCE_LEVELS
        ):
            facts.append(
                ExtractedFact(
                    category=item["category"],
                    statement=item["statement"],
                    confidence=item["confidence"],
                    reason=_reason(item),
                )
            )
        else:
            logger.debug(f"Dropping invalid extracted fact: {item!r}")
    return facts


def _validate_notes(items: Any) -> list[ExtractedNote]:
    if not isinstance(items, list):
        return []

    notes = []
    for item in items:
        if (
            isinstance(item, dict)
            and isinstance(item.get("content"), str)
            and item.get("importance") in IMPORTANCE_LEVELS
        ):
            category = item.get("category")
            notes.append(
                ExtractedNote(
                    content=item["content"],
                    importance=item["importance"],
                    category=category if isinstance(category, str) else None,
                    reason=_reason(item),
                )
            )
        else:
            logger.debug(f"Dropping invalid extracted note: {item!r}")
    return notes


def _validate_profile_updates(items: Any) -> list[ExtractedProfileUpdate]:
    if not isinstance(items, list):
        return []

    updates = []
    for item in items:
        # A JSON null is a defined value; only a missing key is rejected.
        if (
            isinstance(item, dict)
            and isinstance(item.get("category"), str)
            and isinstance(item.get("key"), str)
            and "value" in item
        ):
            updates.append(
                ExtractedProfileUpdate(
                    category=item["category"],
                    key=item["key"],
                    value=item["value"],
                    reason=_reason(item),
                )
            )
        else:
            logger.debug(f"Dropping invalid profile update: {item!r}")
    return updates


def parse_memory_extract(response: str) -> ParseResult:
    """Split a model reply into the visible text and its extracted memory.

    Args:
        response: Raw completion text.

    Returns:
        ParseResult whose ``extracted_memory`` is None when there is no block,
        the block is empty or malformed, or nothing in it survives validation.
    """
    match = MEMORY_EXTRACT_PATTERN.search(response)
    if match is None:
        return ParseResult(clean_response=response.strip())

    clean_response = MEMORY_EXTRACT_PATTERN.sub("", response, count=1).strip()
    json_str = match.group(1).strip()
    if not json_str:
        return ParseResult(clean_response=clean_response)

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse memory extract: {e}")
        return ParseResult(clean_response=clean_response)

    if not isinstance(data, dict):
        logger.warning("Invalid memory extract: top-level value is not an object")
        return ParseResult(clean_response=clean_response)

    memory = ExtractedMemory.from_dict(data)
    return ParseResult(
        clean_response=clean_response,
        extracted_memory=None if memory.is_empty else memory,
    )


async def save_extracted_memory(
    service: SpaceService,
    space_id: str,
    owner_id: str | None,
    memory: ExtractedMemory,
) -> SaveResult:
    """Store every extracted item through the space service.

    Items are saved one by one; a failure is logged and the remaining items
    are still attempted, so the result may reflect a partial save.
    """
    result = SaveResult()

    for fact in memory.facts:
        try:
            await service.add_fact(
                space_id,
                category=fact.category,
                statement=fact.statement,
                confidence=fact.confidence,
                source_type="inference",
                source_reference=f"{PROVENANCE_PREFIX}: {fact.reason}",
                owner_id=owner_id,
            )
            result.saved_facts += 1
        except Exception as e:
            logger.warning(f"Failed to save extracted fact: {e}")

    for note in memory.notes:
        try:
            await service.add_note(
                space_id,
                content=note.content,
                category=note.category,
                importance=note.importance,
                fact_candidate=note.importance == "high",
                source_type="inference",
                source_reference=f"{PROVENANCE_PREFIX}: {note.reason}",
                owner_id=owner_id,
            )
            result.saved_notes += 1
        except Exception as e:
            logger.warning(f"Failed to save extracted note: {e}")

    for update in memory.profile_updates:
        try:
            await service.add_profile_entry(
                space_id,
                category=update.category,
                key=update.key,
                value=update.value,
                source_type="inference",
                source_reference=f"{PROVENANCE_PREFIX}: {update.reason}",
                owner_id=owner_id,
            )
            result.saved_profile_updates += 1
        except Exception as e:
            logger.warning(f"Failed to save profile update: {e}")

    return result


def requires_confirmation(memory: ExtractedMemory) -> bool:
    """Whether the extraction should be shown to the user for confirmation."""
    return (
        len(memory.facts) > 0
        or any(n.importance == "high" for n in memory.notes)
        or len(memory.profile_updates) > 0
    )
