"""Context builder: renders a space's knowledge into the system prompt.

The size of the prompt is bounded by per-section caps (facts, notes, timeline)
applied after ranking, so the highest-ranked items always survive truncation.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar

from ..memory.models import (
    Fact,
    Facts,
    Notes,
    Profile,
    ProfileEntry,
    ProfileValue,
    SpaceMetadata,
    Timeline,
)
from ..utils import parse_timestamp

if TYPE_CHECKING:
    from ..memory.storage import SpaceStorage

MAX_FACTS = 30
MAX_NOTES = 15
MAX_TIMELINE = 10

CHARS_PER_TOKEN = 3

CONFIDENCE_RANK = {"verified": 0, "high": 1, "medium": 2, "low": 3}
IMPORTANCE_RANK = {"high": 0, "medium": 1, "low": 2}

CONFIDENCE_GLYPHS = {"verified": "✓", "high": "◉", "medium": "○", "low": "◌"}
IMPORTANCE_GLYPHS = {"high": "⚡", "medium": "•", "low": "○"}
DEFAULT_GLYPH = "•"

ITEM_GLYPHS = ("✓", "◉", "○", "◌", "•", "⚡")

BASE_INSTRUCTIONS = """You are an AI assistant with persistent memory.
You have access to structured information about the user.
Use this information to give personalised answers.

RULES:
1. Do not ask for information that is already in the context
2. Refer to known facts naturally ("as you mentioned before...")
3. If the information is missing, say so honestly
4. Distinguish FACTS (verified) from NOTES (observations)
5. When you notice new important information, point it out"""

HEALTH_INSTRUCTIONS = """
IMPORTANT: This space contains health data.
- Never make a diagnosis
- Use advisory language ("I recommend consulting a doctor")
- State uncertainty clearly"""

EXTRACTION_INSTRUCTIONS = """
=== MEMORY EXTRACTION ===
If NEW important information worth remembering appears in the conversation,
append a JSON block in this format at the end of your answer:

```memory_extract
{
  "facts": [
    {
      "category": "category",
      "statement": "fact to remember",
      "confidence": "high|medium|low",
      "reason": "why it matters"
    }
  ],
  "notes": [
    {
      "content": "observation",
      "category": "category",
      "importance": "high|medium|low",
      "reason": "why it is worth writing down"
    }
  ],
  "profileUpdates": [
    {
      "category": "category",
      "key": "key",
      "value": "value",
      "reason": "why the profile changes"
    }
  ]
}
```

Add this block ONLY when there is new information to store.
Omit it entirely otherwise, and never repeat what is already in the context."""


@dataclass
class SystemPromptParts:
    """Independently rendered sections of the system prompt."""

    base_instructions: str
    space_context: str
    profile_section: str
    facts_section: str
    notes_section: str
    timeline_section: str
    extraction_instructions: str

    def render(self) -> str:
        return "\n\n".join(
            [
                self.base_instructions,
                self.space_context,
                self.profile_section,
                self.facts_section,
                self.notes_section,
                self.timeline_section,
                self.extraction_instructions,
            ]
        )


T = TypeVar("T")


def _group_by_category(items: list[T], category_of) -> dict[str, list[T]]:
    """Group preserving the order in which categories first appear."""
    grouped: dict[str, list[T]] = {}
    for item in items:
        grouped.setdefault(category_of(item), []).append(item)
    return grouped


def _format_value(value: ProfileValue) -> str:
    if value is None:
        return "null"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_bound(value: str | None) -> datetime | None:
    """An unset or unparseable validity bound is open."""
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def _is_current(entry: ProfileEntry, at: datetime) -> bool:
    valid_from = _parse_bound(entry.valid_from)
    if valid_from is not None and valid_from > at:
        return False
    valid_until = _parse_bound(entry.valid_until)
    if valid_until is not None and valid_until < at:
        return False
    return True


def build_base_instructions(metadata: SpaceMetadata) -> str:
    prompt = BASE_INSTRUCTIONS
    if metadata.rules.allow_health_data:
        prompt += "\n" + HEALTH_INSTRUCTIONS
    if metadata.rules.custom_instructions:
        prompt += "\n\n" + metadata.rules.custom_instructions
    return prompt


def build_space_context(metadata: SpaceMetadata) -> str:
    tags = ", ".join(metadata.tags) or "none"
    return (
        f"=== CONTEXT: {metadata.name} ===\n"
        f"Description: {metadata.description}\n"
        f"Tags: {tags}"
    )


def build_profile_section(profile: Profile, now: datetime | None = None) -> str:
    """Currently valid profile entries grouped by category."""
    at = now or datetime.now(timezone.utc)
    valid = [e for e in profile.entries if _is_current(e, at)]

    # An explicit placeholder, so the model never reads emptiness from silence
    if not valid:
        return "=== PROFILE ===\nProfile is empty."

    lines = ["=== PROFILE ==="]
    for category, entries in _group_by_category(valid, lambda e: e.category).items():
        lines.append("")
        lines.append(f"[{category.upper()}]")
        for entry in entries:
            lines.append(f"• {entry.key}: {_format_value(entry.value)}")
    return "\n".join(lines)


def rank_facts(facts: list[Fact]) -> list[Fact]:
    """Confidence first (verified highest), newest first within a level."""
    newest_first = sorted(facts, key=lambda f: f.created_at, reverse=True)
    return sorted(
        newest_first,
        key=lambda f: CONFIDENCE_RANK.get(f.confidence, len(CONFIDENCE_RANK)),
    )


def build_facts_section(facts: Facts) -> str:
    if not facts.items:
        return "=== FACTS ===\nNo facts."

    top = rank_facts(facts.items)[:MAX_FACTS]

    lines = ["=== FACTS (verified) ==="]
    for category, items in _group_by_category(top, lambda f: f.category).items():
        lines.append("")
        lines.append(f"[{category.upper()}]")
        for fact in items:
            glyph = CONFIDENCE_GLYPHS.get(fact.confidence, DEFAULT_GLYPH)
            tags = f" [{', '.join(fact.tags)}]" if fact.tags else ""
            lines.append(f"{glyph} {fact.statement}{tags}")
    return "\n".join(lines)


def build_notes_section(notes: Notes) -> str:
    """Active notes only; promoted notes are represented by their fact."""
    active = [n for n in notes.items if not n.is_promoted]
    newest_first = sorted(active, key=lambda n: n.created_at, reverse=True)
    top = sorted(
        newest_first,
        key=lambda n: IMPORTANCE_RANK.get(n.importance, len(IMPORTANCE_RANK)),
    )[:MAX_NOTES]

    if not top:
        return "=== NOTES ===\nNo notes."

    lines = ["=== NOTES (observations, unverified) ==="]
    for note in top:
        glyph = IMPORTANCE_GLYPHS.get(note.importance, DEFAULT_GLYPH)
        category = f"[{note.category}] " if note.category else ""
        lines.append(f"{glyph} {category}{note.content}")
    return "\n".join(lines)


def _format_date(timestamp: str) -> str:
    try:
        return parse_timestamp(timestamp).date().isoformat()
    except ValueError:
        return timestamp


def build_timeline_section(timeline: Timeline) -> str:
    recent = sorted(timeline.entries, key=lambda e: e.timestamp, reverse=True)[:MAX_TIMELINE]

    if not recent:
        return "=== RECENT CHANGES ===\nHistory is empty."

    lines = ["=== RECENT CHANGES ==="]
    for entry in recent:
        lines.append(f"• {_format_date(entry.timestamp)}: {entry.title}")
    return "\n".join(lines)


def build_extraction_instructions() -> str:
    return EXTRACTION_INSTRUCTIONS


async def build_context_parts(storage: SpaceStorage, space_id: str) -> SystemPromptParts:
    """Read all containers of a space and render each prompt section.

    Raises:
        StorageError: if the space or any of its containers is missing.
    """
    metadata = await storage.read_metadata(space_id)
    profile = await storage.read_profile(space_id)
    facts = await storage.read_facts(space_id)
    notes = await storage.read_notes(space_id)
    timeline = await storage.read_timeline(space_id)

    return SystemPromptParts(
        base_instructions=build_base_instructions(metadata),
        space_context=build_space_context(metadata),
        profile_section=build_profile_section(profile),
        facts_section=build_facts_section(facts),
        notes_section=build_notes_section(notes),
        timeline_section=build_timeline_section(timeline),
        extraction_instructions=build_extraction_instructions(),
    )


async def build_system_prompt(storage: SpaceStorage, space_id: str) -> str:
    parts = await build_context_parts(storage, space_id)
    return parts.render()


def estimate_context_tokens(prompt: str) -> int:
    """Rough token estimate for logging; truncation caps do the real bounding."""
    return math.ceil(len(prompt) / CHARS_PER_TOKEN)


def count_section_items(prompt: str, section_name: str) -> int:
    """Count bullet lines in a rendered section such as ``FACTS`` or ``NOTES``.

    This scans the text, so it is an approximation of what the model saw.
    """
    match = re.search(
        rf"=== {re.escape(section_name)}.*?===([\s\S]*?)(?====|$)", prompt
    )
    if not match:
        return 0
    return sum(
        1
        for line in match.group(1).split("\n")
        if line.strip().startswith(ITEM_GLYPHS)
    )
