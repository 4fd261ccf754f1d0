"""Space service: CRUD for spaces and their knowledge.

Every fact, note and profile mutation made through this service appends a
timeline entry describing it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from ..errors import SpaceNotFoundError, StorageError, StorageErrorCode
from ..utils import now
from .models import (
    ContextSpace,
    Fact,
    Facts,
    Note,
    Notes,
    Profile,
    ProfileEntry,
    ProfileValue,
    Source,
    SpaceMetadata,
    SpaceRules,
    Timeline,
    TimelineEntry,
)
from .storage import SpaceStorage

logger = logging.getLogger(__name__)

TITLE_PREVIEW_CHARS = 50


def _preview(text: str) -> str:
    return f"{text[:TITLE_PREVIEW_CHARS]}..."


def _new_id() -> str:
    return str(uuid.uuid4())


class SpaceService:
    """Service layer on top of ``SpaceStorage``."""

    def __init__(self, storage: SpaceStorage) -> None:
        self.storage = storage

    async def init(self) -> None:
        await self.storage.init()

    # ── Spaces ───────────────────────────────────────────────

    async def create_space(
        self,
        name: str,
        description: str = "",
        *,
        owner_id: str | None = None,
        tags: list[str] | None = None,
        rules: SpaceRules | None = None,
        icon: str | None = None,
        color: str | None = None,
    ) -> SpaceMetadata:
        """Create an empty space with default rules."""
        space_id = _new_id()
        timestamp = now()

        metadata = SpaceMetadata(
            id=space_id,
            name=name,
            description=description,
            created_at=timestamp,
            updated_at=timestamp,
            owner_id=owner_id,
            icon=icon,
            color=color,
            tags=list(tags or []),
            rules=rules or SpaceRules(),
        )

        await self.storage.create_space(
            space_id,
            metadata,
            Profile(entries=[], last_updated=timestamp),
            Facts(items=[], last_updated=timestamp),
            Notes(items=[], last_updated=timestamp),
            Timeline(entries=[], last_updated=timestamp),
        )
        logger.info(f"Created space {space_id} ({name})")
        return metadata

    async def _require_space(
        self, space_id: str, owner_id: str | None = None
    ) -> SpaceMetadata:
        """Load metadata, raising SpaceNotFoundError for missing or foreign spaces."""
        try:
            metadata = await self.storage.read_metadata(space_id)
        except StorageError as e:
            if e.is_not_found:
                raise SpaceNotFoundError(space_id) from e
            raise

        if owner_id is not None and metadata.owner_id not in (None, owner_id):
            raise SpaceNotFoundError(space_id)
        return metadata

    async def get_space(self, space_id: str, owner_id: str | None = None) -> ContextSpace:
        """Load a space with all of its containers."""
        metadata = await self._require_space(space_id, owner_id)
        return ContextSpace(
            metadata=metadata,
            profile=await self.storage.read_profile(space_id),
            facts=await self.storage.read_facts(space_id),
            notes=await self.storage.read_notes(space_id),
            timeline=await self.storage.read_timeline(space_id),
        )

    async def update_space(
        self,
        space_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
        tags: list[str] | None = None,
        rules: dict[str, Any] | None = None,
        is_active: bool | None = None,
    ) -> SpaceMetadata:
        """Partially update a space; ``rules`` is merged into the current rules."""
        metadata = await self._require_space(space_id)

        if name is not None:
            metadata.name = name
        if description is not None:
            metadata.description = description
        if icon is not None:
            metadata.icon = icon
        if color is not None:
            metadata.color = color
        if tags is not None:
            metadata.tags = list(tags)
        if rules:
            merged = {**metadata.rules.to_dict(), **rules}
            metadata.rules = SpaceRules.from_dict(merged)
        if is_active is not None:
            metadata.is_active = is_active
        metadata.updated_at = now()

        await self.storage.write_metadata(space_id, metadata)
        return metadata

    async def delete_space(self, space_id: str) -> None:
        await self.storage.delete_space(space_id)

    async def list_spaces(self, owner_id: str | None = None) -> list[SpaceMetadata]:
        """List spaces, most recently updated first."""
        spaces: list[SpaceMetadata] = []
        for space_id in await self.storage.list_space_ids():
            try:
                metadata = await self.storage.read_metadata(space_id)
            except StorageError as e:
                # Deleted between listing and reading
                if e.is_not_found:
                    continue
                raise
            if owner_id is not None and metadata.owner_id not in (None, owner_id):
                continue
            spaces.append(metadata)

        return sorted(spaces, key=lambda m: m.updated_at, reverse=True)

    # ── Facts ────────────────────────────────────────────────

    async def add_fact(
        self,
        space_id: str,
        *,
        category: str,
        statement: str,
        confidence: str = "medium",
        source_type: str = "user_input",
        source_reference: str | None = None,
        tags: list[str] | None = None,
        related_fact_ids: list[str] | None = None,
        owner_id: str | None = None,
    ) -> Fact:
        if owner_id is not None:
            await self._require_space(space_id, owner_id)

        facts = await self.storage.read_facts(space_id)
        timestamp = now()

        fact = Fact(
            id=_new_id(),
            category=category,
            statement=statement,
            confidence=confidence,
            source=Source(type=source_type, reference=source_reference, timestamp=timestamp),
            created_at=timestamp,
            updated_at=timestamp,
            tags=list(tags or []),
            related_fact_ids=list(related_fact_ids or []),
        )

        facts.items.append(fact)
        facts.last_updated = timestamp
        await self.storage.write_facts(space_id, facts)

        await self.add_timeline_entry(
            space_id,
            event_type="fact_added",
            title=f"Fact added: {_preview(fact.statement)}",
            related_entity_id=fact.id,
            related_entity_type="fact",
            tags=fact.tags,
        )
        return fact

    async def update_fact(
        self,
        space_id: str,
        fact_id: str,
        *,
        category: str | None = None,
        statement: str | None = None,
        confidence: str | None = None,
        tags: list[str] | None = None,
        related_fact_ids: list[str] | None = None,
    ) -> Fact:
        facts = await self.storage.read_facts(space_id)
        fact = next((f for f in facts.items if f.id == fact_id), None)
        if fact is None:
            raise StorageError(f"Fact not found: {fact_id}", StorageErrorCode.NOT_FOUND)

        timestamp = now()
        if category is not None:
            fact.category = category
        if statement is not None:
            fact.statement = statement
        if confidence is not None:
            fact.confidence = confidence
        if tags is not None:
            fact.tags = list(tags)
        if related_fact_ids is not None:
            fact.related_fact_ids = list(related_fact_ids)
        fact.updated_at = timestamp
        facts.last_updated = timestamp

        await self.storage.write_facts(space_id, facts)
        await self.add_timeline_entry(
            space_id,
            event_type="fact_updated",
            title=f"Fact updated: {_preview(fact.statement)}",
            related_entity_id=fact.id,
            related_entity_type="fact",
            tags=fact.tags,
        )
        return fact

    async def delete_fact(self, space_id: str, fact_id: str) -> None:
        facts = await self.storage.read_facts(space_id)
        removed = next((f for f in facts.items if f.id == fact_id), None)
        if removed is None:
            raise StorageError(f"Fact not found: {fact_id}", StorageErrorCode.NOT_FOUND)

        facts.items.remove(removed)
        facts.last_updated = now()

        await self.storage.write_facts(space_id, facts)
        await self.add_timeline_entry(
            space_id,
            event_type="fact_removed",
            title=f"Fact removed: {_preview(removed.statement)}",
            tags=removed.tags,
        )

    async def get_facts(self, space_id: str) -> list[Fact]:
        return (await self.storage.read_facts(space_id)).items

    # ── Notes ────────────────────────────────────────────────

    async def add_note(
        self,
        space_id: str,
        *,
        content: str,
        category: str | None = None,
        importance: str = "medium",
        source_type: str = "user_input",
        source_reference: str | None = None,
        tags: list[str] | None = None,
        fact_candidate: bool = False,
        owner_id: str | None = None,
    ) -> Note:
        if owner_id is not None:
            await self._require_space(space_id, owner_id)

        notes = await self.storage.read_notes(space_id)
        timestamp = now()

        note = Note(
            id=_new_id(),
            content=content,
            importance=importance,
            source=Source(type=source_type, reference=source_reference, timestamp=timestamp),
            created_at=timestamp,
            updated_at=timestamp,
            category=category,
            tags=list(tags or []),
            fact_candidate=fact_candidate,
        )

        notes.items.append(note)
        notes.last_updated = timestamp
        await self.storage.write_notes(space_id, notes)

        await self.add_timeline_entry(
            space_id,
            event_type="note_added",
            title=f"Note added: {_preview(note.content)}",
            related_entity_id=note.id,
            related_entity_type="note",
            tags=note.tags,
        )
        return note

    async def update_note(
        self,
        space_id: str,
        note_id: str,
        *,
        content: str | None = None,
        category: str | None = None,
        importance: str | None = None,
        tags: list[str] | None = None,
        fact_candidate: bool | None = None,
    ) -> Note:
        notes = await self.storage.read_notes(space_id)
        note = next((n for n in notes.items if n.id == note_id), None)
        if note is None:
            raise StorageError(f"Note not found: {note_id}", StorageErrorCode.NOT_FOUND)

        timestamp = now()
        if content is not None:
            note.content = content
        if category is not None:
            note.category = category
        if importance is not None:
            note.importance = importance
        if tags is not None:
            note.tags = list(tags)
        if fact_candidate is not None and not note.is_promoted:
            note.fact_candidate = fact_candidate
        note.updated_at = timestamp
        notes.last_updated = timestamp

        await self.storage.write_notes(space_id, notes)
        await self.add_timeline_entry(
            space_id,
            event_type="note_updated",
            title=f"Note updated: {_preview(note.content)}",
            related_entity_id=note.id,
            related_entity_type="note",
            tags=note.tags,
        )
        return note

    async def delete_note(self, space_id: str, note_id: str) -> None:
        notes = await self.storage.read_notes(space_id)
        removed = next((n for n in notes.items if n.id == note_id), None)
        if removed is None:
            raise StorageError(f"Note not found: {note_id}", StorageErrorCode.NOT_FOUND)

        notes.items.remove(removed)
        notes.last_updated = now()

        await self.storage.write_notes(space_id, notes)
        await self.add_timeline_entry(
            space_id,
            event_type="note_removed",
            title=f"Note removed: {_preview(removed.content)}",
            tags=removed.tags,
        )

    async def get_notes(self, space_id: str) -> list[Note]:
        return (await self.storage.read_notes(space_id)).items

    async def promote_note_to_fact(
        self,
        space_id: str,
        note_id: str,
        *,
        category: str,
        statement: str,
        confidence: str = "high",
        tags: list[str] | None = None,
    ) -> Fact:
        """Turn a note into a fact and mark the note as superseded.

        Raises:
            StorageError: NOT_FOUND for an unknown note, ALREADY_EXISTS if the
                note was promoted before.
        """
        notes = await self.storage.read_notes(space_id)
        note = next((n for n in notes.items if n.id == note_id), None)
        if note is None:
            raise StorageError(f"Note not found: {note_id}", StorageErrorCode.NOT_FOUND)
        if note.is_promoted:
            raise StorageError(
                f"Note already promoted to fact {note.promoted_to_fact_id}",
                StorageErrorCode.ALREADY_EXISTS,
            )

        fact = await self.add_fact(
            space_id,
            category=category,
            statement=statement,
            confidence=confidence,
            tags=tags if tags is not None else note.tags,
            source_type="observation",
            source_reference=f"Promoted from note: {note_id}",
        )

        timestamp = now()
        note.promoted_to_fact_id = fact.id
        note.fact_candidate = False
        note.updated_at = timestamp
        notes.last_updated = timestamp
        await self.storage.write_notes(space_id, notes)

        await self.add_timeline_entry(
            space_id,
            event_type="note_promoted",
            title="Note promoted to fact",
            description=(
                f'Note "{_preview(note.content)}" became fact "{_preview(fact.statement)}"'
            ),
            related_entity_id=fact.id,
            related_entity_type="fact",
            tags=fact.tags,
        )
        return fact

    # ── Profile ──────────────────────────────────────────────

    async def add_profile_entry(
        self,
        space_id: str,
        *,
        category: str,
        key: str,
        value: ProfileValue,
        source_type: str = "user_input",
        source_reference: str | None = None,
        valid_from: str | None = None,
        valid_until: str | None = None,
        owner_id: str | None = None,
    ) -> ProfileEntry:
        if owner_id is not None:
            await self._require_space(space_id, owner_id)

        profile = await self.storage.read_profile(space_id)
        timestamp = now()

        entry = ProfileEntry(
            id=_new_id(),
            category=category,
            key=key,
            value=value,
            source=Source(type=source_type, reference=source_reference, timestamp=timestamp),
            created_at=timestamp,
            updated_at=timestamp,
            valid_from=valid_from,
            valid_until=valid_until,
        )

        profile.entries.append(entry)
        profile.last_updated = timestamp
        await self.storage.write_profile(space_id, profile)

        await self.add_timeline_entry(
            space_id,
            event_type="profile_updated",
            title=f"Profile updated: {entry.category}.{entry.key}",
            related_entity_id=entry.id,
            related_entity_type="profile",
        )
        return entry

    async def update_profile_entry(
        self,
        space_id: str,
        entry_id: str,
        *,
        value: ProfileValue | None = None,
        valid_from: str | None = None,
        valid_until: str | None = None,
    ) -> ProfileEntry:
        profile = await self.storage.read_profile(space_id)
        entry = next((e for e in profile.entries if e.id == entry_id), None)
        if entry is None:
            raise StorageError(
                f"Profile entry not found: {entry_id}", StorageErrorCode.NOT_FOUND
            )

        timestamp = now()
        if value is not None:
            entry.value = value
        if valid_from is not None:
            entry.valid_from = valid_from
        if valid_until is not None:
            entry.valid_until = valid_until
        entry.updated_at = timestamp
        profile.last_updated = timestamp

        await self.storage.write_profile(space_id, profile)
        await self.add_timeline_entry(
            space_id,
            event_type="profile_updated",
            title=f"Profile updated: {entry.category}.{entry.key}",
            related_entity_id=entry.id,
            related_entity_type="profile",
        )
        return entry

    async def delete_profile_entry(self, space_id: str, entry_id: str) -> None:
        profile = await self.storage.read_profile(space_id)
        removed = next((e for e in profile.entries if e.id == entry_id), None)
        if removed is None:
            raise StorageError(
                f"Profile entry not found: {entry_id}", StorageErrorCode.NOT_FOUND
            )

        profile.entries.remove(removed)
        profile.last_updated = now()

        await self.storage.write_profile(space_id, profile)
        await self.add_timeline_entry(
            space_id,
            event_type="profile_removed",
            title=f"Profile entry removed: {removed.category}.{removed.key}",
        )

    async def get_profile(self, space_id: str) -> list[ProfileEntry]:
        return (await self.storage.read_profile(space_id)).entries

    # ── Timeline ─────────────────────────────────────────────

    async def add_timeline_entry(
        self,
        space_id: str,
        *,
        event_type: str,
        title: str,
        timestamp: str | None = None,
        description: str | None = None,
        related_entity_id: str | None = None,
        related_entity_type: str | None = None,
        metadata: dict[str, Any] | None = None,
        tags: list[str] | None = None,
    ) -> TimelineEntry:
        timeline = await self.storage.read_timeline(space_id)
        created = now()

        entry = TimelineEntry(
            id=_new_id(),
            timestamp=timestamp or created,
            event_type=event_type,
            title=title,
            created_at=created,
            updated_at=created,
            description=description,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
            metadata=metadata,
            tags=list(tags or []),
        )

        timeline.entries.append(entry)
        timeline.last_updated = created
        await self.storage.write_timeline(space_id, timeline)
        return entry

    async def get_timeline(self, space_id: str, limit: int = 50) -> list[TimelineEntry]:
        """Most recent timeline entries first."""
        timeline = await self.storage.read_timeline(space_id)
        entries = sorted(timeline.entries, key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]
