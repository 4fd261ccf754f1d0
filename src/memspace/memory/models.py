"""Data models for space knowledge.

Every model serialises to the camelCase JSON documents kept by the store.
Optional fields that are unset are left out of the document entirely.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Union

ConfidenceLevel = Literal["low", "medium", "high", "verified"]
Importance = Literal["low", "medium", "high"]
SourceType = Literal["user_input", "inference", "external", "observation"]
ProfileValue = Union[str, int, float, bool, list[str], None]

CONFIDENCE_LEVELS: tuple[str, ...] = ("low", "medium", "high", "verified")
IMPORTANCE_LEVELS: tuple[str, ...] = ("low", "medium", "high")


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class Source:
    """Where a piece of knowledge came from."""

    type: str
    timestamp: str
    reference: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {"type": self.type, "reference": self.reference, "timestamp": self.timestamp}
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Source":
        return cls(
            type=data["type"],
            timestamp=data["timestamp"],
            reference=data.get("reference"),
        )


@dataclass
class ProfileEntry:
    """A stable characteristic, valid inside an optional time window."""

    id: str
    category: str
    key: str
    value: ProfileValue
    source: Source
    created_at: str
    updated_at: str
    valid_from: str | None = None
    valid_until: str | None = None

    def to_dict(self) -> dict[str, Any]:
        # "value" is always written, null included
        data = _drop_none(
            {
                "id": self.id,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "category": self.category,
                "key": self.key,
                "source": self.source.to_dict(),
                "validFrom": self.valid_from,
                "validUntil": self.valid_until,
            }
        )
        data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileEntry":
        return cls(
            id=data["id"],
            category=data["category"],
            key=data["key"],
            value=data.get("value"),
            source=Source.from_dict(data["source"]),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            valid_from=data.get("validFrom"),
            valid_until=data.get("validUntil"),
        )


@dataclass
class Fact:
    """A verified or inferred statement."""

    id: str
    category: str
    statement: str
    confidence: str
    source: Source
    created_at: str
    updated_at: str
    tags: list[str] = field(default_factory=list)
    related_fact_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "category": self.category,
            "statement": self.statement,
            "confidence": self.confidence,
            "source": self.source.to_dict(),
            "tags": list(self.tags),
            "relatedFactIds": list(self.related_fact_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fact":
        return cls(
            id=data["id"],
            category=data["category"],
            statement=data["statement"],
            confidence=data["confidence"],
            source=Source.from_dict(data["source"]),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            tags=list(data.get("tags", [])),
            related_fact_ids=list(data.get("relatedFactIds", [])),
        )


@dataclass
class Note:
    """An unverified observation.

    Once ``promoted_to_fact_id`` is set the note is superseded by that fact
    and is no longer active.
    """

    id: str
    content: str
    importance: str
    source: Source
    created_at: str
    updated_at: str
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    fact_candidate: bool = False
    promoted_to_fact_id: str | None = None

    @property
    def is_promoted(self) -> bool:
        return bool(self.promoted_to_fact_id)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "content": self.content,
                "category": self.category,
                "importance": self.importance,
                "source": self.source.to_dict(),
                "tags": list(self.tags),
                "factCandidate": self.fact_candidate,
                "promotedToFactId": self.promoted_to_fact_id,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            id=data["id"],
            content=data["content"],
            importance=data["importance"],
            source=Source.from_dict(data["source"]),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            category=data.get("category"),
            tags=list(data.get("tags", [])),
            fact_candidate=bool(data.get("factCandidate", False)),
            promoted_to_fact_id=data.get("promotedToFactId"),
        )


@dataclass
class TimelineEntry:
    """Append-only history record."""

    id: str
    timestamp: str
    event_type: str
    title: str
    created_at: str
    updated_at: str
    description: str | None = None
    related_entity_id: str | None = None
    related_entity_type: str | None = None
    metadata: dict[str, Any] | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "timestamp": self.timestamp,
                "eventType": self.event_type,
                "title": self.title,
                "description": self.description,
                "relatedEntityId": self.related_entity_id,
                "relatedEntityType": self.related_entity_type,
                "metadata": self.metadata,
                "tags": list(self.tags),
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimelineEntry":
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            event_type=data["eventType"],
            title=data["title"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            description=data.get("description"),
            related_entity_id=data.get("relatedEntityId"),
            related_entity_type=data.get("relatedEntityType"),
            metadata=data.get("metadata"),
            tags=list(data.get("tags", [])),
        )


@dataclass
class SpaceRules:
    """Per-space behaviour switches."""

    allow_health_data: bool = False
    note_retention_days: int = 90
    require_fact_confirmation: bool = True
    custom_instructions: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "allowHealthData": self.allow_health_data,
                "noteRetentionDays": self.note_retention_days,
                "requireFactConfirmation": self.require_fact_confirmation,
                "customInstructions": self.custom_instructions,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpaceRules":
        return cls(
            allow_health_data=bool(data.get("allowHealthData", False)),
            note_retention_days=int(data.get("noteRetentionDays", 90)),
            require_fact_confirmation=bool(data.get("requireFactConfirmation", True)),
            custom_instructions=data.get("customInstructions"),
        )


@dataclass
class SpaceMetadata:
    """Descriptive data and rules of a space."""

    id: str
    name: str
    description: str
    created_at: str
    updated_at: str
    owner_id: str | None = None
    icon: str | None = None
    color: str | None = None
    tags: list[str] = field(default_factory=list)
    rules: SpaceRules = field(default_factory=SpaceRules)
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "ownerId": self.owner_id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "tags": list(self.tags),
            "rules": self.rules.to_dict(),
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpaceMetadata":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            owner_id=data.get("ownerId"),
            icon=data.get("icon"),
            color=data.get("color"),
            tags=list(data.get("tags", [])),
            rules=SpaceRules.from_dict(data.get("rules", {})),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass
class Profile:
    entries: list[ProfileEntry]
    last_updated: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            entries=[ProfileEntry.from_dict(e) for e in data.get("entries", [])],
            last_updated=data["lastUpdated"],
        )


@dataclass
class Facts:
    items: list[Fact]
    last_updated: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [f.to_dict() for f in self.items],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Facts":
        return cls(
            items=[Fact.from_dict(f) for f in data.get("items", [])],
            last_updated=data["lastUpdated"],
        )


@dataclass
class Notes:
    items: list[Note]
    last_updated: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [n.to_dict() for n in self.items],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notes":
        return cls(
            items=[Note.from_dict(n) for n in data.get("items", [])],
            last_updated=data["lastUpdated"],
        )


@dataclass
class Timeline:
    entries: list[TimelineEntry]
    last_updated: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Timeline":
        return cls(
            entries=[TimelineEntry.from_dict(e) for e in data.get("entries", [])],
            last_updated=data["lastUpdated"],
        )


@dataclass
class ContextSpace:
    """A space with all four knowledge containers loaded."""

    metadata: SpaceMetadata
    profile: Profile
    facts: Facts
    notes: Notes
    timeline: Timeline
