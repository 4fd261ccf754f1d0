"""Space knowledge: models, storage, service layer and extraction."""

from .extractor import (
    ExtractedFact,
    ExtractedMemory,
    ExtractedNote,
    ExtractedProfileUpdate,
    ParseResult,
    SaveResult,
    parse_memory_extract,
    requires_confirmation,
    save_extracted_memory,
)
from .models import (
    ContextSpace,
    Fact,
    Facts,
    Note,
    Notes,
    Profile,
    ProfileEntry,
    Source,
    SpaceMetadata,
    SpaceRules,
    Timeline,
    TimelineEntry,
)
from .service import SpaceService
from .storage import SpaceStorage

__all__ = [
    "ContextSpace",
    "ExtractedFact",
    "ExtractedMemory",
    "ExtractedNote",
    "ExtractedProfileUpdate",
    "Fact",
    "Facts",
    "Note",
    "Notes",
    "ParseResult",
    "Profile",
    "ProfileEntry",
    "SaveResult",
    "Source",
    "SpaceMetadata",
    "SpaceRules",
    "SpaceService",
    "SpaceStorage",
    "Timeline",
    "TimelineEntry",
    "parse_memory_extract",
    "requires_confirmation",
    "save_extracted_memory",
]
