"""File-based storage for space knowledge.

Each space is a directory under the data dir holding one JSON document per
container: space.json, profile.json, facts.json, notes.json, timeline.json.
"""

import json
import shutil
from pathlib import Path
from typing import Any

from ..errors import StorageError, StorageErrorCode
from .models import Facts, Notes, Profile, SpaceMetadata, Timeline

FILE_NAMES = {
    "space": "space.json",
    "profile": "profile.json",
    "facts": "facts.json",
    "notes": "notes.json",
    "timeline": "timeline.json",
}


class SpaceStorage:
    """Persistent storage for spaces using one JSON file per container.

    Reads raise ``StorageError`` with code ``NOT_FOUND`` when a document is
    missing, ``PARSE_ERROR`` when it is corrupt and ``IO_ERROR`` otherwise.
    """

    def __init__(self, data_dir: Path) -> None:
        """Initialize the storage with its root directory.

        Args:
            data_dir: Directory that holds one subdirectory per space.
        """
        self.data_dir = Path(data_dir)

    def _space_path(self, space_id: str) -> Path:
        return self.data_dir / space_id

    def _file_path(self, space_id: str, file_type: str) -> Path:
        return self._space_path(space_id) / FILE_NAMES[file_type]

    def _read_json(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise StorageError(
                f"File not found: {path}", StorageErrorCode.NOT_FOUND, e
            ) from e
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Failed to parse file: {path}", StorageErrorCode.PARSE_ERROR, e
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to read file: {path}", StorageErrorCode.IO_ERROR, e
            ) from e

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(
                f"Failed to write file: {path}", StorageErrorCode.IO_ERROR, e
            ) from e

    async def init(self) -> None:
        """Create the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    async def space_exists(self, space_id: str) -> bool:
        return self._file_path(space_id, "space").exists()

    async def list_space_ids(self) -> list[str]:
        """List ids of all directories that contain a space document."""
        if not self.data_dir.exists():
            return []
        try:
            return sorted(
                entry.name
                for entry in self.data_dir.iterdir()
                if entry.is_dir() and (entry / FILE_NAMES["space"]).exists()
            )
        except OSError as e:
            raise StorageError(
                "Failed to list spaces", StorageErrorCode.IO_ERROR, e
            ) from e

    async def create_space(
        self,
        space_id: str,
        metadata: SpaceMetadata,
        profile: Profile,
        facts: Facts,
        notes: Notes,
        timeline: Timeline,
    ) -> None:
        """Create a space directory with its initial documents."""
        if await self.space_exists(space_id):
            raise StorageError(
                f"Space already exists: {space_id}", StorageErrorCode.ALREADY_EXISTS
            )

        self._write_json(self._file_path(space_id, "space"), metadata.to_dict())
        self._write_json(self._file_path(space_id, "profile"), profile.to_dict())
        self._write_json(self._file_path(space_id, "facts"), facts.to_dict())
        self._write_json(self._file_path(space_id, "notes"), notes.to_dict())
        self._write_json(self._file_path(space_id, "timeline"), timeline.to_dict())

    async def delete_space(self, space_id: str) -> None:
        path = self._space_path(space_id)
        if not path.exists():
            raise StorageError(
                f"Space not found: {space_id}", StorageErrorCode.NOT_FOUND
            )
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StorageError(
                f"Failed to delete space: {space_id}", StorageErrorCode.IO_ERROR, e
            ) from e

    async def read_metadata(self, space_id: str) -> SpaceMetadata:
        return SpaceMetadata.from_dict(self._read_json(self._file_path(space_id, "space")))

    async def write_metadata(self, space_id: str, metadata: SpaceMetadata) -> None:
        self._write_json(self._file_path(space_id, "space"), metadata.to_dict())

    async def read_profile(self, space_id: str) -> Profile:
        return Profile.from_dict(self._read_json(self._file_path(space_id, "profile")))

    async def write_profile(self, space_id: str, profile: Profile) -> None:
        self._write_json(self._file_path(space_id, "profile"), profile.to_dict())

    async def read_facts(self, space_id: str) -> Facts:
        return Facts.from_dict(self._read_json(self._file_path(space_id, "facts")))

    async def write_facts(self, space_id: str, facts: Facts) -> None:
        self._write_json(self._file_path(space_id, "facts"), facts.to_dict())

    async def read_notes(self, space_id: str) -> Notes:
        return Notes.from_dict(self._read_json(self._file_path(space_id, "notes")))

    async def write_notes(self, space_id: str, notes: Notes) -> None:
        self._write_json(self._file_path(space_id, "notes"), notes.to_dict())

    async def read_timeline(self, space_id: str) -> Timeline:
        return Timeline.from_dict(self._read_json(self._file_path(space_id, "timeline")))

    async def write_timeline(self, space_id: str, timeline: Timeline) -> None:
        self._write_json(self._file_path(space_id, "timeline"), timeline.to_dict())
