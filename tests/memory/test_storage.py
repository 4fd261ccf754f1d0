"""Tests for SpaceStorage."""

import json

import pytest

from memspace.errors import StorageError, StorageErrorCode
from memspace.memory import Facts, Notes, Profile, SpaceMetadata, SpaceStorage, Timeline

STAMP = "2024-01-01T00:00:00.000Z"


def make_metadata(space_id: str = "space-1") -> SpaceMetadata:
    return SpaceMetadata(
        id=space_id, name="Test", description="", created_at=STAMP, updated_at=STAMP
    )


async def create(storage: SpaceStorage, space_id: str = "space-1") -> None:
    await storage.create_space(
        space_id,
        make_metadata(space_id),
        Profile(entries=[], last_updated=STAMP),
        Facts(items=[], last_updated=STAMP),
        Notes(items=[], last_updated=STAMP),
        Timeline(entries=[], last_updated=STAMP),
    )


class TestSpaceStorage:
    @pytest.mark.asyncio
    async def test_create_writes_one_file_per_container(self, storage):
        await create(storage)

        space_dir = storage.data_dir / "space-1"
        names = sorted(p.name for p in space_dir.iterdir())
        assert names == ["facts.json", "notes.json", "profile.json", "space.json", "timeline.json"]

        data = json.loads((space_dir / "facts.json").read_text())
        assert data == {"items": [], "lastUpdated": STAMP}

    @pytest.mark.asyncio
    async def test_create_twice_fails(self, storage):
        await create(storage)

        with pytest.raises(StorageError) as exc_info:
            await create(storage)
        assert exc_info.value.code is StorageErrorCode.ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_missing_space_is_not_found(self, storage):
        with pytest.raises(StorageError) as exc_info:
            await storage.read_metadata("nope")
        assert exc_info.value.is_not_found

    @pytest.mark.asyncio
    async def test_corrupt_file_is_parse_error(self, storage):
        await create(storage)
        (storage.data_dir / "space-1" / "notes.json").write_text("{not json")

        with pytest.raises(StorageError) as exc_info:
            await storage.read_notes("space-1")
        assert exc_info.value.code is StorageErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_list_space_ids_ignores_stray_dirs(self, storage):
        await create(storage, "b")
        await create(storage, "a")
        (storage.data_dir / "junk").mkdir()

        assert await storage.list_space_ids() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_without_data_dir(self, tmp_path):
        storage = SpaceStorage(tmp_path / "missing")
        assert await storage.list_space_ids() == []

    @pytest.mark.asyncio
    async def test_delete_space(self, storage):
        await create(storage)
        await storage.delete_space("space-1")

        assert not await storage.space_exists("space-1")
        with pytest.raises(StorageError) as exc_info:
            await storage.delete_space("space-1")
        assert exc_info.value.is_not_found

    @pytest.mark.asyncio
    async def test_write_then_read_metadata(self, storage):
        await create(storage)
        metadata = make_metadata()
        metadata.name = "Renamed"
        await storage.write_metadata("space-1", metadata)

        assert (await storage.read_metadata("space-1")).name == "Renamed"
