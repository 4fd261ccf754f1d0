"""Tests for SpaceService."""

import logging

import pytest

from memspace.errors import SpaceNotFoundError, StorageError, StorageErrorCode


class TestSpaces:
    @pytest.mark.asyncio
    async def test_create_and_get(self, service, space):
        loaded = await service.get_space(space.id)

        assert loaded.metadata.name == "Personal"
        assert loaded.metadata.rules.allow_health_data is False
        assert loaded.facts.items == []
        assert loaded.timeline.entries == []

    @pytest.mark.asyncio
    async def test_create_logs_space(self, service, caplog):
        with caplog.at_level(logging.INFO, logger="memspace.memory.service"):
            metadata = await service.create_space("Garden")

        assert f"Created space {metadata.id} (Garden)" in caplog.text

    @pytest.mark.asyncio
    async def test_get_missing_space(self, service):
        with pytest.raises(SpaceNotFoundError):
            await service.get_space("missing")

    @pytest.mark.asyncio
    async def test_foreign_owner_is_not_found(self, service, space):
        with pytest.raises(SpaceNotFoundError):
            await service.get_space(space.id, owner_id="someone-else")

        loaded = await service.get_space(space.id, owner_id="user-1")
        assert loaded.metadata.id == space.id

    @pytest.mark.asyncio
    async def test_update_merges_rules(self, service, space):
        updated = await service.update_space(
            space.id, name="Home", rules={"allowHealthData": True}
        )

        assert updated.name == "Home"
        assert updated.rules.allow_health_data is True
        assert updated.rules.note_retention_days == 90

    @pytest.mark.asyncio
    async def test_list_filters_by_owner(self, service, space):
        other = await service.create_space("Work", owner_id="user-2")

        assert [m.id for m in await service.list_spaces("user-1")] == [space.id]
        assert {m.id for m in await service.list_spaces()} == {space.id, other.id}


class TestFacts:
    @pytest.mark.asyncio
    async def test_add_fact_appends_timeline(self, service, space):
        statement = "Has been working as a pastry chef for more than ten years now"
        fact = await service.add_fact(
            space.id, category="work", statement=statement, confidence="high"
        )

        assert fact.source.type == "user_input"
        assert [f.id for f in await service.get_facts(space.id)] == [fact.id]

        timeline = await service.get_timeline(space.id)
        assert len(timeline) == 1
        assert timeline[0].event_type == "fact_added"
        assert timeline[0].title == f"Fact added: {statement[:50]}..."
        assert timeline[0].related_entity_id == fact.id

    @pytest.mark.asyncio
    async def test_update_and_delete_fact(self, service, space):
        fact = await service.add_fact(space.id, category="work", statement="Baker")

        updated = await service.update_fact(space.id, fact.id, confidence="low")
        assert updated.confidence == "low"

        await service.delete_fact(space.id, fact.id)
        assert await service.get_facts(space.id) == []

        events = [e.event_type for e in await service.get_timeline(space.id)]
        assert sorted(events) == ["fact_added", "fact_removed", "fact_updated"]

    @pytest.mark.asyncio
    async def test_delete_unknown_fact(self, service, space):
        with pytest.raises(StorageError) as exc_info:
            await service.delete_fact(space.id, "missing")
        assert exc_info.value.is_not_found


class TestNotes:
    @pytest.mark.asyncio
    async def test_promote_note(self, service, space):
        note = await service.add_note(
            space.id, content="Mentions tea every morning", importance="high", tags=["habit"]
        )

        fact = await service.promote_note_to_fact(
            space.id, note.id, category="preferences", statement="Drinks tea daily"
        )

        assert fact.confidence == "high"
        assert fact.tags == ["habit"]
        assert fact.source.type == "observation"
        assert fact.source.reference == f"Promoted from note: {note.id}"

        stored = (await service.get_notes(space.id))[0]
        assert stored.promoted_to_fact_id == fact.id
        assert stored.fact_candidate is False

        events = [e.event_type for e in await service.get_timeline(space.id)]
        assert "note_promoted" in events

    @pytest.mark.asyncio
    async def test_promote_twice_fails(self, service, space):
        note = await service.add_note(space.id, content="Likes jazz")
        await service.promote_note_to_fact(
            space.id, note.id, category="music", statement="Likes jazz"
        )

        with pytest.raises(StorageError) as exc_info:
            await service.promote_note_to_fact(
                space.id, note.id, category="music", statement="Likes jazz"
            )
        assert exc_info.value.code is StorageErrorCode.ALREADY_EXISTS
        assert len(await service.get_facts(space.id)) == 1

    @pytest.mark.asyncio
    async def test_promote_unknown_note(self, service, space):
        with pytest.raises(StorageError) as exc_info:
            await service.promote_note_to_fact(
                space.id, "missing", category="x", statement="y"
            )
        assert exc_info.value.is_not_found


class TestProfile:
    @pytest.mark.asyncio
    async def test_profile_entry_lifecycle(self, service, space):
        entry = await service.add_profile_entry(
            space.id, category="personal", key="city", value="Lisbon"
        )
        updated = await service.update_profile_entry(space.id, entry.id, value="Porto")
        assert updated.value == "Porto"

        await service.delete_profile_entry(space.id, entry.id)
        assert await service.get_profile(space.id) == []

        titles = [e.title for e in await service.get_timeline(space.id)]
        assert "Profile updated: personal.city" in titles
        assert "Profile entry removed: personal.city" in titles

    @pytest.mark.asyncio
    async def test_owner_checked_on_add(self, service, space):
        with pytest.raises(SpaceNotFoundError):
            await service.add_profile_entry(
                space.id, category="personal", key="age", value=30, owner_id="intruder"
            )


class TestTimeline:
    @pytest.mark.asyncio
    async def test_newest_first_with_limit(self, service, space):
        for day in ("2024-01-01", "2024-03-01", "2024-02-01"):
            await service.add_timeline_entry(
                space.id,
                event_type="custom",
                title=day,
                timestamp=f"{day}T00:00:00.000Z",
            )

        entries = await service.get_timeline(space.id, limit=2)
        assert [e.title for e in entries] == ["2024-03-01", "2024-02-01"]
