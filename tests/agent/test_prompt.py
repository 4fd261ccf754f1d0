"""Tests for the context builder."""

from datetime import datetime, timezone

import pytest

from memspace.agent.prompt import (
    MAX_NOTES,
    MAX_TIMELINE,
    SystemPromptParts,
    build_base_instructions,
    build_context_parts,
    build_facts_section,
    build_notes_section,
    build_profile_section,
    build_space_context,
    build_system_prompt,
    build_timeline_section,
    count_section_items,
    estimate_context_tokens,
    rank_facts,
)
from memspace.errors import StorageError
from memspace.memory import (
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

STAMP = "2024-01-01T00:00:00.000Z"
SOURCE = Source(type="user_input", timestamp=STAMP)


def stamp(minute: int) -> str:
    return f"2024-01-01T00:{minute:02d}:00.000Z"


def make_fact(i: int, confidence: str, category: str = "general", tags=None) -> Fact:
    return Fact(
        id=f"f{i}",
        category=category,
        statement=f"fact {i}",
        confidence=confidence,
        source=SOURCE,
        created_at=stamp(i),
        updated_at=stamp(i),
        tags=tags or [],
    )


def make_note(i: int, importance: str, category=None, promoted_to=None) -> Note:
    return Note(
        id=f"n{i}",
        content=f"note {i}",
        importance=importance,
        source=SOURCE,
        created_at=stamp(i),
        updated_at=stamp(i),
        category=category,
        promoted_to_fact_id=promoted_to,
    )


def make_entry(key: str, value, category: str = "personal", **kwargs) -> ProfileEntry:
    return ProfileEntry(
        id=key,
        category=category,
        key=key,
        value=value,
        source=SOURCE,
        created_at=STAMP,
        updated_at=STAMP,
        **kwargs,
    )


def make_metadata(**kwargs) -> SpaceMetadata:
    return SpaceMetadata(
        id="s1",
        name="Health",
        description="Doctor visits",
        created_at=STAMP,
        updated_at=STAMP,
        **kwargs,
    )


class TestBaseInstructions:
    def test_health_block_only_when_allowed(self):
        plain = build_base_instructions(make_metadata())
        health = build_base_instructions(make_metadata(rules=SpaceRules(allow_health_data=True)))

        assert "Never make a diagnosis" not in plain
        assert "Never make a diagnosis" in health

    def test_custom_instructions_appended(self):
        prompt = build_base_instructions(
            make_metadata(rules=SpaceRules(custom_instructions="Answer in haiku."))
        )
        assert prompt.endswith("\n\nAnswer in haiku.")


class TestSpaceContext:
    def test_tags(self):
        assert build_space_context(make_metadata(tags=["a", "b"])) == (
            "=== CONTEXT: Health ===\nDescription: Doctor visits\nTags: a, b"
        )

    def test_no_tags(self):
        assert build_space_context(make_metadata()).endswith("Tags: none")


class TestProfileSection:
    def test_empty(self):
        section = build_profile_section(Profile(entries=[], last_updated=STAMP))
        assert section == "=== PROFILE ===\nProfile is empty."

    def test_grouped_and_formatted(self):
        profile = Profile(
            entries=[
                make_entry("name", "Ana"),
                make_entry("allergies", ["pollen", "cats"], category="health"),
                make_entry("vegetarian", True),
            ],
            last_updated=STAMP,
        )
        section = build_profile_section(profile)

        assert section == (
            "=== PROFILE ===\n"
            "\n[PERSONAL]\n"
            "• name: Ana\n"
            "• vegetarian: true\n"
            "\n[HEALTH]\n"
            "• allergies: pollen, cats"
        )

    def test_validity_window(self):
        at = datetime(2024, 6, 1, tzinfo=timezone.utc)
        profile = Profile(
            entries=[
                make_entry("future", "x", valid_from="2025-01-01T00:00:00.000Z"),
                make_entry("expired", "y", valid_until="2024-01-01T00:00:00.000Z"),
                make_entry("current", "z", valid_from="2024-01-01T00:00:00Z"),
            ],
            last_updated=STAMP,
        )
        section = build_profile_section(profile, now=at)

        assert "current: z" in section
        assert "future" not in section
        assert "expired" not in section

    def test_all_filtered_uses_placeholder(self):
        profile = Profile(
            entries=[make_entry("future", "x", valid_from="2999-01-01T00:00:00.000Z")],
            last_updated=STAMP,
        )
        assert build_profile_section(profile).endswith("Profile is empty.")

    def test_unparseable_bound_is_open(self):
        profile = Profile(
            entries=[
                make_entry("city", "Lisbon", valid_from="next week"),
                make_entry("job", "nurse", valid_until="someday"),
            ],
            last_updated=STAMP,
        )
        section = build_profile_section(profile)

        assert "• city: Lisbon" in section
        assert "• job: nurse" in section

    def test_null_value(self):
        profile = Profile(entries=[make_entry("nickname", None)], last_updated=STAMP)
        assert build_profile_section(profile).endswith("• nickname: null")


class TestFactsSection:
    def test_empty(self):
        assert build_facts_section(Facts(items=[], last_updated=STAMP)) == "=== FACTS ===\nNo facts."

    def test_rank_by_confidence_then_newest(self):
        facts = [
            make_fact(1, "low"),
            make_fact(2, "verified"),
            make_fact(3, "high"),
            make_fact(4, "verified"),
        ]
        assert [f.id for f in rank_facts(facts)] == ["f4", "f2", "f3", "f1"]

    def test_capped_keeps_highest_ranked(self):
        items = [make_fact(i, "high") for i in range(25)]
        items += [make_fact(i, "low") for i in range(25, 35)]
        section = build_facts_section(Facts(items=items, last_updated=STAMP))

        lines = section.split("\n")
        assert sum(1 for line in lines if line.startswith("◉")) == 25
        low = [line for line in lines if line.startswith("◌")]
        assert low == [f"◌ fact {i}" for i in range(34, 29, -1)]

    def test_glyphs_and_tags(self):
        section = build_facts_section(
            Facts(
                items=[
                    make_fact(1, "verified", category="work", tags=["job", "main"]),
                    make_fact(2, "medium", category="family"),
                ],
                last_updated=STAMP,
            )
        )
        assert section == (
            "=== FACTS (verified) ===\n"
            "\n[WORK]\n"
            "✓ fact 1 [job, main]\n"
            "\n[FAMILY]\n"
            "○ fact 2"
        )


class TestNotesSection:
    def test_promoted_notes_excluded(self):
        notes = Notes(
            items=[make_note(1, "high", promoted_to="f1"), make_note(2, "low", category="mood")],
            last_updated=STAMP,
        )
        section = build_notes_section(notes)

        assert section == "=== NOTES (observations, unverified) ===\n○ [mood] note 2"

    def test_only_promoted_is_empty(self):
        notes = Notes(items=[make_note(1, "high", promoted_to="f1")], last_updated=STAMP)
        assert build_notes_section(notes) == "=== NOTES ===\nNo notes."

    def test_importance_order_and_cap(self):
        items = [make_note(i, "low") for i in range(10)]
        items += [make_note(i, "high") for i in range(10, 20)]
        section = build_notes_section(Notes(items=items, last_updated=STAMP))

        lines = section.split("\n")[1:]
        assert len(lines) == MAX_NOTES
        assert lines[0] == "⚡ note 19"
        assert lines[10] == "○ note 9"


class TestTimelineSection:
    def test_empty(self):
        section = build_timeline_section(Timeline(entries=[], last_updated=STAMP))
        assert section == "=== RECENT CHANGES ===\nHistory is empty."

    def test_newest_first_capped(self):
        entries = [
            TimelineEntry(
                id=f"t{day}",
                timestamp=f"2024-02-{day:02d}T10:00:00.000Z",
                event_type="fact_added",
                title=f"event {day}",
                created_at=STAMP,
                updated_at=STAMP,
            )
            for day in range(1, 16)
        ]
        section = build_timeline_section(Timeline(entries=entries, last_updated=STAMP))

        lines = section.split("\n")[1:]
        assert len(lines) == MAX_TIMELINE
        assert lines[0] == "• 2024-02-15: event 15"


class TestSystemPrompt:
    @pytest.mark.asyncio
    async def test_section_order(self, service, space):
        await service.add_fact(space.id, category="work", statement="Is a nurse", confidence="high")
        prompt = await build_system_prompt(service.storage, space.id)

        markers = [
            "You are an AI assistant with persistent memory.",
            "=== CONTEXT: Personal ===",
            "=== PROFILE ===",
            "=== FACTS (verified) ===",
            "=== NOTES ===",
            "=== RECENT CHANGES ===",
            "=== MEMORY EXTRACTION ===",
        ]
        positions = [prompt.index(m) for m in markers]
        assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_parts_render_matches_prompt(self, service, space):
        parts = await build_context_parts(service.storage, space.id)

        assert isinstance(parts, SystemPromptParts)
        assert parts.render() == await build_system_prompt(service.storage, space.id)

    @pytest.mark.asyncio
    async def test_bad_validity_date_does_not_break_prompt(self, service, space):
        await service.add_profile_entry(
            space.id, category="personal", key="city", value="Lisbon", valid_from="next week"
        )

        prompt = await build_system_prompt(service.storage, space.id)

        assert "• city: Lisbon" in prompt

    @pytest.mark.asyncio
    async def test_missing_space(self, storage):
        with pytest.raises(StorageError):
            await build_system_prompt(storage, "missing")


class TestCounting:
    def test_estimate_tokens(self):
        assert estimate_context_tokens("") == 0
        assert estimate_context_tokens("abcd") == 2

    def test_count_section_items(self):
        prompt = "\n\n".join(
            [
                "=== PROFILE ===\n• name: Ana",
                "=== FACTS (verified) ===\n\n[WORK]\n✓ a\n◉ b\n◌ c",
                "=== NOTES (observations, unverified) ===\n⚡ x\n• y",
                "=== RECENT CHANGES ===\n• 2024-01-01: z",
            ]
        )
        assert count_section_items(prompt, "FACTS") == 3
        assert count_section_items(prompt, "NOTES") == 2
        assert count_section_items(prompt, "MISSING") == 0

    def test_placeholders_count_zero(self):
        prompt = "=== FACTS ===\nNo facts.\n\n=== NOTES ===\nNo notes."
        assert count_section_items(prompt, "FACTS") == 0
        assert count_section_items(prompt, "NOTES") == 0
