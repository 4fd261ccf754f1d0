"""Tests for JSONL logging."""

import json
from pathlib import Path

import pytest

from memspace import logging as memspace_logging
from memspace.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert data == {"timestamp": "2024-01-01T00:00:00Z", "event": "test"}


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written one JSON object per line."""
    logger.log("event1", space_id="s1")
    logger.log("event2", session_id="abc")

    entries = read_entries(logger)
    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["space_id"] == "s1"
    assert entries[1]["session_id"] == "abc"
    assert "space_id" not in entries[1]


def test_set_space_id(logger: JSONLLogger):
    """Test that set_space_id applies to subsequent logs."""
    logger.set_space_id("space-42")
    logger.log("event1")
    logger.log("event2", space_id="override")

    entries = read_entries(logger)
    assert entries[0]["space_id"] == "space-42"
    assert entries[1]["space_id"] == "override"


def test_log_chat_turn(logger: JSONLLogger):
    logger.log_chat_turn(
        space_id="s1",
        session_id="c1",
        duration_ms=120.5,
        tokens_estimate=800,
        facts_used=3,
        notes_used=1,
        extracted=False,
    )

    [entry] = read_entries(logger)
    assert entry["event"] == "chat_turn"
    assert entry["duration_ms"] == 120.5
    assert entry["tokens_estimate"] == 800
    assert entry["extra"] == {"facts_used": 3, "notes_used": 1, "extracted": False}


def test_log_chat_error(logger: JSONLLogger):
    logger.log_chat_error("AI Error: timeout", space_id="s1", session_id="c1")

    [entry] = read_entries(logger)
    assert entry["event"] == "chat_error"
    assert entry["error"] == "AI Error: timeout"
    assert "duration_ms" not in entry


def test_log_memory_saved(logger: JSONLLogger):
    logger.log_memory_saved(
        space_id="s1", session_id="c1", saved_facts=2, saved_notes=0, saved_profile_updates=1
    )

    [entry] = read_entries(logger)
    assert entry["extra"]["saved_facts"] == 2
    assert entry["extra"]["saved_profile_updates"] == 1


def test_rotation(tmp_path: Path):
    """Test log rotation when max size is exceeded."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.001)  # ~1KB

    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    assert len(list(tmp_path.glob("events*.jsonl"))) >= 2


def test_configure_replaces_global(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(memspace_logging, "_logger", None)

    configured = configure_logger(tmp_path)

    assert get_logger() is configured
    assert configured.log_dir == tmp_path
