"""Shared fixtures."""

from pathlib import Path

import pytest
import pytest_asyncio

from memspace.conversation_logger import ConversationLogger
from memspace.logging import JSONLLogger
from memspace.memory import SpaceMetadata, SpaceService, SpaceStorage


@pytest.fixture
def storage(tmp_path: Path) -> SpaceStorage:
    """Create a SpaceStorage in a temporary directory."""
    return SpaceStorage(tmp_path / "spaces")


@pytest.fixture
def service(storage: SpaceStorage) -> SpaceService:
    return SpaceService(storage)


@pytest_asyncio.fixture
async def space(service: SpaceService) -> SpaceMetadata:
    """An empty space owned by user-1."""
    return await service.create_space(
        "Personal", "Everyday assistant", owner_id="user-1", tags=["home"]
    )


@pytest.fixture
def event_logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")


@pytest.fixture
def conversation_logger(tmp_path: Path) -> ConversationLogger:
    return ConversationLogger(log_dir=tmp_path / "conversations")
