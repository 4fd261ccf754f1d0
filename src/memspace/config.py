"""Configuration loaded from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_HOME = Path.home() / ".memspace"
DEFAULT_MODEL = "llama-3.1-70b-versatile"


@dataclass
class ProviderConfig:
    """Configuration for the chat model provider."""

    model: str = DEFAULT_MODEL
    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = 2000
    temperature: float = 0.7


@dataclass
class AppConfig:
    """Locations of persisted data plus provider settings."""

    data_dir: Path = DEFAULT_HOME / "spaces"
    sessions_dir: Path = DEFAULT_HOME / "sessions"
    log_dir: Path = DEFAULT_HOME / "logs"
    provider: ProviderConfig = field(default_factory=ProviderConfig)


def config_from_env() -> AppConfig:
    """Load configuration from environment variables."""
    provider = ProviderConfig(
        model=os.getenv("GROQ_MODEL", DEFAULT_MODEL),
        api_key=os.getenv("GROQ_API_KEY") or None,
        base_url=os.getenv("GROQ_BASE_URL") or None,
        max_tokens=int(os.getenv("MEMSPACE_MAX_TOKENS", "2000")),
        temperature=float(os.getenv("MEMSPACE_TEMPERATURE", "0.7")),
    )

    return AppConfig(
        data_dir=Path(os.getenv("MEMSPACE_DATA_DIR", str(DEFAULT_HOME / "spaces"))),
        sessions_dir=Path(os.getenv("MEMSPACE_SESSIONS_DIR", str(DEFAULT_HOME / "sessions"))),
        log_dir=Path(os.getenv("MEMSPACE_LOG_DIR", str(DEFAULT_HOME / "logs"))),
        provider=provider,
    )
