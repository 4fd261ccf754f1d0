"""JSONL logging for observability."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    space_id: str | None = None
    session_id: str | None = None
    duration_ms: float | None = None
    tokens_estimate: int | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".memspace" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._current_space_id: str | None = None

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def set_space_id(self, space_id: str | None) -> None:
        """Set the current space_id for all subsequent logs."""
        self._current_space_id = space_id

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log(
        self,
        event: str,
        *,
        space_id: str | None = None,
        session_id: str | None = None,
        duration_ms: float | None = None,
        tokens_estimate: int | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            space_id=space_id or self._current_space_id,
            session_id=session_id,
            duration_ms=duration_ms,
            tokens_estimate=tokens_estimate,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_chat_turn(
        self,
        *,
        space_id: str,
        session_id: str,
        duration_ms: float,
        tokens_estimate: int,
        facts_used: int,
        notes_used: int,
        extracted: bool,
    ) -> None:
        """Log a completed chat turn."""
        self.log(
            "chat_turn",
            space_id=space_id,
            session_id=session_id,
            duration_ms=duration_ms,
            tokens_estimate=tokens_estimate,
            facts_used=facts_used,
            notes_used=notes_used,
            extracted=extracted,
        )

    def log_chat_error(
        self,
        error: str,
        *,
        space_id: str,
        session_id: str,
        duration_ms: float | None = None,
    ) -> None:
        """Log a chat turn that failed at the model call."""
        self.log(
            "chat_error",
            space_id=space_id,
            session_id=session_id,
            duration_ms=duration_ms,
            error=error,
        )

    def log_memory_saved(
        self,
        *,
        space_id: str,
        session_id: str,
        saved_facts: int,
        saved_notes: int,
        saved_profile_updates: int,
    ) -> None:
        """Log how much extracted memory was stored."""
        self.log(
            "memory_saved",
            space_id=space_id,
            session_id=session_id,
            saved_facts=saved_facts,
            saved_notes=saved_notes,
            saved_profile_updates=saved_profile_updates,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
