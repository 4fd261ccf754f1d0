"""Conversation logger for detailed analysis.

Each chat session gets its own JSONL file per day with every user message,
model request, reply and memory extraction.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class ConversationLogger:
    """Logs complete conversations for analysis."""

    def __init__(self, log_dir: Path | str | None = None) -> None:
        """Initialize the conversation logger.

        Args:
            log_dir: Directory to store logs. Defaults to ./logs in cwd.
        """
        if log_dir is None:
            log_dir = Path.cwd() / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_file(self, session_id: str) -> Path:
        """Get log file path for a chat session."""
        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"{date_str}_{session_id}.jsonl"

    def _write(self, session_id: str, entry: dict[str, Any]) -> None:
        """Write an entry to the log file."""
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        entry["session_id"] = session_id

        log_file = self._get_log_file(session_id)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def log_user_message(self, session_id: str, content: str, attachments: int = 0) -> None:
        """Log a user message."""
        entry: dict[str, Any] = {
            "event": "user_message",
            "role": "user",
            "content": content,
        }
        if attachments:
            entry["attachments"] = attachments
        self._write(session_id, entry)

    def log_assistant_message(self, session_id: str, content: str) -> None:
        """Log the cleaned assistant reply."""
        self._write(session_id, {
            "event": "assistant_message",
            "role": "assistant",
            "content": content,
        })

    def log_llm_request(
        self,
        session_id: str,
        model: str,
        messages_count: int,
        tokens_estimate: int,
    ) -> None:
        """Log an LLM API request."""
        self._write(session_id, {
            "event": "llm_request",
            "model": model,
            "messages_count": messages_count,
            "tokens_estimate": tokens_estimate,
        })

    def log_llm_response(self, session_id: str, length: int, duration_ms: float) -> None:
        """Log an LLM API response."""
        self._write(session_id, {
            "event": "llm_response",
            "length": length,
            "duration_ms": duration_ms,
        })

    def log_memory_extract(self, session_id: str, extracted: dict[str, Any]) -> None:
        """Log the validated memory block found in a reply."""
        self._write(session_id, {
            "event": "memory_extract",
            "extracted": extracted,
        })

    def log_error(self, session_id: str, error: str, context: str | None = None) -> None:
        """Log an error."""
        entry = {
            "event": "error",
            "error": error,
        }
        if context:
            entry["context"] = context
        self._write(session_id, entry)


# Global instance
_conversation_logger: ConversationLogger | None = None


def get_conversation_logger(log_dir: Path | str | None = None) -> ConversationLogger:
    """Get or create the global conversation logger."""
    global _conversation_logger
    if _conversation_logger is None:
        _conversation_logger = ConversationLogger(log_dir=log_dir)
    return _conversation_logger


def reset_conversation_logger() -> None:
    """Reset the global conversation logger (for testing)."""
    global _conversation_logger
    _conversation_logger = None
