"""Error types shared across memspace."""

from enum import Enum


class MemspaceError(Exception):
    """Base class for all memspace errors."""


class StorageErrorCode(Enum):
    """Failure categories for the knowledge store."""

    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    IO_ERROR = "IO_ERROR"
    PARSE_ERROR = "PARSE_ERROR"


class StorageError(MemspaceError):
    """Raised by the knowledge store and its service layer."""

    def __init__(
        self,
        message: str,
        code: StorageErrorCode,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause

    @property
    def is_not_found(self) -> bool:
        return self.code is StorageErrorCode.NOT_FOUND


class SpaceNotFoundError(StorageError):
    """The requested space does not exist (or belongs to someone else)."""

    def __init__(self, space_id: str) -> None:
        super().__init__(f"Space not found: {space_id}", StorageErrorCode.NOT_FOUND)
        self.space_id = space_id


class NotConfiguredError(MemspaceError):
    """The model transport has no credentials."""


class TransportError(MemspaceError):
    """The model API call failed or returned nothing."""
