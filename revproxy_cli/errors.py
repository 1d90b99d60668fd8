"""
Exception hierarchy and error codes for revproxy.

Lifecycle operations never let these escape: they are caught by the manager
and turned into an OperationResult with one of the ERROR_* codes. The one
exception is RollbackError, which is re-raised because the managed files can
no longer be assumed consistent.
"""

from typing import Any, Literal

ErrorCode = Literal[
    "invalid_input",
    "duplicate_entry",
    "not_found",
    "no_insertion_point",
    "backup_failed",
    "server_validation_failed",
    "reload_failed",
    "io_error",
]

ERROR_INVALID_INPUT: ErrorCode = "invalid_input"
ERROR_DUPLICATE_ENTRY: ErrorCode = "duplicate_entry"
ERROR_NOT_FOUND: ErrorCode = "not_found"
ERROR_NO_INSERTION_POINT: ErrorCode = "no_insertion_point"
ERROR_BACKUP_FAILED: ErrorCode = "backup_failed"
ERROR_SERVER_VALIDATION_FAILED: ErrorCode = "server_validation_failed"
ERROR_RELOAD_FAILED: ErrorCode = "reload_failed"
ERROR_IO: ErrorCode = "io_error"


class RevproxyError(Exception):
    """Base exception for all revproxy errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(RevproxyError):
    """Settings file is unreadable or malformed."""


class BackupError(RevproxyError):
    """A snapshot could not be created or restored."""


class RollbackError(RevproxyError):
    """Restoring a snapshot after a failed validation did not complete.

    The nginx config and hosts file may now be out of sync.
    """

    def __init__(self, message: str, snapshot: Any = None, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.snapshot = snapshot


def format_error_message(error: Exception) -> str:
    """Format an exception for the console, including any details."""
    if isinstance(error, RevproxyError):
        message = error.message
        if error.details:
            details = ", ".join(f"{k}={v}" for k, v in error.details.items())
            message += f" ({details})"
        return message
    return f"{type(error).__name__}: {error}"
