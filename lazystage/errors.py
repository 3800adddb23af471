"""Error taxonomy for repository and diff access.

Only the I/O-facing providers raise recoverable errors. Model code raises
``InvariantViolation`` for programming errors that classification rules out.
"""

from __future__ import annotations


class LazyStageError(Exception):
    """Base class for lazystage errors carrying an optional path context."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message


class RepositoryUnavailable(LazyStageError):
    """Repository could not be opened or its status enumerated."""


class ChangeFetchFailed(LazyStageError):
    """Line-level changes for one file could not be loaded."""


class StagingFailed(LazyStageError):
    """A stage or unstage command for one file was rejected by git."""


class InvariantViolation(LazyStageError, AssertionError):
    """Model invariant broken by the caller, e.g. a duplicate section path."""


__all__ = [
    "LazyStageError",
    "RepositoryUnavailable",
    "ChangeFetchFailed",
    "StagingFailed",
    "InvariantViolation",
]
