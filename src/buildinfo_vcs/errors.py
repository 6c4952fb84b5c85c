"""Exception hierarchy for the build-info VCS collector.

Every error carries a ``context`` dict with the structured details that
produced it (offending key, exit code, URL, ...), so the CLI boundary can
log them as fields rather than parsing messages.
"""

from __future__ import annotations

from typing import Any


class BuildInfoVcsError(RuntimeError):
    """Base exception that carries structured context."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(BuildInfoVcsError):
    """Raised when the issues configuration is missing a key or has a bad value."""


class ServerNotFoundError(ConfigurationError):
    """Raised when a server ID cannot be resolved to connection details."""


class IssuePatternError(BuildInfoVcsError):
    """Raised when a pattern match lacks the configured capture groups."""


class LogCommandError(BuildInfoVcsError):
    """Raised when the git log command cannot start or exits abnormally."""


class VcsError(BuildInfoVcsError):
    """Raised when local repository metadata cannot be read."""


class BuildInfoRequestError(BuildInfoVcsError):
    """Raised when a request to the repository manager fails."""


__all__ = [
    "BuildInfoVcsError",
    "ConfigurationError",
    "ServerNotFoundError",
    "IssuePatternError",
    "LogCommandError",
    "VcsError",
    "BuildInfoRequestError",
]
