"""Issue reference pattern matching."""

from __future__ import annotations

import re

from buildinfo_vcs.errors import ConfigurationError


class IssuePattern:
    """A compiled user-supplied issue pattern.

    Usage:
        pattern = IssuePattern(r"(\\w+-\\d+): (.+)")
        pattern.match("PROJ-12: fix null check")
        # -> ("PROJ-12: fix null check", "PROJ-12", "fix null check")
    """

    def __init__(self, pattern: str) -> None:
        try:
            self._regex = re.compile(pattern)
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid issues.regexp {pattern!r}: {exc}",
                context={"key": "issues.regexp", "pattern": pattern},
            ) from exc

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def match(self, line: str) -> tuple[str, ...] | None:
        """Return the whole match followed by every capture group.

        The search is unanchored. Groups that did not take part in the
        match are returned as empty strings, so the tuple length is always
        the number of groups plus one.
        """
        found = self._regex.search(line)
        if found is None:
            return None
        return (found.group(0), *found.groups(default=""))
