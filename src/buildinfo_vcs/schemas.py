"""Pydantic models for VCS provenance, affected issues and partial build-info.

These schemas are the single source of truth for the data passed between
the collectors and the build-info store. They are used for:
- The validated issues configuration read from YAML
- The git log query handed to the commit-log source
- The partial build-info record persisted to disk (via aliases matching the
  Artifactory build-info JSON format)

Key design decisions:
- Records produced once and passed around (configuration, issues, VCS info)
  are frozen
- Wire names (camelCase) are aliases; Python code uses snake_case fields
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

GIT_LOG_LIMIT = 100


def _with_trailing_slash(value: str) -> str:
    if value and not value.endswith("/"):
        return value + "/"
    return value


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ServerDetails(BaseModel):
    """Connection details for an Artifactory server.

    Attributes:
        server_id: The ID the server is registered under
        url: Base URL of the server, always ending with "/"
        user: Username for basic auth
        password: Password (or API key) for basic auth
        access_token: Bearer token, used instead of user/password when set
        is_default: Whether this server is used when no ID is given
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    server_id: str = Field("", alias="serverId", description="Registered server ID")
    url: str = Field(..., min_length=1, description="Server base URL")
    user: str = Field("", description="Username")
    password: str = Field("", description="Password or API key")
    access_token: str = Field("", alias="accessToken", description="Access token")
    is_default: bool = Field(False, alias="isDefault", description="Default server flag")

    @field_validator("url")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        return _with_trailing_slash(value)


class IssuesConfiguration(BaseModel):
    """How to recognise issue references in commit messages.

    Attributes:
        tracker_name: Name of the issue tracker (e.g., "JIRA")
        tracker_url: Prefix for issue links, always ending with "/" when set
        regexp: Pattern applied to each commit subject line
        log_limit: Maximum number of commits scanned
        key_group_index: Capture group holding the issue key
        summary_group_index: Capture group holding the issue summary
        aggregate: Whether issues of previous builds are aggregated
        aggregation_status: Build status that stops aggregation
        server: Artifactory server the previous build-info is read from
    """

    model_config = ConfigDict(frozen=True)

    tracker_name: str
    tracker_url: str = ""
    regexp: str
    log_limit: int = Field(GIT_LOG_LIMIT, gt=0)
    key_group_index: int
    summary_group_index: int
    aggregate: bool = False
    aggregation_status: str = ""
    server: ServerDetails

    @field_validator("tracker_url")
    @classmethod
    def normalize_tracker_url(cls, value: str) -> str:
        return _with_trailing_slash(value)


# ---------------------------------------------------------------------------
# Git
# ---------------------------------------------------------------------------


class VcsInfo(BaseModel):
    """Remote URL and checked-out revision of a local repository."""

    model_config = ConfigDict(frozen=True)

    url: str
    revision: str


class LogQuerySpec(BaseModel):
    """A bounded window of the commit log, newest first.

    Attributes:
        source_path: Repository directory the log is read from
        limit: Maximum number of commits
        exclude_up_to_revision: When set, only commits after this revision
    """

    model_config = ConfigDict(frozen=True)

    source_path: Path
    limit: int = Field(GIT_LOG_LIMIT, gt=0)
    exclude_up_to_revision: str = ""

    def to_args(self) -> list[str]:
        """Render the git command line for this query."""
        args = ["git", "log", "--pretty=format:%s", f"-{self.limit}"]
        if self.exclude_up_to_revision:
            args.append(f"{self.exclude_up_to_revision}..")
        return args


# ---------------------------------------------------------------------------
# Build-info
# ---------------------------------------------------------------------------


class AffectedIssue(BaseModel):
    """An issue referenced by a commit in this build."""

    model_config = ConfigDict(frozen=True)

    key: str
    summary: str
    url: str = ""
    aggregated: bool = False


class Tracker(BaseModel):
    name: str
    version: str = ""


class Issues(BaseModel):
    """The issues section of a build-info record."""

    model_config = ConfigDict(populate_by_name=True)

    tracker: Tracker
    aggregate_build_issues: bool = Field(False, alias="aggregateBuildIssues")
    aggregation_build_status: str = Field("", alias="aggregationBuildStatus")
    affected_issues: list[AffectedIssue] = Field(
        default_factory=list, alias="affectedIssues"
    )


class Vcs(BaseModel):
    url: str = ""
    revision: str = ""


class PartialBuildInfo(BaseModel):
    """One incremental fragment of a build's metadata.

    Fragments are merged with the other partials of the same build before
    the build-info is published.
    """

    model_config = ConfigDict(populate_by_name=True)

    timestamp: int = Field(..., description="Creation time, ms since epoch")
    vcs: Vcs | None = None
    issues: Issues | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class BuildGeneralDetails(BaseModel):
    """Name, number and start time of a build being recorded."""

    model_config = ConfigDict(populate_by_name=True)

    build_name: str = Field(..., min_length=1, alias="buildName")
    build_number: str = Field(..., min_length=1, alias="buildNumber")
    started: str
