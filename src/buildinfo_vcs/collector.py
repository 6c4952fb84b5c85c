"""Affected-issue collection from the commit log.

The collector ties together:
- The issues configuration (config.py)
- The issue pattern (matcher.py)
- The commit-log source (git.py)
- The previous build's revision from Artifactory (artifactory.py)

Flow:
1. Compile the issue pattern, failing before any git process starts
2. Ask for at most log_limit commits after the last published revision
3. Map every matching subject line to an AffectedIssue, newest first
4. Abort on the first match lacking the configured capture groups, or when
   the log command fails; no partial list is ever returned
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from buildinfo_vcs.artifactory import BuildInfoClientProtocol
from buildinfo_vcs.errors import IssuePatternError
from buildinfo_vcs.git import CommitLogSourceProtocol
from buildinfo_vcs.logging_config import get_logger
from buildinfo_vcs.matcher import IssuePattern
from buildinfo_vcs.schemas import AffectedIssue, IssuesConfiguration, LogQuerySpec

logger = get_logger(__name__)

GROUPS_ERROR = (
    "Unexpected result while parsing issues from git log. Make sure that the "
    "regular expression used to find issues, includes two capturing groups, "
    "for the issue ID and the summary."
)


def _iter_issues(
    lines: Iterable[str],
    pattern: IssuePattern,
    config: IssuesConfiguration,
) -> Iterator[AffectedIssue]:
    key_index = config.key_group_index
    summary_index = config.summary_group_index

    for line in lines:
        groups = pattern.match(line)
        if groups is None:
            continue

        # Aborts the whole collection, not just this line.
        if not (0 <= key_index < len(groups) and 0 <= summary_index < len(groups)):
            raise IssuePatternError(
                GROUPS_ERROR,
                context={
                    "line": line,
                    "groups": len(groups) - 1,
                    "key_group_index": key_index,
                    "summary_group_index": summary_index,
                },
            )

        key = groups[key_index]
        logger.debug("issue_found", key=key)
        yield AffectedIssue(
            key=key,
            summary=groups[summary_index],
            url=config.tracker_url + key if config.tracker_url else "",
            aggregated=False,
        )


def _collect(
    pattern: IssuePattern,
    config: IssuesConfiguration,
    last_revision: str,
    repo_path: str | Path,
    log_source: CommitLogSourceProtocol,
) -> list[AffectedIssue]:
    query = LogQuerySpec(
        source_path=Path(repo_path),
        limit=config.log_limit,
        exclude_up_to_revision=last_revision,
    )
    lines = log_source.iter_lines(query)
    try:
        issues = list(_iter_issues(lines, pattern, config))
    finally:
        # Stops the git process when matching aborts mid-log.
        close = getattr(lines, "close", None)
        if close is not None:
            close()

    logger.info(
        "issues_collected",
        count=len(issues),
        last_revision=last_revision or None,
    )
    return issues


def collect_issues(
    config: IssuesConfiguration,
    last_revision: str,
    repo_path: str | Path,
    log_source: CommitLogSourceProtocol,
) -> list[AffectedIssue]:
    """Collect the issues referenced by commits after last_revision.

    Args:
        config: The issues configuration
        last_revision: Revision of the previous build; "" scans the whole
                       log window
        repo_path: Repository root the log is read from
        log_source: Produces the commit subject lines

    Returns:
        The issues in log order (newest first). Repeated references give
        repeated entries.

    Raises:
        ConfigurationError: If the pattern does not compile
        IssuePatternError: If a match lacks the configured capture groups
        LogCommandError: If the log command fails
    """
    pattern = IssuePattern(config.regexp)
    return _collect(pattern, config, last_revision, repo_path, log_source)


class IssueCollector:
    """Collects affected issues for a build.

    Usage:
        collector = IssueCollector(GitCommitLog(), ArtifactoryBuildInfoClient(server))
        issues = collector.collect(config, "my-build", Path("."))
    """

    def __init__(
        self,
        log_source: CommitLogSourceProtocol,
        build_info_client: BuildInfoClientProtocol,
    ) -> None:
        self.log_source = log_source
        self.build_info_client = build_info_client

    def collect(
        self,
        config: IssuesConfiguration,
        build_name: str,
        repo_path: str | Path,
    ) -> list[AffectedIssue]:
        """Collect issues from commits made since the latest published build."""
        logger.info("collecting_build_issues", build_name=build_name)
        pattern = IssuePattern(config.regexp)
        last_revision = self.build_info_client.get_latest_vcs_revision(build_name)
        if last_revision:
            logger.debug("previous_build_revision", revision=last_revision)
        return _collect(pattern, config, last_revision, repo_path, self.log_source)
