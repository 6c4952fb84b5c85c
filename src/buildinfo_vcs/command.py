"""The add-git command: record VCS details and affected issues for a build.

This module ties together all the components:
- Locating the repository (git.py)
- Reading its remote URL and revision (git.py)
- Loading the issues configuration (config.py, servers.py)
- Collecting affected issues since the last published build (collector.py)
- Persisting the result as a partial build-info (buildinfo.py)

It is the entry point for the `buildinfo-vcs` console script:

    buildinfo-vcs my-build 42 --config issues.yaml
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from buildinfo_vcs.artifactory import ArtifactoryBuildInfoClient, BuildInfoClientProtocol
from buildinfo_vcs.buildinfo import BuildInfoStore, build_partial
from buildinfo_vcs.collector import IssueCollector
from buildinfo_vcs.config import load_issues_config
from buildinfo_vcs.errors import BuildInfoVcsError
from buildinfo_vcs.git import (
    CommitLogSourceProtocol,
    GitCommitLog,
    GitVcsReader,
    VcsInfoReaderProtocol,
    find_dot_git_dir,
)
from buildinfo_vcs.logging_config import get_logger, setup_logging
from buildinfo_vcs.schemas import PartialBuildInfo, ServerDetails
from buildinfo_vcs.servers import JFrogConfigRegistry, ServerRegistryProtocol

logger = get_logger(__name__)

ClientFactory = Callable[[ServerDetails], BuildInfoClientProtocol]


@dataclass
class AddGitConfiguration:
    """Arguments of the add-git command.

    Attributes:
        build_name: Name of the build being recorded
        build_number: Number of the build being recorded
        dot_git_path: Repository root; searched upwards from the current
                      directory when None
        config_file_path: Issues configuration YAML; issues are not
                          collected when None
    """

    build_name: str
    build_number: str
    dot_git_path: Path | None = None
    config_file_path: Path | None = None


def add_git(
    config: AddGitConfiguration,
    *,
    vcs_reader: VcsInfoReaderProtocol | None = None,
    log_source: CommitLogSourceProtocol | None = None,
    registry: ServerRegistryProtocol | None = None,
    store: BuildInfoStore | None = None,
    client_factory: ClientFactory = ArtifactoryBuildInfoClient,
) -> PartialBuildInfo:
    """Record the VCS details (and optionally affected issues) of a build.

    Args:
        config: Command arguments
        vcs_reader: Reads URL and revision. Defaults to GitVcsReader.
        log_source: Commit-log source. Defaults to GitCommitLog.
        registry: Server ID lookup. Defaults to the JFrog CLI config.
        store: Build-info store. Defaults to the system builds directory.
        client_factory: Builds the Artifactory client for a server.

    Returns:
        The partial build-info that was saved.

    Raises:
        BuildInfoVcsError: On any configuration, git or Artifactory failure.
            Nothing is saved except the build's general details.
    """
    vcs_reader = vcs_reader or GitVcsReader()
    log_source = log_source or GitCommitLog()
    registry = registry or JFrogConfigRegistry()
    store = store or BuildInfoStore()

    logger.info(
        "collecting_vcs_details",
        build_name=config.build_name,
        build_number=config.build_number,
    )
    store.save_general_details(config.build_name, config.build_number)

    repo_path = config.dot_git_path or find_dot_git_dir()
    vcs_info = vcs_reader.read(repo_path)

    issues_config = None
    issues = None
    if config.config_file_path:
        issues_config = load_issues_config(config.config_file_path, registry)
        collector = IssueCollector(log_source, client_factory(issues_config.server))
        issues = collector.collect(issues_config, config.build_name, repo_path)

    partial = build_partial(vcs_info, issues_config, issues)
    store.save_partial(config.build_name, config.build_number, partial)

    logger.info(
        "vcs_details_collected",
        build_name=config.build_name,
        build_number=config.build_number,
        revision=vcs_info.revision,
        issues=len(issues) if issues is not None else None,
    )
    return partial


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildinfo-vcs",
        description="Collect git revision, remote URL and affected issues for a build",
    )
    parser.add_argument("build_name", help="Build name")
    parser.add_argument("build_number", help="Build number")
    parser.add_argument(
        "dot_git_path",
        nargs="?",
        type=Path,
        help="Repository root (searched upwards from the current directory if omitted)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        dest="config_file_path",
        help="YAML file configuring affected-issues collection",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Usage:
        buildinfo-vcs BUILD_NAME BUILD_NUMBER [DOT_GIT_PATH] [--config FILE]

    Prints the saved partial build-info as JSON and returns the exit code.
    """
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)

    config = AddGitConfiguration(
        build_name=args.build_name,
        build_number=args.build_number,
        dot_git_path=args.dot_git_path,
        config_file_path=args.config_file_path,
    )
    try:
        partial = add_git(config)
    except BuildInfoVcsError as exc:
        logger.error("add_git_failed", error=str(exc), **exc.context)
        return 1

    print(partial.to_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
