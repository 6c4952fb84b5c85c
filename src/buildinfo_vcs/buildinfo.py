"""Partial build-info assembly and local persistence.

A build is recorded incrementally: each command that contributes to it
(collecting VCS details, publishing artifacts, ...) writes a partial
record, and the partials are merged when the build-info is published.

On-disk layout, shared with the JFrog CLI:

    <base>/<sha256(name + "_" + number)>/details
    <base>/<sha256(name + "_" + number)>/partials/<time_ns>.json

<base> is $JFROG_CLI_TEMP_DIR/jfrog/builds, falling back to the system
temp directory.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import time
from datetime import UTC, datetime
from pathlib import Path

from buildinfo_vcs.logging_config import get_logger
from buildinfo_vcs.schemas import (
    AffectedIssue,
    BuildGeneralDetails,
    Issues,
    IssuesConfiguration,
    PartialBuildInfo,
    Tracker,
    Vcs,
    VcsInfo,
)

logger = get_logger(__name__)

DETAILS_FILE = "details"
PARTIALS_DIR = "partials"


def build_started_now() -> str:
    """Current time in the build-info "started" format."""
    now = datetime.now(UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}+0000"


def build_partial(
    vcs_info: VcsInfo,
    issues_config: IssuesConfiguration | None = None,
    issues: list[AffectedIssue] | None = None,
) -> PartialBuildInfo:
    """Merge VCS details and collected issues into a partial record.

    The issues section is only set when an issues configuration was used,
    so a build without a tracker carries no empty section.
    """
    partial = PartialBuildInfo(
        timestamp=int(time.time() * 1000),
        vcs=Vcs(url=vcs_info.url, revision=vcs_info.revision),
    )
    if issues_config is not None:
        partial.issues = Issues(
            tracker=Tracker(name=issues_config.tracker_name, version=""),
            aggregate_build_issues=issues_config.aggregate,
            aggregation_build_status=issues_config.aggregation_status,
            affected_issues=list(issues or []),
        )
    return partial


class BuildInfoStore:
    """Stores build details and partials in the local builds directory."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        if base_dir is None:
            temp_root = os.environ.get("JFROG_CLI_TEMP_DIR") or tempfile.gettempdir()
            base_dir = Path(temp_root) / "jfrog" / "builds"
        self.base_dir = Path(base_dir)

    def build_dir(self, build_name: str, build_number: str) -> Path:
        digest = hashlib.sha256(f"{build_name}_{build_number}".encode()).hexdigest()
        return self.base_dir / digest

    def save_general_details(self, build_name: str, build_number: str) -> Path:
        """Record the build's name, number and start time.

        The first call for a build wins; later calls leave the file as is.
        """
        build_dir = self.build_dir(build_name, build_number)
        build_dir.mkdir(parents=True, exist_ok=True)
        details_path = build_dir / DETAILS_FILE
        if not details_path.exists():
            details = BuildGeneralDetails(
                build_name=build_name,
                build_number=build_number,
                started=build_started_now(),
            )
            details_path.write_text(details.model_dump_json(by_alias=True, indent=2))
        return details_path

    def load_general_details(self, build_name: str, build_number: str) -> BuildGeneralDetails:
        details_path = self.build_dir(build_name, build_number) / DETAILS_FILE
        return BuildGeneralDetails.model_validate(json.loads(details_path.read_text()))

    def save_partial(
        self,
        build_name: str,
        build_number: str,
        partial: PartialBuildInfo,
    ) -> Path:
        partials_dir = self.build_dir(build_name, build_number) / PARTIALS_DIR
        partials_dir.mkdir(parents=True, exist_ok=True)

        stamp = time.time_ns()
        path = partials_dir / f"{stamp}.json"
        while path.exists():
            stamp += 1
            path = partials_dir / f"{stamp}.json"

        path.write_text(partial.to_json())
        logger.debug("partial_saved", path=str(path))
        return path

    def load_partials(self, build_name: str, build_number: str) -> list[PartialBuildInfo]:
        """Return the build's partials in the order they were written."""
        partials_dir = self.build_dir(build_name, build_number) / PARTIALS_DIR
        if not partials_dir.is_dir():
            return []
        paths = sorted(partials_dir.glob("*.json"), key=lambda p: int(p.stem))
        return [PartialBuildInfo.model_validate_json(p.read_text()) for p in paths]
