"""Artifactory REST client for previously published build-info.

Issue collection only scans commits made since the last published build of
the same name. This module finds that build and returns its VCS revision:
1. GET api/build/{name} - list of build numbers with start times
2. GET api/build/{name}/{number} - the build-info of the latest one

Design notes:
- Uses httpx, one client per call so no connection outlives a request
- Transport failures (connection refused, timeouts) are retried with
  tenacity; HTTP error statuses are not
- A 404 on either call means the build was never published, which is the
  normal state for a first build

Artifactory API docs: https://jfrog.com/help/r/jfrog-rest-apis/builds
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from buildinfo_vcs.errors import BuildInfoRequestError
from buildinfo_vcs.logging_config import get_logger
from buildinfo_vcs.schemas import ServerDetails

logger = get_logger(__name__)

BUILD_STARTED_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
_EPOCH = datetime.min.replace(tzinfo=UTC)

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class BuildInfoClientProtocol(Protocol):
    """Reads previously published build-info from the repository manager."""

    def get_latest_vcs_revision(self, build_name: str) -> str:
        """Return the VCS revision of the latest published build.

        Args:
            build_name: Name of the build

        Returns:
            The revision, or "" when the build was never published or
            carries no VCS details.
        """
        ...


def revision_from_build_info(build_info: dict[str, Any] | None) -> str:
    """Extract the VCS revision from a build-info document."""
    if not build_info:
        return ""
    vcs = build_info.get("vcs") or []
    if vcs and vcs[0].get("revision"):
        return vcs[0]["revision"]
    return build_info.get("vcsRevision") or ""


def _started(entry: dict[str, Any]) -> datetime:
    try:
        return datetime.strptime(entry.get("started", ""), BUILD_STARTED_FORMAT)
    except ValueError:
        return _EPOCH


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class ArtifactoryBuildInfoClient:
    """Build-info client for the Artifactory REST API.

    Usage:
        client = ArtifactoryBuildInfoClient(server)
        revision = client.get_latest_vcs_revision("my-build")
    """

    def __init__(
        self,
        server: ServerDetails,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            server: Connection details of the Artifactory server
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._server = server
        self._timeout = timeout
        self._transport = transport
        self._headers: dict[str, str] = {"Accept": "application/json"}
        self._auth: httpx.BasicAuth | None = None
        if server.access_token:
            self._headers["Authorization"] = f"Bearer {server.access_token}"
        elif server.user:
            self._auth = httpx.BasicAuth(server.user, server.password)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._server.url,
            headers=self._headers,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        reraise=True,
    )
    def _get_json(self, client: httpx.Client, path: str) -> dict[str, Any] | None:
        resp = client.get(path)
        if resp.status_code == httpx.codes.NOT_FOUND:
            return None
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError as exc:
            # Proxies and SSO pages answer 200 with HTML.
            raise BuildInfoRequestError(
                f"Artifactory returned a non-JSON body for {resp.request.url}",
                context={
                    "url": str(resp.request.url),
                    "content_type": resp.headers.get("content-type", ""),
                },
            ) from exc

    def get_latest_build_info(self, build_name: str) -> dict[str, Any] | None:
        """Fetch the build-info of the most recently started build.

        Returns:
            The buildInfo object, or None when the build does not exist.

        Raises:
            BuildInfoRequestError: If Artifactory cannot be reached or
                returns an error status other than 404.
        """
        build_path = f"api/build/{quote(build_name, safe='')}"
        try:
            with self._client() as client:
                builds = self._get_json(client, build_path)
                numbers = (builds or {}).get("buildsNumbers") or []
                if not numbers:
                    return None

                latest = max(numbers, key=_started)
                number = latest["uri"].lstrip("/")
                logger.debug("latest_build_found", build_name=build_name, build_number=number)

                data = self._get_json(client, f"{build_path}/{number}")
        except httpx.HTTPStatusError as exc:
            raise BuildInfoRequestError(
                f"Artifactory returned {exc.response.status_code} for {exc.request.url}",
                context={
                    "build_name": build_name,
                    "status_code": exc.response.status_code,
                },
            ) from exc
        except httpx.HTTPError as exc:
            raise BuildInfoRequestError(
                f"Failed reaching Artifactory at {self._server.url}: {exc}",
                context={"build_name": build_name, "url": self._server.url},
            ) from exc

        if data is None:
            return None
        return data.get("buildInfo")

    def get_latest_vcs_revision(self, build_name: str) -> str:
        return revision_from_build_info(self.get_latest_build_info(build_name))


# ---------------------------------------------------------------------------
# Mock Implementation
# ---------------------------------------------------------------------------


class MockBuildInfoClient:
    """Returns predefined revisions without hitting Artifactory.

    Usage:
        client = MockBuildInfoClient({"my-build": "abc123"})
        client.get_latest_vcs_revision("my-build")  # -> "abc123"
    """

    def __init__(self, revisions: dict[str, str] | None = None) -> None:
        self._revisions = revisions or {}

    def get_latest_vcs_revision(self, build_name: str) -> str:
        return self._revisions.get(build_name, "")
