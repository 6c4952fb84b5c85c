"""Resolution of server IDs to Artifactory connection details.

The issues configuration names the Artifactory server holding previous
builds by ID only. This module looks the ID up in the JFrog CLI
configuration file, which has the format:

{
    "artifactory": [
        {
            "serverId": "artifactory-server",
            "url": "https://acme.jfrog.io/artifactory/",
            "user": "ci",
            "password": "...",
            "isDefault": true
        }
    ],
    "version": "1"
}

Design notes:
- Uses the same Protocol + concrete + Mock layout as the other collaborators
- An empty ID resolves to the default server
"""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from buildinfo_vcs.errors import ConfigurationError, ServerNotFoundError
from buildinfo_vcs.schemas import ServerDetails

CONFIG_FILE_NAME = "jfrog-cli.conf"


def default_config_path() -> Path:
    """Location of the JFrog CLI config, honouring JFROG_CLI_HOME."""
    home = os.environ.get("JFROG_CLI_HOME")
    base = Path(home) if home else Path.home() / ".jfrog"
    return base / CONFIG_FILE_NAME


def _select(servers: Sequence[ServerDetails], server_id: str) -> ServerDetails:
    if not server_id:
        for server in servers:
            if server.is_default:
                return server
        if len(servers) == 1:
            return servers[0]
        raise ServerNotFoundError(
            "No default Artifactory server is configured",
            context={"configured": len(servers)},
        )

    for server in servers:
        if server.server_id == server_id:
            return server
    raise ServerNotFoundError(
        f"Server ID '{server_id}' does not exist",
        context={"server_id": server_id},
    )


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ServerRegistryProtocol(Protocol):
    """Looks up Artifactory connection details by server ID."""

    def get_server(self, server_id: str) -> ServerDetails:
        """Return the details registered under server_id.

        An empty server_id returns the default server.

        Raises:
            ServerNotFoundError: If no matching server is configured
        """
        ...


# ---------------------------------------------------------------------------
# JFrog CLI config implementation
# ---------------------------------------------------------------------------


class JFrogConfigRegistry:
    """Reads servers from the JFrog CLI config file.

    The file is read lazily on the first lookup. A missing file means no
    servers are configured.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else default_config_path()
        self._servers: list[ServerDetails] | None = None

    def _load(self) -> list[ServerDetails]:
        if self._servers is not None:
            return self._servers

        if not self._path.exists():
            self._servers = []
            return self._servers

        try:
            raw = json.loads(self._path.read_text()) or {}
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Invalid JSON in {self._path}: {exc}",
                context={"path": str(self._path)},
            ) from exc

        servers = []
        for entry in raw.get("artifactory") or []:
            # Older configs store an API key instead of a password.
            if not entry.get("password") and entry.get("apiKey"):
                entry = {**entry, "password": entry["apiKey"]}
            try:
                servers.append(ServerDetails.model_validate(entry))
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid server entry in {self._path}: {exc}",
                    context={"path": str(self._path)},
                ) from exc

        self._servers = servers
        return servers

    def get_server(self, server_id: str) -> ServerDetails:
        return _select(self._load(), server_id)


# ---------------------------------------------------------------------------
# Mock Implementation
# ---------------------------------------------------------------------------


class MockServerRegistry:
    """In-memory registry for tests and local development.

    Usage:
        registry = MockServerRegistry([ServerDetails(server_id="rt", url="https://rt")])
        registry.get_server("rt")
    """

    def __init__(self, servers: Sequence[ServerDetails] | None = None) -> None:
        self._servers = list(servers or [])
        self.requested: list[str] = []

    def get_server(self, server_id: str) -> ServerDetails:
        self.requested.append(server_id)
        return _select(self._servers, server_id)
