"""Tests for server ID resolution.

Run with: pytest tests/test_servers.py -v
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from buildinfo_vcs.errors import ConfigurationError, ServerNotFoundError
from buildinfo_vcs.schemas import ServerDetails
from buildinfo_vcs.servers import JFrogConfigRegistry, MockServerRegistry, default_config_path

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "jfrog-cli.conf"
    path.write_text(
        json.dumps(
            {
                "artifactory": [
                    {
                        "url": "https://main.jfrog.io/artifactory",
                        "user": "ci",
                        "password": "secret",
                        "serverId": "main",
                        "isDefault": True,
                    },
                    {
                        "url": "https://legacy.example.com/artifactory/",
                        "user": "old",
                        "apiKey": "AKC123",
                        "serverId": "legacy",
                    },
                ],
                "version": "1",
            }
        )
    )
    return path


# ---------------------------------------------------------------------------
# JFrog CLI config
# ---------------------------------------------------------------------------


class TestJFrogConfigRegistry:
    def test_lookup_by_id(self, config_file: Path) -> None:
        server = JFrogConfigRegistry(config_file).get_server("main")
        assert server.server_id == "main"
        assert server.url == "https://main.jfrog.io/artifactory/"
        assert server.user == "ci"
        assert server.password == "secret"

    def test_empty_id_returns_default(self, config_file: Path) -> None:
        assert JFrogConfigRegistry(config_file).get_server("").server_id == "main"

    def test_api_key_used_as_password(self, config_file: Path) -> None:
        assert JFrogConfigRegistry(config_file).get_server("legacy").password == "AKC123"

    def test_unknown_id(self, config_file: Path) -> None:
        with pytest.raises(ServerNotFoundError) as exc_info:
            JFrogConfigRegistry(config_file).get_server("nope")
        assert exc_info.value.context["server_id"] == "nope"

    def test_missing_file_has_no_servers(self, tmp_path: Path) -> None:
        with pytest.raises(ServerNotFoundError):
            JFrogConfigRegistry(tmp_path / "absent.conf").get_server("main")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "jfrog-cli.conf"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            JFrogConfigRegistry(path).get_server("main")

    def test_entry_without_url(self, tmp_path: Path) -> None:
        path = tmp_path / "jfrog-cli.conf"
        path.write_text(json.dumps({"artifactory": [{"serverId": "x"}]}))
        with pytest.raises(ConfigurationError, match="Invalid server entry"):
            JFrogConfigRegistry(path).get_server("x")

    def test_default_path_honours_env(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("JFROG_CLI_HOME", str(tmp_path))
        assert default_config_path() == tmp_path / "jfrog-cli.conf"


# ---------------------------------------------------------------------------
# Mock
# ---------------------------------------------------------------------------


class TestMockServerRegistry:
    def test_single_server_is_default(self) -> None:
        registry = MockServerRegistry([ServerDetails(server_id="only", url="https://rt")])
        assert registry.get_server("").server_id == "only"
        assert registry.requested == [""]

    def test_no_default_among_many(self) -> None:
        registry = MockServerRegistry(
            [
                ServerDetails(server_id="a", url="https://a"),
                ServerDetails(server_id="b", url="https://b"),
            ]
        )
        with pytest.raises(ServerNotFoundError, match="No default"):
            registry.get_server("")
