"""Issues configuration loaded from YAML.

The configuration file tells the collector how to find issue references in
commit messages:

    version: 1
    issues:
      trackerName: JIRA
      regexp: (.+-[0-9]+)\\s-\\s(.+)
      keyGroupIndex: 1
      summaryGroupIndex: 2
      trackerUrl: https://example.atlassian.net/browse
      aggregate: true
      aggregationStatus: RELEASED
      serverID: artifactory-server

Every value is read in its string form and parsed here, so quoted and
unquoted YAML scalars behave the same. Required keys are checked in a fixed
order and the first one missing is reported by name.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from buildinfo_vcs.errors import ConfigurationError
from buildinfo_vcs.schemas import GIT_LOG_LIMIT, IssuesConfiguration
from buildinfo_vcs.servers import ServerRegistryProtocol

ISSUES_SECTION = "issues"
MISSING_CONFIGURATION_ERROR = "Configuration file must contain: {}"
PARSE_VALUE_ERROR = "Failed parsing {} from configuration file: {}"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML configuration file into a dict.

    Raises:
        ConfigurationError: If the file is missing or is not valid YAML.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}", context={"path": str(path)}
        )

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Invalid YAML in {path}: {exc}", context={"path": str(path)}
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Invalid configuration in {path}: expected a mapping",
            context={"path": str(path)},
        )
    return raw


def _as_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _qualified(key: str) -> str:
    return f"{ISSUES_SECTION}.{key}"


def _missing(key: str) -> ConfigurationError:
    return ConfigurationError(
        MISSING_CONFIGURATION_ERROR.format(key), context={"key": key}
    )


def _parse_error(key: str, message: str) -> ConfigurationError:
    return ConfigurationError(
        PARSE_VALUE_ERROR.format(_qualified(key), message),
        context={"key": _qualified(key)},
    )


def _required(section: Mapping[str, Any], key: str) -> str:
    value = section.get(key)
    if value is None:
        raise _missing(_qualified(key))
    return _as_string(value)


def _optional(section: Mapping[str, Any], key: str, default: str = "") -> str:
    value = section.get(key)
    if value is None:
        return default
    return _as_string(value)


def _parse_int(key: str, value: str) -> int:
    # Plain decimal only; int() would also take " 1 " and "1_0".
    if not _INTEGER.fullmatch(value):
        raise _parse_error(key, f"invalid syntax: {value!r}")
    return int(value)


def _parse_bool(key: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise _parse_error(key, f"invalid syntax: {value!r}")


def resolve_issues_config(
    source: Mapping[str, Any],
    registry: ServerRegistryProtocol,
) -> IssuesConfiguration:
    """Build a validated IssuesConfiguration from a parsed config document.

    Args:
        source: The parsed configuration document (top-level mapping).
        registry: Resolves issues.serverID to connection details.

    Returns:
        The issues configuration. Nothing is returned on failure.

    Raises:
        ConfigurationError: If a required key is missing or a value cannot
            be parsed. The message names the offending key.
        ServerNotFoundError: If issues.serverID is not registered.
    """
    section = source.get(ISSUES_SECTION)
    if not isinstance(section, Mapping):
        raise _missing(ISSUES_SECTION)

    server_id = _optional(section, "serverID")
    if not server_id:
        raise _missing(_qualified("serverID"))
    server = registry.get_server(server_id)

    tracker_name = _required(section, "trackerName")
    regexp = _required(section, "regexp")
    tracker_url = _optional(section, "trackerUrl")
    key_group_index = _parse_int("keyGroupIndex", _required(section, "keyGroupIndex"))
    summary_group_index = _parse_int(
        "summaryGroupIndex", _required(section, "summaryGroupIndex")
    )

    aggregate = False
    if section.get("aggregate") is not None:
        aggregate = _parse_bool("aggregate", _as_string(section["aggregate"]))

    return IssuesConfiguration(
        tracker_name=tracker_name,
        tracker_url=tracker_url,
        regexp=regexp,
        log_limit=GIT_LOG_LIMIT,
        key_group_index=key_group_index,
        summary_group_index=summary_group_index,
        aggregate=aggregate,
        aggregation_status=_optional(section, "aggregationStatus"),
        server=server,
    )


def load_issues_config(
    path: str | Path,
    registry: ServerRegistryProtocol,
) -> IssuesConfiguration:
    """Read a YAML file and resolve its issues section."""
    return resolve_issues_config(read_config_file(path), registry)
