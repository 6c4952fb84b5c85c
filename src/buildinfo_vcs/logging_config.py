"""Structured logging configuration.

Every step of the add-git command is logged as a snake_case structlog event
with keyword context, so a CI run can be followed by build name:

  collecting_vcs_details    build_name, build_number
  collecting_build_issues   build_name
  latest_build_found        build_name, build_number (debug)
  previous_build_revision   revision of the latest published build (debug)
  running_git_log           args, cwd (debug)
  issue_found               key (debug)
  issues_collected          count, last_revision
  origin_remote_not_set     path (warning; URL recorded as "")
  partial_saved             path (debug)
  vcs_details_collected     build_name, build_number, revision, issues
  add_git_failed            error plus the error's context fields

In development the console renderer is used; in production (ENVIRONMENT=
production) each event is one JSON object, for example:

  {"event": "issue_found", "key": "PROJ-12", "level": "debug", ...}

Logs go to stderr, leaving stdout for the partial build-info the CLI prints.

Usage:
    from buildinfo_vcs.logging_config import setup_logging, get_logger

    setup_logging(log_level="DEBUG")
    logger = get_logger(__name__)
    logger.info("collecting_build_issues", build_name="my-build")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        environment: "development" or "production". Reads from
                     ENVIRONMENT env var if not provided.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Reads from LOG_LEVEL env var if not provided.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level_name = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Standard library logging for third-party libs (httpx).
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        A structlog bound logger
    """
    return structlog.get_logger(name)
