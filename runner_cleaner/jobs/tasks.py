"""Task functions executed by the CLI and the scheduler."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import gitlab
import requests

from runner_cleaner.adapters.gitlab_api import DEFAULT_GITLAB_URL, GitLabRunnerClient
from runner_cleaner.domain.models import RunnerOutcome, ScopeResult
from runner_cleaner.reporting.summary import compute_summary
from runner_cleaner.utils.logging import get_structured_logger, log_cleanup_event
from runner_cleaner.workflows.enumerate import (
    PERSONAL_SCOPE,
    RunnerClient,
    group_scope,
    run_group_pass,
    run_personal_pass,
)

ClientFactory = Callable[["RunConfig"], RunnerClient]

DEFAULT_PAGE_SIZE = 50
TRUE_VALUES = frozenset({"1", "t", "true", "y", "yes", "on"})
FALSE_VALUES = frozenset({"0", "f", "false", "n", "no", "off"})

# Errors that end one scope but not the run.
SCOPE_ERRORS: tuple[type[BaseException], ...] = (gitlab.exceptions.GitlabError, requests.RequestException)


class ConfigError(RuntimeError):
    """Raised when the runtime configuration cannot be used."""


@dataclass(frozen=True, slots=True)
class RunConfig:
    token: str = field(repr=False)
    gitlab_url: str = DEFAULT_GITLAB_URL
    page_size: int = DEFAULT_PAGE_SIZE
    delete_personal: bool = True
    delete_group_runners: bool = False
    group_ids: tuple[str, ...] = ()
    dry_run: bool = False
    log_level: str = "INFO"


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_page_size(environ: Mapping[str, str]) -> int:
    raw = environ.get("PAGE_SIZE")
    if raw is None or raw.strip() == "":
        return DEFAULT_PAGE_SIZE
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"PAGE_SIZE must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"PAGE_SIZE must be positive, got {value}")
    return value


def _env_group_ids(environ: Mapping[str, str]) -> tuple[str, ...]:
    raw = environ.get("GROUP_IDS", "")
    return tuple(part for part in re.split(r"[\s,]+", raw) if part)


def resolve_config(environ: Mapping[str, str] | None = None) -> RunConfig:
    """Build a validated ``RunConfig`` from environment variables."""
    env = os.environ if environ is None else environ

    token = env.get("GITLAB_TOKEN", "").strip()
    if not token:
        raise ConfigError("you need to set `GITLAB_TOKEN` env var")

    log_level = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    config = RunConfig(
        token=token,
        gitlab_url=env.get("GITLAB_URL", "").strip() or DEFAULT_GITLAB_URL,
        page_size=_env_page_size(env),
        delete_personal=_env_bool(env, "DELETE_PERSONAL", True),
        delete_group_runners=_env_bool(env, "DELETE_GROUP_RUNNERS", False),
        group_ids=_env_group_ids(env),
        dry_run=_env_bool(env, "DRY_RUN", False),
        log_level=log_level,
    )

    if config.delete_group_runners and not config.group_ids:
        raise ConfigError(
            "group runner deletion has been required, but no group ids has been set. Check GROUP_IDS var"
        )
    return config


def _run_scope(
    scope: str,
    runner: Callable[[list[RunnerOutcome]], Any],
    logger: logging.Logger,
    *,
    group_id: str | None = None,
) -> ScopeResult:
    result = ScopeResult(scope=scope)
    try:
        runner(result.outcomes)
    except SCOPE_ERRORS as exc:
        result.error = exc
        log_cleanup_event(
            logger,
            event="scope_failed",
            message="runner cleanup failed for scope",
            level=logging.ERROR,
            scope=scope,
            group_id=group_id,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
    return result


def runner_cleanup(
    config: RunConfig | None = None,
    *,
    client: RunnerClient | None = None,
    client_factory: ClientFactory | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Run one stateless cleanup pass over personal and group runners."""
    config = config or resolve_config()
    logger = logger or get_structured_logger(level=config.log_level)

    log_cleanup_event(
        logger,
        event="cleanup_started",
        message="Connecting to gitlab",
        level=logging.DEBUG,
        dry_run=config.dry_run,
        per_page=config.page_size,
    )
    if client is None:
        factory = client_factory or GitLabRunnerClient.from_config
        client = factory(config)

    results: list[ScopeResult] = []

    if config.delete_personal:
        results.append(
            _run_scope(
                PERSONAL_SCOPE,
                lambda outcomes: run_personal_pass(client, config, logger, outcomes),
                logger,
            )
        )

    if config.delete_group_runners:
        for group_id in config.group_ids:
            results.append(
                _run_scope(
                    group_scope(group_id),
                    lambda outcomes, group_id=group_id: run_group_pass(
                        client, config, group_id, logger, outcomes
                    ),
                    logger,
                    group_id=group_id,
                )
            )

    summary = compute_summary(results, dry_run=config.dry_run)
    log_cleanup_event(
        logger,
        event="cleanup_summary",
        message="Runner cleanup completed",
        level=logging.WARNING if summary["scopes"]["failed"] else logging.INFO,
        summary=summary,
    )
    return summary
