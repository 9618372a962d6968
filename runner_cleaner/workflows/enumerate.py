"""Paginated runner enumeration for the personal and group cleanup passes.

The two passes are deliberately asymmetric. The personal pass interleaves
listing and deletion page by page; the group pass collects every page first
and deletes once at the end.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from runner_cleaner.adapters.gitlab_api import OFFLINE_STATUS
from runner_cleaner.domain.models import ListPage, RunnerOutcome, RunnerRecord
from runner_cleaner.orchestration.policy import RunnerDeleter, apply_policy
from runner_cleaner.utils.logging import log_cleanup_event

if TYPE_CHECKING:
    from runner_cleaner.jobs.tasks import RunConfig

PERSONAL_SCOPE = "personal"


class RunnerLister(Protocol):
    def list_runners(self, *, page: int, per_page: int, status: str | None = ...) -> ListPage: ...

    def list_group_runners(
        self,
        group_id: str,
        *,
        page: int,
        per_page: int,
        status: str | None = ...,
    ) -> ListPage: ...


class RunnerClient(RunnerLister, RunnerDeleter, Protocol):
    pass


def group_scope(group_id: str) -> str:
    return f"group:{group_id}"


def _log_page(logger: logging.Logger, listing: ListPage, *, scope: str, group_id: str | None = None) -> None:
    log_cleanup_event(
        logger,
        event="runner_page",
        message="got runners",
        level=logging.DEBUG,
        scope=scope,
        group_id=group_id,
        page=listing.current_page,
        per_page=listing.per_page,
        count=len(listing.records),
        total_items=listing.total_items,
        total_pages=listing.total_pages,
    )


def _list_failed(logger: logging.Logger, exc: Exception, *, scope: str, page: int, group_id: str | None = None) -> None:
    log_cleanup_event(
        logger,
        event="runner_list_failed",
        message="cannot list runners",
        level=logging.ERROR,
        scope=scope,
        group_id=group_id,
        page=page,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )


def run_personal_pass(
    client: RunnerClient,
    config: RunConfig,
    logger: logging.Logger,
    outcomes: list[RunnerOutcome] | None = None,
) -> list[RunnerOutcome]:
    """List offline personal runners and run the deletion policy on each page as it arrives.

    After a page that produced deletions the same page index is requested
    again, since removed runners shift later ones forward. Runner ids already
    handled in this pass are never handed to the policy twice, which keeps the
    loop finite in dry-run mode or when every runner is skipped.
    """
    handled: set[int] = set()
    if outcomes is None:
        outcomes = []
    page = 1

    while True:
        try:
            listing = client.list_runners(page=page, per_page=config.page_size, status=OFFLINE_STATUS)
        except Exception as exc:
            _list_failed(logger, exc, scope=PERSONAL_SCOPE, page=page)
            raise

        if listing.is_empty:
            log_cleanup_event(
                logger,
                event="runner_list_exhausted",
                message="no offline runners found",
                level=logging.DEBUG,
                scope=PERSONAL_SCOPE,
                page=page,
                total_items=listing.total_items,
            )
            break

        _log_page(logger, listing, scope=PERSONAL_SCOPE)

        fresh = [record for record in listing.records if record.id not in handled]
        handled.update(record.id for record in fresh)
        start = len(outcomes)
        apply_policy(
            client,
            fresh,
            dry_run=config.dry_run,
            logger=logger,
            scope=PERSONAL_SCOPE,
            outcomes=outcomes,
        )

        if any(outcome.decision.deletes for outcome in outcomes[start:]):
            continue
        if listing.is_last:
            break
        page += 1

    return outcomes


def collect_group_runners(
    client: RunnerLister,
    config: RunConfig,
    group_id: str,
    logger: logging.Logger,
) -> list[RunnerRecord]:
    """Return every offline, non-shared runner listed for a group.

    Instance-wide shared runners appear in group listings and are dropped
    here so group cleanup can never remove them.
    """
    scope = group_scope(group_id)
    collected: list[RunnerRecord] = []
    seen: set[int] = set()
    page = 1

    log_cleanup_event(
        logger,
        event="group_collect",
        message="collecting runners",
        level=logging.DEBUG,
        scope=scope,
        group_id=group_id,
    )

    while True:
        try:
            listing = client.list_group_runners(
                group_id,
                page=page,
                per_page=config.page_size,
                status=OFFLINE_STATUS,
            )
        except Exception as exc:
            _list_failed(logger, exc, scope=scope, page=page, group_id=group_id)
            raise

        if listing.is_empty:
            break

        _log_page(logger, listing, scope=scope, group_id=group_id)

        for record in listing.records:
            if record.is_shared:
                log_cleanup_event(
                    logger,
                    event="runner_shared_excluded",
                    message="runner is shared, skipping",
                    level=logging.DEBUG,
                    scope=scope,
                    group_id=group_id,
                    runner_id=record.id,
                    runner_name=record.name,
                    runner_description=record.description,
                )
                continue
            if record.id in seen:
                continue
            seen.add(record.id)
            collected.append(record)

        if listing.is_last:
            log_cleanup_event(
                logger,
                event="runner_list_exhausted",
                message="reached the end of the list",
                level=logging.DEBUG,
                scope=scope,
                group_id=group_id,
                page=listing.current_page,
                count=len(collected),
            )
            break
        page += 1

    return collected


def run_group_pass(
    client: RunnerClient,
    config: RunConfig,
    group_id: str,
    logger: logging.Logger,
    outcomes: list[RunnerOutcome] | None = None,
) -> list[RunnerOutcome]:
    """Collect a group's candidate runners, then run the deletion policy once."""
    candidates = collect_group_runners(client, config, group_id, logger)
    return apply_policy(
        client,
        candidates,
        dry_run=config.dry_run,
        logger=logger,
        scope=group_scope(group_id),
        group_id=group_id,
        outcomes=outcomes,
    )
