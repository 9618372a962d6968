from __future__ import annotations

import logging
from typing import Iterable, Protocol

from runner_cleaner.domain.models import Decision, RunnerOutcome, RunnerRecord
from runner_cleaner.utils.logging import log_cleanup_event

NOT_CONNECTED_STATUS = "not_connected"


class RunnerDeleter(Protocol):
    def delete_runner(self, runner_id: int) -> None: ...


_MESSAGES: dict[Decision, tuple[int, str]] = {
    Decision.DRY_RUN: (logging.INFO, "dry-run: deleting"),
    Decision.SKIP_ONLINE: (logging.DEBUG, "runner is online, skipping"),
    Decision.SKIP_SHARED: (logging.DEBUG, "runner is shared, skipping"),
    Decision.DELETE_NOT_CONNECTED: (logging.INFO, "runner status is not_connected, deleting"),
    Decision.DELETE: (logging.INFO, "deleting runner"),
}


def decide(record: RunnerRecord, *, dry_run: bool) -> Decision:
    """Return the action for one runner; the first matching rule wins."""
    if dry_run:
        return Decision.DRY_RUN
    if record.online:
        return Decision.SKIP_ONLINE
    if record.is_shared:
        return Decision.SKIP_SHARED
    if record.status == NOT_CONNECTED_STATUS:
        return Decision.DELETE_NOT_CONNECTED
    return Decision.DELETE


def apply_policy(
    client: RunnerDeleter,
    records: Iterable[RunnerRecord],
    *,
    dry_run: bool,
    logger: logging.Logger,
    scope: str,
    group_id: str | None = None,
    outcomes: list[RunnerOutcome] | None = None,
) -> list[RunnerOutcome]:
    """Decide and act on each runner in listing order.

    Outcomes are appended to ``outcomes`` when given, so a caller keeps the
    record of earlier deletes if a later one raises. A failed delete is
    recorded as ``delete_failed``, logged and re-raised; runners deleted
    earlier in the batch stay deleted.
    """
    if outcomes is None:
        outcomes = []

    for record in records:
        decision = decide(record, dry_run=dry_run)
        fields = {
            "scope": scope,
            "group_id": group_id,
            "runner_id": record.id,
            "runner_name": record.name,
            "runner_description": record.description,
            "runner_type": record.runner_type,
            "status": record.status,
            "decision": decision.value,
        }
        level, message = _MESSAGES[decision]
        log_cleanup_event(logger, event="runner_decision", message=message, level=level, **fields)

        if decision.deletes:
            try:
                client.delete_runner(record.id)
            except Exception as exc:
                outcomes.append(
                    RunnerOutcome(
                        runner_id=record.id,
                        runner_name=record.name,
                        scope=scope,
                        decision=Decision.DELETE_FAILED,
                    )
                )
                log_cleanup_event(
                    logger,
                    event="runner_delete_failed",
                    message="cannot delete runner",
                    level=logging.ERROR,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    **{**fields, "decision": Decision.DELETE_FAILED.value},
                )
                raise

        outcomes.append(
            RunnerOutcome(
                runner_id=record.id,
                runner_name=record.name,
                scope=scope,
                decision=decision,
            )
        )

    return outcomes
