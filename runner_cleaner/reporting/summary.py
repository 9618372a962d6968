"""Summary generation for cleanup runs."""

from __future__ import annotations

from collections import Counter
from typing import Any

from runner_cleaner.domain.models import Decision, ScopeResult


def compute_summary(results: list[ScopeResult], *, dry_run: bool = False) -> dict[str, Any]:
    """Compute aggregate stats from per-scope cleanup results."""
    decisions = Counter(
        outcome.decision.value
        for result in results
        for outcome in result.outcomes
    )
    deleted = sum(count for value, count in decisions.items() if Decision(value).deletes)
    failed = [result for result in results if result.failed]

    return {
        "dry_run": dry_run,
        "scopes": {
            "total": len(results),
            "succeeded": len(results) - len(failed),
            "failed": len(failed),
            "errors": {result.scope: type(result.error).__name__ for result in failed},
        },
        "runners_seen": sum(decisions.values()),
        "deleted": deleted,
        "delete_failed": decisions.get(Decision.DELETE_FAILED.value, 0),
        "decisions": dict(decisions),
    }
