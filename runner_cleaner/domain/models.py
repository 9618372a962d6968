from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class RunnerRecord:
    id: int
    name: str = ""
    description: str = ""
    runner_type: str = ""
    online: bool = False
    is_shared: bool = False
    status: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RunnerRecord":
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name") or ""),
            description=str(payload.get("description") or ""),
            runner_type=str(payload.get("runner_type") or ""),
            online=bool(payload.get("online")),
            is_shared=bool(payload.get("is_shared")),
            status=str(payload.get("status") or ""),
        )


@dataclass(slots=True)
class ListPage:
    records: list[RunnerRecord]
    current_page: int
    per_page: int
    total_items: int | None = None
    total_pages: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.records or self.total_items == 0

    @property
    def is_last(self) -> bool:
        if self.total_pages is not None and self.current_page >= self.total_pages:
            return True
        return len(self.records) < self.per_page


class Decision(str, Enum):
    DRY_RUN = "dry_run"
    SKIP_ONLINE = "skip_online"
    SKIP_SHARED = "skip_shared"
    DELETE_NOT_CONNECTED = "delete_not_connected"
    DELETE = "delete"
    DELETE_FAILED = "delete_failed"

    @property
    def deletes(self) -> bool:
        return self in (Decision.DELETE, Decision.DELETE_NOT_CONNECTED)


@dataclass(slots=True)
class RunnerOutcome:
    runner_id: int
    runner_name: str
    scope: str
    decision: Decision


@dataclass(slots=True)
class ScopeResult:
    scope: str
    outcomes: list[RunnerOutcome] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None
