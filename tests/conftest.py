from __future__ import annotations

import logging
from math import ceil
from typing import Iterable

import gitlab
import pytest

from runner_cleaner.domain.models import ListPage, RunnerRecord
from runner_cleaner.jobs.tasks import RunConfig


def runner(
    runner_id: int,
    *,
    online: bool = False,
    is_shared: bool = False,
    status: str = "offline",
    name: str | None = None,
) -> RunnerRecord:
    return RunnerRecord(
        id=runner_id,
        name=name or f"runner-{runner_id}",
        description=f"runner {runner_id}",
        runner_type="instance_type" if is_shared else "project_type",
        online=online,
        is_shared=is_shared,
        status=status,
    )


class FakeRunnerAPI:
    """In-memory stand-in for GitLabRunnerClient.

    Personal runners behave like a live collection: deleted ids disappear from
    later listings. Group listings can be scripted page by page instead, so
    tests control exactly what every page returns.
    """

    def __init__(self, personal: Iterable[RunnerRecord] = ()) -> None:
        self.personal = list(personal)
        self.group_pages: dict[str, list[ListPage]] = {}
        self.group_failures: dict[tuple[str, int], Exception] = {}
        self.delete_failures: dict[int, Exception] = {}
        self.calls: list[tuple] = []
        self.deleted: list[int] = []

    def add_group_pages(self, group_id: str, *pages: list[RunnerRecord], per_page: int = 50) -> None:
        total_items = sum(len(page) for page in pages)
        self.group_pages[group_id] = [
            ListPage(
                records=list(records),
                current_page=index,
                per_page=per_page,
                total_items=total_items,
                total_pages=len(pages),
            )
            for index, records in enumerate(pages, start=1)
        ]

    def list_runners(self, *, page: int, per_page: int, status: str | None = "offline") -> ListPage:
        self.calls.append(("list_runners", page, per_page, status))
        live = [record for record in self.personal if record.id not in self.deleted]
        start = (page - 1) * per_page
        return ListPage(
            records=live[start : start + per_page],
            current_page=page,
            per_page=per_page,
            total_items=len(live),
            total_pages=ceil(len(live) / per_page),
        )

    def list_group_runners(
        self,
        group_id: str,
        *,
        page: int,
        per_page: int,
        status: str | None = "offline",
    ) -> ListPage:
        self.calls.append(("list_group_runners", group_id, page, per_page, status))
        failure = self.group_failures.get((group_id, page))
        if failure is not None:
            raise failure
        pages = self.group_pages.get(group_id, [])
        if page > len(pages):
            return ListPage(records=[], current_page=page, per_page=per_page, total_items=0, total_pages=len(pages))
        return pages[page - 1]

    def delete_runner(self, runner_id: int) -> None:
        self.calls.append(("delete_runner", runner_id))
        failure = self.delete_failures.get(runner_id)
        if failure is not None:
            raise failure
        self.deleted.append(runner_id)

    def list_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0] != "delete_runner"]


def http_error(code: int = 500, message: str = "boom") -> gitlab.exceptions.GitlabHttpError:
    return gitlab.exceptions.GitlabHttpError(error_message=message, response_code=code)


@pytest.fixture
def fake_api() -> FakeRunnerAPI:
    return FakeRunnerAPI()


@pytest.fixture
def make_config():
    def _make(**overrides) -> RunConfig:
        values = {"token": "glpat-test", "page_size": 50}
        values.update(overrides)
        return RunConfig(**values)

    return _make


@pytest.fixture
def cleanup_logger() -> logging.Logger:
    logger = logging.getLogger("runner_cleaner.tests")
    logger.setLevel(logging.DEBUG)
    return logger
