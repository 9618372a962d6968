"""Thin client over the GitLab runners API with explicit pagination."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import gitlab

from runner_cleaner.domain.models import ListPage, RunnerRecord

if TYPE_CHECKING:
    from runner_cleaner.jobs.tasks import RunConfig

DEFAULT_GITLAB_URL = "https://gitlab.com"
OFFLINE_STATUS = "offline"


def _header_int(headers: Any, name: str) -> int | None:
    raw = headers.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class GitLabRunnerClient:
    """List and delete runner registrations through a python-gitlab session."""

    def __init__(self, gl: gitlab.Gitlab) -> None:
        self.gl = gl

    @classmethod
    def from_config(cls, config: RunConfig) -> "GitLabRunnerClient":
        gl = gitlab.Gitlab(
            url=config.gitlab_url,
            private_token=config.token,
            retry_transient_errors=False,
        )
        return cls(gl)

    def _list_page(self, path: str, *, page: int, per_page: int, status: str | None) -> ListPage:
        """Fetch exactly one page; manager ``.list()`` would follow next-page links on its own."""
        query: dict[str, Any] = {"page": page, "per_page": per_page}
        if status:
            query["status"] = status

        response = self.gl.http_get(path, query_data=query, raw=True, obey_rate_limit=False)
        payload = response.json()
        if not isinstance(payload, list):
            raise gitlab.exceptions.GitlabParsingError(
                error_message=f"Expected a list of runners from {path}",
                response_code=response.status_code,
            )

        headers = response.headers
        return ListPage(
            records=[RunnerRecord.from_api(item) for item in payload],
            current_page=_header_int(headers, "X-Page") or page,
            per_page=_header_int(headers, "X-Per-Page") or per_page,
            total_items=_header_int(headers, "X-Total"),
            total_pages=_header_int(headers, "X-Total-Pages"),
        )

    def list_runners(self, *, page: int, per_page: int, status: str | None = OFFLINE_STATUS) -> ListPage:
        return self._list_page("/runners", page=page, per_page=per_page, status=status)

    def list_group_runners(
        self,
        group_id: str,
        *,
        page: int,
        per_page: int,
        status: str | None = OFFLINE_STATUS,
    ) -> ListPage:
        path = f"/groups/{quote(str(group_id), safe='')}/runners"
        return self._list_page(path, page=page, per_page=per_page, status=status)

    def delete_runner(self, runner_id: int) -> None:
        self.gl.runners.delete(runner_id, obey_rate_limit=False)
