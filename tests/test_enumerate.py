from __future__ import annotations

import logging

import pytest

from conftest import FakeRunnerAPI, http_error, runner
from runner_cleaner.domain.models import Decision, ListPage
from runner_cleaner.workflows.enumerate import collect_group_runners, run_group_pass, run_personal_pass


def test_personal_single_page_deletes_only_offline_runner(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI([runner(1, status="offline"), runner(2, online=True)])

    outcomes = run_personal_pass(api, make_config(), cleanup_logger)

    assert api.deleted == [1]
    assert [outcome.decision for outcome in outcomes] == [Decision.DELETE, Decision.SKIP_ONLINE]
    assert all(call[3] == "offline" for call in api.list_calls())


def test_personal_pass_rerequests_page_after_deletes_and_walks_remaining_pages(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI(
        [
            runner(1, online=True),
            runner(2),
            runner(3),
            runner(4, is_shared=True),
            runner(5, status="not_connected"),
        ]
    )

    run_personal_pass(api, make_config(page_size=2), cleanup_logger)

    assert api.deleted == [2, 3, 5]
    pages = [call[1] for call in api.list_calls()]
    assert pages == [1, 1, 1, 2, 2]


def test_personal_pass_terminates_when_server_keeps_returning_same_runners(make_config, cleanup_logger) -> None:
    class StickyAPI(FakeRunnerAPI):
        def delete_runner(self, runner_id: int) -> None:
            self.calls.append(("delete_runner", runner_id))

    api = StickyAPI([runner(1), runner(2)])

    run_personal_pass(api, make_config(), cleanup_logger)

    assert [call for call in api.calls if call[0] == "delete_runner"] == [("delete_runner", 1), ("delete_runner", 2)]
    assert len(api.list_calls()) == 2


def test_personal_dry_run_makes_no_deletes_and_logs_intent(make_config, cleanup_logger, caplog) -> None:
    api = FakeRunnerAPI([runner(1)])

    with caplog.at_level(logging.DEBUG, logger=cleanup_logger.name):
        run_personal_pass(api, make_config(dry_run=True), cleanup_logger)

    assert api.deleted == []
    assert len(api.list_calls()) == 1
    dry_run_lines = [record for record in caplog.records if getattr(record, "decision", None) == "dry_run"]
    assert len(dry_run_lines) == 1
    assert dry_run_lines[0].runner_id == 1


def test_personal_pass_stops_on_empty_listing(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI()

    assert run_personal_pass(api, make_config(), cleanup_logger) == []
    assert api.list_calls() == [("list_runners", 1, 50, "offline")]


def test_personal_listing_error_propagates(make_config, cleanup_logger, caplog) -> None:
    class BrokenAPI(FakeRunnerAPI):
        def list_runners(self, *, page, per_page, status="offline"):
            raise http_error(502, "bad gateway")

    with caplog.at_level(logging.ERROR, logger=cleanup_logger.name):
        with pytest.raises(Exception, match="bad gateway"):
            run_personal_pass(BrokenAPI(), make_config(), cleanup_logger)

    assert caplog.records[-1].event == "runner_list_failed"
    assert caplog.records[-1].scope == "personal"


def test_group_two_pages_skips_shared_and_deletes_not_connected(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI()
    api.add_group_pages(
        "42",
        [runner(10, is_shared=True)],
        [runner(11, status="not_connected")],
        per_page=1,
    )

    outcomes = run_group_pass(api, make_config(page_size=1), "42", cleanup_logger)

    assert api.deleted == [11]
    assert [outcome.decision for outcome in outcomes] == [Decision.DELETE_NOT_CONNECTED]
    assert [call[2] for call in api.list_calls()] == [1, 2]


def test_group_collection_finishes_before_any_delete(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI()
    api.add_group_pages("7", [runner(1), runner(2)], [runner(3)], per_page=2)

    run_group_pass(api, make_config(page_size=2), "7", cleanup_logger)

    kinds = [call[0] for call in api.calls]
    assert kinds == ["list_group_runners", "list_group_runners", "delete_runner", "delete_runner", "delete_runner"]


def test_group_collection_excludes_shared_and_duplicates(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI()
    api.add_group_pages(
        "7",
        [runner(1), runner(2, is_shared=True)],
        [runner(1), runner(3, is_shared=True, status="not_connected")],
        per_page=2,
    )

    collected = collect_group_runners(api, make_config(page_size=2), "7", cleanup_logger)

    assert [record.id for record in collected] == [1]


def test_group_pagination_stops_on_short_page_without_totals(make_config, cleanup_logger) -> None:
    class NoTotalsAPI(FakeRunnerAPI):
        def list_group_runners(self, group_id, *, page, per_page, status="offline"):
            self.calls.append(("list_group_runners", group_id, page, per_page, status))
            records = [runner(page * 10 + i) for i in range(per_page if page == 1 else 1)]
            return ListPage(records=records, current_page=page, per_page=per_page)

    api = NoTotalsAPI()

    collected = collect_group_runners(api, make_config(page_size=3), "9", cleanup_logger)

    assert [call[2] for call in api.list_calls()] == [1, 2]
    assert len(collected) == 4


def test_group_listing_error_on_second_page_propagates_without_deletes(make_config, cleanup_logger) -> None:
    api = FakeRunnerAPI()
    api.add_group_pages("42", [runner(1)], [runner(2)], per_page=1)
    api.group_failures[("42", 2)] = http_error(500, "page two failed")

    with pytest.raises(Exception, match="page two failed"):
        run_group_pass(api, make_config(page_size=1), "42", cleanup_logger)

    assert api.deleted == []
