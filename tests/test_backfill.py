"""
Tests for the backfill runner and date range expansion.
"""

import logging
import os
from datetime import date, datetime
from unittest.mock import patch

import pytest

from datasync.connections.local import LocalFileStore
from datasync.exceptions import ConnectionError_, InvalidDateError
from datasync.sync.backfill import BackfillResult, run_backfill, summarize
from datasync.sync.daterange import expand_dates, parse_date
from datasync.sync.types import Direction, SyncReport, TaskDescriptor


def _task(name, local_root, remote_root, direction=Direction.PULL):
    return TaskDescriptor(
        name=name,
        host="sftp.example.com",
        local_root=str(local_root),
        remote_root=str(remote_root),
        cron="@daily",
        direction=direction,
    )


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    os.utime(path, (1_600_000_000, 1_600_000_000))


class RefusingSession(LocalFileStore):
    def __enter__(self):
        raise ConnectionError_("connection refused", host="sftp.example.com", port=22)


class TestExpandDates:
    """Tests for calendar-day expansion."""

    def test_inclusive_range(self):
        assert expand_dates("2024-01-30", "2024-02-02") == ["2024-01-30", "2024-01-31", "2024-02-01", "2024-02-02"]

    def test_three_day_range(self):
        assert expand_dates("2024-01-01", "2024-01-03") == ["2024-01-01", "2024-01-02", "2024-01-03"]

    def test_single_day(self):
        assert expand_dates("2024-03-05", "2024-03-05") == ["2024-03-05"]

    def test_leap_day(self):
        assert expand_dates("2024-02-28", "2024-03-01") == ["2024-02-28", "2024-02-29", "2024-03-01"]

    def test_reversed_range_is_empty(self):
        assert expand_dates("2024-01-05", "2024-01-01") == []

    def test_date_objects(self):
        assert expand_dates(date(2024, 1, 1), datetime(2024, 1, 2, 15, 30)) == ["2024-01-01", "2024-01-02"]

    def test_last_representable_day(self):
        assert expand_dates("9999-12-30", "9999-12-31") == ["9999-12-30", "9999-12-31"]

    @pytest.mark.parametrize("value", ["2024-13-01", "2024-02-30", "2024-1-1", "20240101", "yesterday", "", None])
    def test_invalid_dates(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    def test_invalid_end(self):
        with pytest.raises(InvalidDateError) as exc_info:
            expand_dates("2024-01-01", "2024-01-xx")
        assert exc_info.value.value == "2024-01-xx"


class TestRunBackfill:
    """Tests for run_backfill."""

    def test_pull_syncs_each_date_directory(self, tmp_path):
        remote, local = tmp_path / "remote", tmp_path / "local"
        for day in ("2024-01-01", "2024-01-02"):
            _write(remote / day / "data.csv", day.encode())

        results = run_backfill(
            [_task("orders", local, remote)], "2024-01-01", "2024-01-02", session_factory=lambda t: LocalFileStore()
        )

        assert [(r.task, r.date, r.ok) for r in results] == [
            ("orders", "2024-01-01", True),
            ("orders", "2024-01-02", True),
        ]
        assert (local / "2024-01-01" / "data.csv").read_bytes() == b"2024-01-01"
        assert (local / "2024-01-02" / "data.csv").read_bytes() == b"2024-01-02"
        assert results[0].report.transferred == 1

    def test_push_syncs_each_date_directory(self, tmp_path):
        remote, local = tmp_path / "remote", tmp_path / "local"
        _write(local / "2024-05-01" / "out.csv", b"pushed")

        results = run_backfill(
            [_task("uploads", local, remote, Direction.PUSH)],
            "2024-05-01",
            "2024-05-01",
            session_factory=lambda t: LocalFileStore(),
        )

        assert results[0].ok
        assert (remote / "2024-05-01" / "out.csv").read_bytes() == b"pushed"

    def test_missing_date_does_not_stop_later_dates(self, tmp_path):
        remote, local = tmp_path / "remote", tmp_path / "local"
        _write(remote / "2024-01-01" / "a.csv", b"a")
        _write(remote / "2024-01-03" / "c.csv", b"c")

        results = run_backfill(
            [_task("orders", local, remote)], "2024-01-01", "2024-01-03", session_factory=lambda t: LocalFileStore()
        )

        assert [r.ok for r in results] == [True, False, True]
        assert "2024-01-02" in results[1].error
        assert (local / "2024-01-03" / "c.csv").read_bytes() == b"c"

    def test_dates_run_in_ascending_order(self, tmp_path):
        seen = []

        def fake_sync(session, local_path, remote_path, direction, *, local=None):
            seen.append(os.path.basename(remote_path))

        with patch("datasync.sync.backfill.synchronize", side_effect=fake_sync):
            run_backfill(
                [_task("orders", tmp_path / "l", tmp_path / "r")],
                "2023-12-30",
                "2024-01-02",
                session_factory=lambda t: LocalFileStore(),
            )

        assert seen == ["2023-12-30", "2023-12-31", "2024-01-01", "2024-01-02"]

    def test_one_session_per_task(self, tmp_path):
        opened = []

        class CountingSession(LocalFileStore):
            def __enter__(self):
                opened.append(self)
                return self

        tasks = [_task("a", tmp_path / "la", tmp_path / "ra"), _task("b", tmp_path / "lb", tmp_path / "rb")]
        results = run_backfill(tasks, "2024-01-01", "2024-01-03", session_factory=lambda t: CountingSession())

        assert len(opened) == 2
        assert len(results) == 6

    def test_connection_failure_marks_task_dates_failed(self, tmp_path):
        remote, local = tmp_path / "remote", tmp_path / "local"
        _write(remote / "2024-01-01" / "a.csv", b"a")
        tasks = [_task("down", local / "down", remote), _task("up", local / "up", remote)]

        def factory(task):
            return RefusingSession() if task.name == "down" else LocalFileStore()

        results = run_backfill(tasks, "2024-01-01", "2024-01-02", session_factory=factory)

        down = [r for r in results if r.task == "down"]
        up = [r for r in results if r.task == "up"]
        assert [r.date for r in down] == ["2024-01-01", "2024-01-02"]
        assert all("connection refused" in r.error for r in down)
        assert up[0].ok
        assert (local / "up" / "2024-01-01" / "a.csv").read_bytes() == b"a"

    def test_invalid_date_syncs_nothing(self, tmp_path):
        factory_calls = []
        with pytest.raises(InvalidDateError):
            run_backfill(
                [_task("orders", tmp_path / "l", tmp_path / "r")],
                "2024-01-01",
                "not-a-date",
                session_factory=factory_calls.append,
            )
        assert factory_calls == []

    def test_empty_range(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="datasync.sync.backfill"):
            results = run_backfill(
                [_task("orders", tmp_path / "l", tmp_path / "r")],
                "2024-02-01",
                "2024-01-01",
                session_factory=lambda t: LocalFileStore(),
            )
        assert results == []
        assert "empty" in caplog.text

    def test_summary_totals_successful_dates(self, tmp_path, caplog):
        remote, local = tmp_path / "remote", tmp_path / "local"
        _write(remote / "2024-01-01" / "a.csv", b"a")
        _write(remote / "2024-01-01" / "b.csv", b"b")
        _write(remote / "2024-01-02" / "c.csv", b"c")

        with caplog.at_level(logging.INFO, logger="datasync.sync.backfill"):
            results = run_backfill(
                [_task("orders", local, remote)], "2024-01-01", "2024-01-03", session_factory=lambda t: LocalFileStore()
            )

        totals = summarize(results)
        assert totals.transferred == 3
        assert sorted(os.path.basename(p) for p in totals.transferred_paths) == ["a.csv", "b.csv", "c.csv"]
        assert "2 succeeded, 1 failed" in caplog.text
        assert "transferred=3" in caplog.text


class TestSummarize:
    def test_failed_dates_are_not_counted(self):
        results = [
            BackfillResult(task="a", date="2024-01-01", report=SyncReport(transferred=2, skipped=1)),
            BackfillResult(task="a", date="2024-01-02", error="boom"),
            BackfillResult(task="b", date="2024-01-01", report=SyncReport(transferred=1, errors=1, directories=2)),
        ]

        assert summarize(results).as_dict() == {"transferred": 3, "skipped": 1, "errors": 1, "directories": 2}

    def test_no_results(self):
        assert summarize([]).as_dict() == SyncReport().as_dict()
