from __future__ import annotations

import os
from pathlib import Path

import pytest

from pathseek.config import default_config
from pathseek.index import (
    IndexController,
    LifecycleState,
    RescanReport,
    RescanTrigger,
    RootInaccessibleError,
)


def _controller(root: Path, **kwargs: object) -> IndexController:
    config = default_config(root)
    return IndexController(ignore=config.ignore, search=config.search, **kwargs)


def test_set_root_indexes_synchronously_and_returns_idle(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    controller = _controller(tmp_path)

    report = controller.set_root(tmp_path)

    assert report.ok is True
    assert report.path_count == 1
    assert controller.state is LifecycleState.IDLE
    assert controller.generation == 1
    assert controller.root == tmp_path.resolve()
    assert controller.snapshot.char_map is not None


def test_rescan_request_while_idle_runs_immediately(tmp_path: Path) -> None:
    controller = _controller(tmp_path)
    controller.set_root(tmp_path)
    (tmp_path / "late.txt").write_text("x", encoding="utf-8")

    report = controller.request_rescan()

    assert report is not None and report.ok
    assert controller.generation == 2
    assert [p.basename for p in controller.snapshot.paths] == ["late.txt"]


def test_rescan_request_before_any_root_is_ignored(tmp_path: Path) -> None:
    controller = _controller(tmp_path)

    assert controller.request_rescan() is None
    assert controller.generation == 0


def test_rescan_during_search_is_deferred_and_coalesced(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    observed: dict[str, object] = {}
    holder: dict[str, IndexController] = {}

    def reader(path: str) -> float:
        controller = holder["controller"]
        for _ in range(3):
            assert controller.request_rescan() is None
        observed["state"] = controller.state
        observed["pending"] = controller.rescan_pending
        observed["generation"] = controller.generation
        (tmp_path / "foo_new.txt").write_text("x", encoding="utf-8")
        return os.stat(path).st_mtime

    controller = _controller(tmp_path, mtime_reader=reader)
    holder["controller"] = controller
    controller.set_root(tmp_path)

    results = controller.search("foo")

    assert [candidate.path.basename for candidate in results] == ["foo.txt"]
    assert observed == {
        "state": LifecycleState.SEARCHING,
        "pending": True,
        "generation": 1,
    }
    assert controller.generation == 2
    assert controller.rescan_pending is False
    assert controller.state is LifecycleState.IDLE
    assert sorted(p.basename for p in controller.snapshot.paths) == ["foo.txt", "foo_new.txt"]


def test_queued_triggers_collapse_into_one_rescan(tmp_path: Path) -> None:
    trigger = RescanTrigger()
    controller = _controller(tmp_path, trigger=trigger)
    controller.set_root(tmp_path)

    for _ in range(5):
        trigger.notify()
    report = controller.poll_triggers()

    assert report is not None
    assert controller.generation == 2
    assert controller.poll_triggers() is None
    assert controller.generation == 2


def test_trigger_queued_during_search_runs_after_it(tmp_path: Path) -> None:
    (tmp_path / "abc.txt").write_text("x", encoding="utf-8")
    trigger = RescanTrigger()

    def reader(path: str) -> float:
        trigger.notify()
        trigger.notify()
        return os.stat(path).st_mtime

    controller = _controller(tmp_path, trigger=trigger, mtime_reader=reader)
    controller.set_root(tmp_path)

    controller.search("abc")

    assert controller.generation == 2
    assert trigger.drain() == 0


def test_trigger_queued_by_failing_search_still_rescans(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    trigger = RescanTrigger()

    def reader(path: str) -> float:
        trigger.notify()
        raise ValueError("mtime reader broke")

    controller = _controller(tmp_path, trigger=trigger, mtime_reader=reader)
    controller.set_root(tmp_path)

    with pytest.raises(ValueError, match="mtime reader broke"):
        controller.search("foo")

    assert controller.generation == 2
    assert controller.rescan_pending is False
    assert controller.state is LifecycleState.IDLE
    assert trigger.drain() == 0


def test_rescan_request_during_rescan_is_coalesced(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    from pathseek.index import lifecycle

    nested: list[tuple[LifecycleState, RescanReport | None]] = []
    holder: dict[str, IndexController] = {}
    real_collect = lifecycle.collect_paths

    def collect(root, rules):
        controller = holder["controller"]
        nested.append((controller.state, controller.request_rescan()))
        return real_collect(root, rules)

    monkeypatch.setattr(lifecycle, "collect_paths", collect)
    controller = _controller(tmp_path)
    holder["controller"] = controller
    controller.set_root(tmp_path)

    assert nested == [(LifecycleState.RESCANNING, None)]
    assert controller.generation == 1
    assert controller.rescan_pending is False


def test_inaccessible_new_root_keeps_previous_index(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    reports: list[RescanReport] = []
    controller = _controller(tmp_path, on_rescan=reports.append)
    controller.set_root(tmp_path)

    with pytest.raises(RootInaccessibleError):
        controller.set_root(tmp_path / "missing")

    assert controller.root == tmp_path.resolve()
    assert [p.basename for p in controller.snapshot.paths] == ["foo.txt"]
    assert [candidate.path.basename for candidate in controller.search("foo")] == ["foo.txt"]
    assert [report.ok for report in reports] == [True, False]
    assert reports[1].error is not None


def test_deleted_root_on_rescan_serves_stale_results(tmp_path: Path) -> None:
    root = tmp_path / "project"
    root.mkdir()
    (root / "foo.txt").write_text("x", encoding="utf-8")
    controller = _controller(root)
    controller.set_root(root)

    (root / "foo.txt").unlink()
    root.rmdir()
    report = controller.request_rescan()

    assert report is not None and report.ok is False
    assert controller.generation == 1
    assert len(controller.snapshot.paths) == 1
    assert controller.search("foo") == ()
    assert controller.last_search_dropped == 1


def test_set_root_replaces_index_without_stale_entries(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "old.txt").write_text("x", encoding="utf-8")
    (second / "new.txt").write_text("x", encoding="utf-8")
    controller = _controller(tmp_path)

    controller.set_root(first)
    controller.set_root(f"{second}/")

    assert controller.root == second.resolve()
    assert [p.basename for p in controller.snapshot.paths] == ["new.txt"]
    assert controller.search("old") == ()


def test_empty_query_returns_nothing(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    controller = _controller(tmp_path)
    controller.set_root(tmp_path)

    assert controller.search("") == ()


def test_status_reports_counts(tmp_path: Path) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    controller = _controller(tmp_path)
    assert controller.status().root is None

    controller.set_root(tmp_path)
    status = controller.status()

    assert status.state == "idle"
    assert status.root == str(tmp_path.resolve())
    assert status.indexed_path_count == 1
    assert status.generation == 1
    assert status.rescan_pending is False
    assert status.last_rescan_timestamp is not None
