"""Tests for checkpoint save, prune, load, list and auto-save."""

from __future__ import annotations

import json
import re
import shutil
import tempfile
import time
import unittest
from collections import deque
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pvexplorer.checkpoint.build_checkpoint_filename__checkpoint import (
    build_checkpoint_filename,
    format_checkpoint_timestamp,
)
from pvexplorer.checkpoint.service import CheckpointService, SessionSnapshot
from pvexplorer.errors import PersistenceError
from pvexplorer.exploration.state import ExplorationState, ExplorationStats, deserialize_state

ROOT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"


class TickingClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


def _state(analyzed: int = 2, discovered: int = 4, frontier: tuple[str, ...] = ("a", "b")):
    return ExplorationState(
        frontier=deque(frontier),
        visited={"root", "x"},
        depth_of={"root": 0, "x": 1, "a": 1, "b": 2},
        max_depth=3,
        stats=ExplorationStats(
            analyzed=analyzed,
            discovered=discovered,
            avg_time_per_position=2.0,
        ),
    )


def test_timestamp_is_filesystem_safe() -> None:
    stamp = format_checkpoint_timestamp(datetime(2026, 3, 4, 5, 6, 7, 890123, tzinfo=UTC))
    assert stamp == "2026-03-04T05-06-07-890123Z"
    assert build_checkpoint_filename("abc", datetime(2026, 3, 4, tzinfo=UTC)) == (
        "abc-2026-03-04T00-00-00-000000Z.state.json"
    )


class CheckpointServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.clock = TickingClock(datetime(2026, 5, 1, 12, 0, 0, tzinfo=UTC))
        self.service = CheckpointService(
            self.tmp_dir / "checkpoints", max_snapshots=2, clock=self.clock
        )

    def tearDown(self) -> None:
        self.service.stop_auto_save()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _save(self, session_id: str, state: ExplorationState | None = None, **kwargs) -> Path:
        params = {
            "strategy_name": "pv-explore",
            "project_name": "demo",
            "root_position": ROOT,
        }
        params.update(kwargs)
        return self.service.save(session_id, state or _state(), **params)

    def test_save_writes_named_snapshot(self) -> None:
        path = self._save("s1", config={"depth_ratio": 0.5}, metadata={"engine_slug": "x-1.0"})
        self.assertTrue(path.exists())
        self.assertRegex(path.name, r"^s1-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z\.state\.json$")
        payload = json.loads(path.read_text())
        self.assertEqual(payload["version"], 1)
        self.assertEqual(payload["session_id"], "s1")
        self.assertEqual(payload["config"], {"depth_ratio": 0.5})
        self.assertEqual(payload["state"]["visited"], ["root", "x"])
        leftovers = [p for p in path.parent.iterdir() if p.name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_save_prunes_oldest_snapshots_of_the_session(self) -> None:
        paths = [self._save("s1") for _ in range(4)]
        other = self._save("s2")
        remaining = self.service.snapshot_paths("s1")
        self.assertEqual(remaining, paths[-2:])
        self.assertTrue(other.exists())

    def test_load_returns_newest_snapshot_with_metadata(self) -> None:
        self._save("s1", _state(analyzed=1))
        self._save("s1", _state(analyzed=2))
        result = self.service.load("s1")
        self.assertTrue(result.success)
        assert result.checkpoint is not None
        state = deserialize_state(result.checkpoint.state)
        self.assertEqual(state.stats.analyzed, 2)
        self.assertEqual(result.completion_percentage, 50)
        self.assertEqual(result.estimated_remaining_s, 4.0)
        self.assertEqual(result.age_s, 1.0)

    def test_load_round_trips_state(self) -> None:
        original = _state()
        self._save("s1", original)
        result = self.service.load("s1")
        assert result.checkpoint is not None
        self.assertEqual(deserialize_state(result.checkpoint.state), original)

    def test_load_missing_session_fails_softly(self) -> None:
        result = self.service.load("missing")
        self.assertFalse(result.success)
        self.assertIn("missing", result.error or "")

    def test_load_corrupt_snapshot_fails_softly(self) -> None:
        path = self._save("s1")
        path.write_text("{not json")
        result = self.service.load("s1")
        self.assertFalse(result.success)
        self.assertIn("Corrupt", result.error or "")

    def test_load_ignores_unknown_fields(self) -> None:
        path = self._save("s1")
        payload = json.loads(path.read_text())
        payload["future_field"] = {"anything": True}
        path.write_text(json.dumps(payload))
        self.assertTrue(self.service.load("s1").success)

    def test_list_reports_newest_snapshot_per_session(self) -> None:
        self._save("s1", _state(analyzed=1, discovered=4))
        self._save("s1", _state(analyzed=3, discovered=4))
        self._save("s2", _state(analyzed=2, discovered=2, frontier=()))
        (self.tmp_dir / "checkpoints" / "notes.txt").write_text("ignored")
        summaries = self.service.list()
        self.assertEqual([s.session_id for s in summaries], ["s2", "s1"])
        self.assertEqual(summaries[0].completion_percentage, 100)
        self.assertEqual(summaries[1].completion_percentage, 75)
        self.assertEqual(summaries[1].frontier_size, 2)

    def test_list_skips_unreadable_files(self) -> None:
        self._save("s1")
        broken = self._save("s2")
        broken.write_text("[]")
        self.assertEqual([s.session_id for s in self.service.list()], ["s1"])

    def test_delete_removes_every_snapshot(self) -> None:
        self._save("s1")
        self._save("s1")
        self._save("s2")
        self.assertEqual(self.service.delete("s1"), 2)
        self.assertEqual(self.service.snapshot_paths("s1"), [])
        self.assertEqual(len(self.service.snapshot_paths("s2")), 1)
        self.assertEqual(self.service.delete("s1"), 0)

    def test_find_resumable_matches_project_strategy_and_progress(self) -> None:
        self._save("done", _state(analyzed=4, discovered=4, frontier=()))
        self._save("other-project", project_name="elsewhere")
        self._save("other-strategy", strategy_name="different")
        self._save("open", _state(analyzed=1, discovered=4))
        self._save("finished-later", _state(analyzed=4, discovered=4, frontier=()))
        self.assertEqual(self.service.find_resumable("demo", "pv-explore"), "open")
        self.assertIsNone(self.service.find_resumable("nobody", "pv-explore"))

    def test_save_failure_raises_persistence_error(self) -> None:
        blocker = self.tmp_dir / "blocker"
        blocker.write_text("file, not a directory")
        service = CheckpointService(blocker / "checkpoints", clock=self.clock)
        with self.assertRaises(PersistenceError):
            service.save(
                "s1",
                _state(),
                strategy_name="pv-explore",
                project_name="demo",
                root_position=ROOT,
            )

    def test_auto_save_writes_snapshots_until_stopped(self) -> None:
        calls: list[int] = []

        def provider() -> SessionSnapshot:
            calls.append(1)
            return SessionSnapshot(
                state=_state(),
                strategy_name="pv-explore",
                project_name="demo",
                root_position=ROOT,
            )

        self.service.start_auto_save("auto", provider, 0.02)
        deadline = time.monotonic() + 5
        while not self.service.snapshot_paths("auto") and time.monotonic() < deadline:
            time.sleep(0.01)
        self.service.stop_auto_save()
        self.assertTrue(self.service.snapshot_paths("auto"))
        settled = len(calls)
        time.sleep(0.1)
        self.assertEqual(len(calls), settled)

    def test_starting_auto_save_replaces_previous_timer(self) -> None:
        def provider_for(project: str):
            def provider() -> SessionSnapshot:
                return SessionSnapshot(
                    state=_state(),
                    strategy_name="pv-explore",
                    project_name=project,
                    root_position=ROOT,
                )

            return provider

        self.service.start_auto_save("first", provider_for("a"), 0.02)
        self.service.start_auto_save("second", provider_for("b"), 0.02)
        count_first = len(self.service.snapshot_paths("first"))
        deadline = time.monotonic() + 5
        while not self.service.snapshot_paths("second") and time.monotonic() < deadline:
            time.sleep(0.01)
        self.service.stop_auto_save()
        self.assertEqual(len(self.service.snapshot_paths("first")), count_first)
        self.assertTrue(self.service.snapshot_paths("second"))

    def test_failed_auto_save_tick_is_logged_not_raised(self) -> None:
        def provider() -> SessionSnapshot:
            raise PersistenceError("disk full")

        with self.assertLogs("pvexplorer.checkpoint.service", level="ERROR") as logs:
            self.service.start_auto_save("broken", provider, 0.01)
            time.sleep(0.1)
            self.service.stop_auto_save()
        self.assertTrue(any("Auto-save failed" in line for line in logs.output))


def test_snapshot_filenames_sort_chronologically() -> None:
    early = build_checkpoint_filename("s", datetime(2026, 1, 1, 9, 59, 59, 999999, tzinfo=UTC))
    late = build_checkpoint_filename("s", datetime(2026, 1, 1, 10, 0, 0, tzinfo=UTC))
    assert sorted([late, early]) == [early, late]
    assert re.match(r"^s-", early)
