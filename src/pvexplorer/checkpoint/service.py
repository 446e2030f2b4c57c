"""Checkpoint Service: timestamped, pruned, resumable session snapshots."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pvexplorer.checkpoint.build_checkpoint_filename__checkpoint import (
    CHECKPOINT_SUFFIX,
    build_checkpoint_filename,
    checkpoint_filename_pattern,
)
from pvexplorer.errors import PersistenceError, PvExplorerError
from pvexplorer.exploration.state import ExplorationState, deserialize_state, serialize_state
from pvexplorer.models.checkpoint import Checkpoint, CheckpointLoadResult, CheckpointSummary
from pvexplorer.utils import Now, write_json_atomic
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)

_STOP_JOIN_TIMEOUT_S = 5.0


@dataclass(slots=True)
class SessionSnapshot:
    """What the auto-save timer persists on every tick."""

    state: ExplorationState
    strategy_name: str
    project_name: str
    root_position: str
    config: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


def _read_checkpoint(path: Path) -> Checkpoint:
    return Checkpoint.model_validate(json.loads(path.read_text(encoding="utf-8")))


class CheckpointService:
    """Save, load, list and prune session snapshots in one directory.

    Files are named ``<session_id>-<timestamp>.state.json``; the timestamp is
    fixed width, so name order is chronological order.
    """

    def __init__(
        self,
        directory: Path | str,
        *,
        max_snapshots: int = 5,
        clock: Callable[[], datetime] = Now.as_datetime,
    ) -> None:
        self.directory = Path(directory)
        self.max_snapshots = max(1, max_snapshots)
        self._clock = clock
        self._write_lock = threading.Lock()
        self._auto_save_stop: threading.Event | None = None
        self._auto_save_thread: threading.Thread | None = None

    def save(
        self,
        session_id: str,
        state: ExplorationState,
        *,
        strategy_name: str,
        project_name: str,
        root_position: str,
        config: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Path:
        """Write a new snapshot, then prune the session's oldest ones."""
        saved_at = self._clock()
        checkpoint = Checkpoint(
            session_id=session_id,
            strategy_name=strategy_name,
            project_name=project_name,
            root_position=root_position,
            state=serialize_state(state),
            config=dict(config or {}),
            metadata=dict(metadata or {}),
            saved_at=saved_at,
        )
        path = self.directory / build_checkpoint_filename(session_id, saved_at)
        with self._write_lock:
            write_json_atomic(path, checkpoint.model_dump(mode="json"))
            self._prune(session_id)
        logger.debug("Checkpoint saved: %s", path.name)
        return path

    def save_snapshot(self, session_id: str, snapshot: SessionSnapshot) -> Path:
        return self.save(
            session_id,
            snapshot.state,
            strategy_name=snapshot.strategy_name,
            project_name=snapshot.project_name,
            root_position=snapshot.root_position,
            config=snapshot.config,
            metadata=snapshot.metadata,
        )

    def _session_files(self, session_id: str) -> list[Path]:
        if not self.directory.is_dir():
            return []
        pattern = checkpoint_filename_pattern(session_id)
        return sorted(
            (path for path in self.directory.iterdir() if pattern.match(path.name)),
            key=lambda path: path.name,
        )

    def _prune(self, session_id: str) -> None:
        files = self._session_files(session_id)
        for stale in files[: max(0, len(files) - self.max_snapshots)]:
            try:
                stale.unlink()
            except OSError:
                logger.warning("Failed to prune checkpoint %s", stale, exc_info=True)

    def load(self, session_id: str) -> CheckpointLoadResult:
        """Load the newest snapshot of ``session_id``; never raises."""
        files = self._session_files(session_id)
        if not files:
            return CheckpointLoadResult(
                success=False, error=f"No checkpoint found for session {session_id}"
            )
        newest = files[-1]
        try:
            checkpoint = _read_checkpoint(newest)
            state = deserialize_state(checkpoint.state)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Unreadable checkpoint %s: %s", newest.name, exc)
            return CheckpointLoadResult(
                success=False, error=f"Corrupt checkpoint {newest.name}: {exc}"
            )
        saved_at = Now.to_utc(checkpoint.saved_at) or checkpoint.saved_at
        return CheckpointLoadResult(
            success=True,
            checkpoint=checkpoint,
            age_s=max(0.0, (self._clock() - saved_at).total_seconds()),
            completion_percentage=state.stats.completion_percentage,
            estimated_remaining_s=len(state.frontier) * state.stats.avg_time_per_position,
        )

    def list(self) -> list[CheckpointSummary]:
        """Newest snapshot of every session, newest first."""
        if not self.directory.is_dir():
            return []
        pattern = checkpoint_filename_pattern()
        newest: dict[str, tuple[str, Path]] = {}
        for path in self.directory.iterdir():
            match = pattern.match(path.name)
            if match is None:
                continue
            session, stamp = match.group("session"), match.group("stamp")
            if session not in newest or stamp > newest[session][0]:
                newest[session] = (stamp, path)
        summaries = [
            summary
            for _, path in newest.values()
            if (summary := self._summarize(path)) is not None
        ]
        return sorted(summaries, key=lambda summary: summary.saved_at, reverse=True)

    def _summarize(self, path: Path) -> CheckpointSummary | None:
        try:
            checkpoint = _read_checkpoint(path)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Skipping unreadable checkpoint %s: %s", path.name, exc)
            return None
        stats = checkpoint.state.get("stats") or {}
        analyzed = int(stats.get("analyzed", 0)) if isinstance(stats, Mapping) else 0
        discovered = int(stats.get("discovered", 0)) if isinstance(stats, Mapping) else 0
        frontier = checkpoint.state.get("frontier") or []
        return CheckpointSummary(
            session_id=checkpoint.session_id,
            strategy_name=checkpoint.strategy_name,
            project_name=checkpoint.project_name,
            root_position=checkpoint.root_position,
            saved_at=checkpoint.saved_at,
            analyzed=analyzed,
            discovered=discovered,
            completion_percentage=round(analyzed / discovered * 100) if discovered else 0,
            frontier_size=len(frontier) if isinstance(frontier, list) else 0,
            path=str(path),
        )

    def delete(self, session_id: str) -> int:
        """Remove every snapshot of ``session_id`` and return how many went."""
        removed = 0
        with self._write_lock:
            for path in self._session_files(session_id):
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise PersistenceError(f"Failed to delete checkpoint {path}: {exc}") from exc
                removed += 1
        return removed

    def find_resumable(self, project_name: str, strategy_name: str) -> str | None:
        """Newest unfinished session of ``project_name`` run with ``strategy_name``.

        Unfinished means below 100 % completion with positions still queued.
        """
        for summary in self.list():
            if summary.project_name != project_name or summary.strategy_name != strategy_name:
                continue
            if summary.completion_percentage < 100 and summary.frontier_size > 0:
                return summary.session_id
        return None

    def start_auto_save(
        self,
        session_id: str,
        state_provider: Callable[[], SessionSnapshot],
        interval_s: float,
    ) -> None:
        """Save ``state_provider()`` every ``interval_s`` until stopped.

        Starting a new timer cancels the previous one.
        """
        self.stop_auto_save()
        stop = threading.Event()

        def tick() -> None:
            while not stop.wait(interval_s):
                try:
                    self.save_snapshot(session_id, state_provider())
                except (PvExplorerError, OSError, ValueError):
                    logger.exception("Auto-save failed for session %s", session_id)

        thread = threading.Thread(target=tick, name=f"autosave-{session_id}", daemon=True)
        self._auto_save_stop = stop
        self._auto_save_thread = thread
        thread.start()

    def stop_auto_save(self) -> None:
        stop, thread = self._auto_save_stop, self._auto_save_thread
        self._auto_save_stop = None
        self._auto_save_thread = None
        if stop is not None:
            stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=_STOP_JOIN_TIMEOUT_S)

    def snapshot_paths(self, session_id: str) -> list[Path]:
        """Snapshot files of ``session_id``, oldest first."""
        return self._session_files(session_id)


__all__ = ["CHECKPOINT_SUFFIX", "CheckpointService", "SessionSnapshot"]
