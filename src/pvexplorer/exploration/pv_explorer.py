"""Exploration State Machine.

A run has three phases:

1. Root: analyze the root fingerprint, derive ``max_depth`` from the depth the
   engine actually reached, and fold the root result in.
2. Frontier: pop fingerprints FIFO, analyze each one once, merge its main line
   into the graph and queue every produced position that is still inside the
   depth budget.
3. Done: the frontier is empty, the position budget is spent or ``cancel()``
   was called.

Resumed sessions skip the root phase and continue from the saved frontier.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from pvexplorer.checkpoint.service import CheckpointService, SessionSnapshot
from pvexplorer.config import Settings
from pvexplorer.domain.fingerprint import (
    board_from_fingerprint,
    fingerprint_board,
    is_valid_fen,
    normalize_fen,
)
from pvexplorer.domain.move_graph import MoveEdge, MoveGraph, PositionNode
from pvexplorer.domain.pv_moves import push_pv_move
from pvexplorer.engine.analysis_result import AnalysisResult
from pvexplorer.errors import (
    EmptyAnalysisError,
    EngineBusyError,
    EngineTerminatedError,
    EngineTimeoutError,
    InvalidMoveError,
    PersistenceError,
)
from pvexplorer.exploration.compute_max_depth__exploration import compute_max_depth
from pvexplorer.exploration.estimate__exploration import ExecutionEstimate, estimate_execution
from pvexplorer.exploration.state import ExplorationState, deserialize_state
from pvexplorer.ports.analysis_result_store import AnalysisResultStore
from pvexplorer.ports.graph_store import GraphStore
from pvexplorer.ports.position_analyzer import PositionAnalyzerPort
from pvexplorer.utils import Now, generate_id
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)

# Failures that belong to one position; anything else aborts the run.
_POSITION_FAILURES = (
    EngineTimeoutError,
    EngineTerminatedError,
    EngineBusyError,
    EmptyAnalysisError,
)


@dataclass(frozen=True, slots=True)
class ExplorationProgress:
    current: int
    total: int
    percentage: float
    operation: str
    current_depth: int
    max_depth: int
    queue_size: int


@dataclass(slots=True)
class ExplorationReport:
    session_id: str
    root_position: str
    resumed: bool
    max_depth: int
    analyzed: int
    discovered: int
    budget_exhausted: bool = False
    cancelled: bool = False
    failed_positions: list[str] = field(default_factory=list)
    results: list[AnalysisResult] = field(default_factory=list)


class PvExplorer:
    """Breadth-first PV exploration that owns its ``MoveGraph`` for the session.

    External readers use ``graph_view()`` / ``graph_document()``; the live
    graph and state are only mutated on the thread calling ``run``.
    """

    def __init__(
        self,
        analyzer: PositionAnalyzerPort,
        *,
        settings: Settings | None = None,
        graph: MoveGraph | None = None,
        result_store: AnalysisResultStore | None = None,
        graph_store: GraphStore | None = None,
        checkpoints: CheckpointService | None = None,
        project_name: str | None = None,
        on_progress: Callable[[ExplorationProgress], None] | None = None,
        clock: Callable[[], datetime] = Now.as_datetime,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.analyzer = analyzer
        self.settings = settings or Settings()
        self._graph = graph or MoveGraph()
        self.result_store = result_store
        self.graph_store = graph_store
        self.checkpoints = checkpoints
        self.project_name = project_name or self.settings.project_name
        self.on_progress = on_progress
        self._clock = clock
        self._timer = timer
        self._state = ExplorationState()
        self._snapshot = self._state.copy()
        self._session_id: str | None = None
        self._root_position: str | None = None
        self._results: list[AnalysisResult] = []
        self._failed: list[str] = []
        self._cancel_requested = threading.Event()
        self._cancelled = False

    @property
    def strategy_name(self) -> str:
        return self.settings.strategy_name

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def state(self) -> ExplorationState:
        """Copy of the current state."""
        return self._state.copy()

    def graph_view(self) -> Mapping[str, PositionNode]:
        return self._graph.nodes

    def graph_document(self) -> dict[str, object]:
        return self._graph.to_document()

    def can_execute(self, root_fen: str | None) -> bool:
        return is_valid_fen(root_fen)

    def estimate(self, root_depth: int | None = None) -> ExecutionEstimate:
        return estimate_execution(
            root_depth or self.settings.engine_depth,
            self.settings.depth_ratio,
            self.settings.max_ply_distance,
            self.settings.max_positions,
        )

    def run(
        self,
        root_fen: str,
        *,
        root_depth: int | None = None,
        session_id: str | None = None,
        resume: bool = True,
    ) -> ExplorationReport:
        """Explore from ``root_fen`` until the frontier or the budget runs out.

        ``cancel()`` ends the run early with the frontier kept.

        Raises ``ValueError`` for an invalid root, ``EngineConnectionError`` when
        the engine cannot be (re)started, and any root analysis failure.
        """
        if not self.can_execute(root_fen):
            raise ValueError(f"Invalid root position: {root_fen!r}")
        root = normalize_fen(root_fen)
        self._root_position = root
        self._results = []
        self._failed = []
        self._cancel_requested.clear()
        self._cancelled = False
        resumed = self._resume(root, session_id) if resume else None
        if resumed is None:
            self._session_id = session_id or generate_id()
            self._state = ExplorationState()
        else:
            self._session_id, self._state = resumed
            logger.info(
                "Resuming session %s: %s analyzed, %s queued",
                self._session_id,
                self._state.stats.analyzed,
                len(self._state.frontier),
            )
        if self._graph.root_position is None:
            self._graph.root_position = root
        # No checkpoint exists for a session until its root has been analyzed.
        if resumed is None:
            self._analyze_root(root, root_depth)
        self._snapshot = self._state.copy()
        self._start_auto_save()
        try:
            budget_exhausted = self._process_frontier()
        finally:
            self._stop_auto_save()
            self._save_checkpoint()
        stats = self._state.stats
        logger.info(
            "Exploration %s finished: %s analyzed, %s discovered, %s failed",
            self._session_id,
            stats.analyzed,
            stats.discovered,
            len(self._failed),
        )
        return ExplorationReport(
            session_id=self._session_id,
            root_position=root,
            resumed=resumed is not None,
            max_depth=self._state.max_depth,
            analyzed=stats.analyzed,
            discovered=stats.discovered,
            budget_exhausted=budget_exhausted,
            cancelled=self._cancelled,
            failed_positions=list(self._failed),
            results=list(self._results),
        )

    def _resume(
        self, root: str, session_id: str | None
    ) -> tuple[str, ExplorationState] | None:
        if self.checkpoints is None:
            return None
        candidate = session_id or self.checkpoints.find_resumable(
            self.project_name, self.strategy_name
        )
        if candidate is None:
            return None
        loaded = self.checkpoints.load(candidate)
        if not loaded.success or loaded.checkpoint is None:
            logger.warning("Cannot resume session %s: %s", candidate, loaded.error)
            return None
        if loaded.checkpoint.root_position != root:
            logger.warning("Session %s explored a different root; starting fresh", candidate)
            return None
        try:
            state = deserialize_state(loaded.checkpoint.state)
        except ValueError:
            logger.warning("Cannot resume session %s", candidate, exc_info=True)
            return None
        if root not in state.visited:
            logger.warning(
                "Session %s never finished its root analysis; starting fresh", candidate
            )
            return None
        return candidate, state

    def cancel(self) -> None:
        """Ask a running ``run`` to stop before the next frontier position.

        Safe to call from any thread. The frontier is kept, so the final
        checkpoint can be resumed later.
        """
        self._cancel_requested.set()

    def _analyze_root(self, root: str, root_depth: int | None) -> None:
        state = self._state
        state.stats.discovered = 1
        state.record_depth(root, 0)
        started = self._timer()
        result = self.analyzer.analyze(root, depth=root_depth)
        state.max_depth = compute_max_depth(
            result.depth,
            self.settings.depth_ratio,
            self.settings.max_ply_distance,
        )
        logger.info(
            "Root analyzed at depth %s; exploring %s plies deep", result.depth, state.max_depth
        )
        self._fold_result(root, 0, result, self._timer() - started)
        self._emit_progress(0, "Analyzed root position")

    def _process_frontier(self) -> bool:
        state = self._state
        max_positions = self.settings.max_positions
        while state.frontier:
            if self._cancel_requested.is_set():
                logger.info(
                    "Exploration %s cancelled with %s positions queued",
                    self._session_id,
                    len(state.frontier),
                )
                self._cancelled = True
                return False
            if max_positions and state.stats.analyzed >= max_positions:
                logger.info("Position budget of %s reached", max_positions)
                return True
            fen = state.pop()
            depth = state.depth_of.get(fen, 0)
            if fen in state.visited or depth >= state.max_depth:
                continue
            started = self._timer()
            try:
                result = self.analyzer.analyze(fen)
            except _POSITION_FAILURES as exc:
                logger.warning("Analysis failed for %s: %s", fen, exc)
                state.mark_visited(fen)
                self._failed.append(fen)
                self._snapshot = state.copy()
                continue
            self._fold_result(fen, depth, result, self._timer() - started)
            self._emit_progress(depth, f"Analyzed position at depth {depth}")
        return False

    def _fold_result(
        self, fen: str, depth: int, result: AnalysisResult, elapsed_s: float
    ) -> None:
        state = self._state
        state.mark_visited(fen)
        self._merge_pv(fen, depth, result.main_pv)
        state.stats.record_analysis(elapsed_s, self._clock())
        self._results.append(result)
        self._store_result(result)
        self._save_graph()
        self._snapshot = state.copy()

    def _merge_pv(self, start: str, depth: int, moves: list[str]) -> None:
        """Add the PV to the graph as primary moves and queue new positions.

        The merge stops at the first token that is not a legal move; moves
        before it stay merged.
        """
        if not moves:
            return
        state = self._state
        board = board_from_fingerprint(start)
        current, current_depth = start, depth
        for token in moves:
            try:
                san = push_pv_move(board, token)
            except InvalidMoveError as exc:
                logger.warning("Truncating PV from %s at %s: %s", start, token, exc)
                return
            next_fen = fingerprint_board(board)
            self._graph.add_move(current, MoveEdge(move=san, to_fen=next_fen), is_primary=True)
            next_depth = state.record_depth(next_fen, current_depth + 1)
            if next_depth < state.max_depth:
                state.enqueue(next_fen)
            current, current_depth = next_fen, next_depth

    def _store_result(self, result: AnalysisResult) -> None:
        if self.result_store is None:
            return
        try:
            self.result_store.store_analysis_result(result, self.analyzer.engine_slug)
        except PersistenceError:
            logger.exception("Failed to store analysis for %s", result.fingerprint)

    def _save_graph(self) -> None:
        if self.graph_store is None:
            return
        try:
            self.graph_store.save_graph(self._graph.to_document())
        except PersistenceError:
            logger.exception("Failed to save graph")

    def _emit_progress(self, depth: int, operation: str) -> None:
        if self.on_progress is None:
            return
        stats = self._state.stats
        total = max(stats.discovered, 1)
        self.on_progress(
            ExplorationProgress(
                current=stats.analyzed,
                total=stats.discovered,
                percentage=stats.analyzed / total * 100,
                operation=operation,
                current_depth=depth,
                max_depth=self._state.max_depth,
                queue_size=len(self._state.frontier),
            )
        )

    def _session_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._snapshot,
            strategy_name=self.strategy_name,
            project_name=self.project_name,
            root_position=self._root_position or "",
            config={
                "depth_ratio": self.settings.depth_ratio,
                "max_ply_distance": self.settings.max_ply_distance,
                "max_positions": self.settings.max_positions,
                "engine_depth": self.settings.engine_depth,
            },
            metadata={"engine_slug": self.analyzer.engine_slug},
        )

    def _checkpoints_active(self) -> bool:
        return self.checkpoints is not None and self.settings.checkpoints_enabled

    def _start_auto_save(self) -> None:
        if not self._checkpoints_active() or self._session_id is None:
            return
        self.checkpoints.start_auto_save(  # type: ignore[union-attr]
            self._session_id,
            self._session_snapshot,
            self.settings.autosave_interval_s,
        )

    def _stop_auto_save(self) -> None:
        if self.checkpoints is not None:
            self.checkpoints.stop_auto_save()

    def _save_checkpoint(self) -> None:
        if not self._checkpoints_active() or self._session_id is None:
            return
        self._snapshot = self._state.copy()
        try:
            self.checkpoints.save_snapshot(  # type: ignore[union-attr]
                self._session_id, self._session_snapshot()
            )
        except PersistenceError:
            logger.exception("Failed to save final checkpoint for %s", self._session_id)
