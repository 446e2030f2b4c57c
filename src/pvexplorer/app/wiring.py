"""Default dependency wiring for an exploration run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pvexplorer.checkpoint.service import CheckpointService
from pvexplorer.config import Settings, get_settings
from pvexplorer.db.duckdb_analysis_store import DuckDbAnalysisStore
from pvexplorer.domain.fingerprint import is_valid_fen, normalize_fen
from pvexplorer.domain.move_graph import MoveGraph
from pvexplorer.engine.position_analyzer import PositionAnalyzer
from pvexplorer.exploration.pv_explorer import (
    ExplorationProgress,
    ExplorationReport,
    PvExplorer,
)
from pvexplorer.infra.graph_file_store import JsonGraphStore
from pvexplorer.utils import funclogger
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DefaultSettingsProvider:
    """Default settings provider."""

    def get_settings(self, project_name: str | None = None) -> Settings:
        return get_settings(project_name)


@dataclass(frozen=True)
class DefaultAnalyzerFactory:
    """Build a position analyzer from engine settings."""

    def create(self, settings: Settings) -> PositionAnalyzer:
        return PositionAnalyzer.from_settings(settings.engine)


@dataclass(frozen=True)
class DefaultResultStoreFactory:
    """Open the DuckDB result store."""

    def create(self, settings: Settings) -> DuckDbAnalysisStore:
        return DuckDbAnalysisStore.open(settings.duckdb_path)


@dataclass(frozen=True)
class DefaultGraphStoreFactory:
    """JSON graph store at the configured path."""

    def create(self, settings: Settings) -> JsonGraphStore:
        return JsonGraphStore(settings.graph_path)


@dataclass(frozen=True)
class DefaultCheckpointServiceFactory:
    """Checkpoint service, or None when checkpoints are disabled."""

    def create(self, settings: Settings) -> CheckpointService | None:
        if not settings.checkpoints_enabled:
            return None
        return CheckpointService(
            settings.checkpoint_dir,
            max_snapshots=settings.max_snapshots,
        )


def log_progress(progress: ExplorationProgress) -> None:
    logger.info(
        "%s (%s/%s, depth %s/%s, %s queued)",
        progress.operation,
        progress.current,
        progress.total,
        progress.current_depth,
        progress.max_depth,
        progress.queue_size,
    )


def _load_graph(graph_store: JsonGraphStore, settings: Settings, root_fen: str) -> MoveGraph:
    """Load the stored graph, or start an empty one when it cannot be read."""
    try:
        graph = graph_store.load()
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable graph at %s: %s", settings.graph_path, exc)
        graph = None
    if graph is None:
        return MoveGraph()
    if (
        graph.root_position is not None
        and is_valid_fen(root_fen)
        and graph.root_position != normalize_fen(root_fen)
    ):
        logger.warning(
            "Graph at %s is rooted at %s; exploring from %s",
            settings.graph_path,
            graph.root_position,
            normalize_fen(root_fen),
        )
    return graph


@dataclass(frozen=True)
class ExplorationRunner:
    """Wire the collaborators together and run one exploration."""

    analyzer_factory: DefaultAnalyzerFactory = DefaultAnalyzerFactory()
    result_store_factory: DefaultResultStoreFactory = DefaultResultStoreFactory()
    graph_store_factory: DefaultGraphStoreFactory = DefaultGraphStoreFactory()
    checkpoint_factory: DefaultCheckpointServiceFactory = DefaultCheckpointServiceFactory()
    on_progress: Callable[[ExplorationProgress], None] | None = log_progress

    def run(
        self,
        settings: Settings,
        *,
        root_fen: str | None = None,
        root_depth: int | None = None,
        session_id: str | None = None,
        resume: bool = True,
    ) -> ExplorationReport:
        graph_store = self.graph_store_factory.create(settings)
        graph = _load_graph(graph_store, settings, root_fen or settings.root_fen)
        result_store = self.result_store_factory.create(settings)
        try:
            with self.analyzer_factory.create(settings) as analyzer:
                explorer = PvExplorer(
                    analyzer,
                    settings=settings,
                    graph=graph,
                    result_store=result_store,
                    graph_store=graph_store,
                    checkpoints=self.checkpoint_factory.create(settings),
                    on_progress=self.on_progress,
                )
                return explorer.run(
                    root_fen or settings.root_fen,
                    root_depth=root_depth,
                    session_id=session_id,
                    resume=resume,
                )
        finally:
            result_store.close()


@funclogger
def run_exploration(
    settings: Settings | None = None,
    *,
    root_fen: str | None = None,
    root_depth: int | None = None,
    resume: bool = True,
) -> ExplorationReport:
    """Run one exploration with the default collaborators."""
    resolved = settings or DefaultSettingsProvider().get_settings()
    return ExplorationRunner().run(
        resolved,
        root_fen=root_fen,
        root_depth=root_depth,
        resume=resume,
    )
