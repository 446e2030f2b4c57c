from __future__ import annotations

import os
from dataclasses import MISSING, dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_MISSING = object()
_SETTINGS_ALIAS_FIELDS = (
    "engine_path",
    "engine_threads",
    "engine_hash_mb",
    "engine_multipv",
    "engine_depth",
    "engine_movetime_ms",
    "engine_analysis_timeout_s",
    "engine_startup_timeout_s",
    "depth_ratio",
    "max_ply_distance",
    "max_positions",
    "strategy_name",
    "checkpoint_dir",
    "autosave_interval_s",
    "max_snapshots",
    "checkpoints_enabled",
)

load_dotenv()

DEFAULT_DATA_DIR = Path(os.getenv("PVEXPLORER_DATA_DIR", "data"))
DEFAULT_ROOT_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
DEFAULT_STRATEGY_NAME = "pv-explore"


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _field_value(name: str, field_info: object, kwargs: dict[str, object]) -> object:
    value = kwargs.pop(name, _MISSING)
    if value is not _MISSING:
        return value
    default_factory = getattr(field_info, "default_factory", MISSING)
    if default_factory is not MISSING:
        return default_factory()
    default = getattr(field_info, "default", MISSING)
    if default is not MISSING:
        return default
    raise TypeError(f"Missing required argument: {name}")


def _apply_settings_aliases(settings: Settings, kwargs: dict[str, object]) -> None:
    for alias in _SETTINGS_ALIAS_FIELDS:
        value = kwargs.pop(alias, _MISSING)
        if value is not _MISSING:
            setattr(settings, alias, value)


def _raise_on_unexpected_kwargs(kwargs: dict[str, object]) -> None:
    if kwargs:
        unexpected = next(iter(kwargs))
        raise TypeError(f"Settings.__init__() got an unexpected keyword argument '{unexpected}'")


@dataclass(slots=True)
class EngineSettings:
    """UCI engine process configuration."""

    path: Path = Path(os.getenv("PVEXPLORER_ENGINE_PATH", "stockfish"))
    threads: int = _env_int("PVEXPLORER_ENGINE_THREADS", "1")
    hash_mb: int = _env_int("PVEXPLORER_ENGINE_HASH_MB", "128")
    multipv: int = _env_int("PVEXPLORER_ENGINE_MULTIPV", "1")
    depth: int | None = _env_int("PVEXPLORER_ENGINE_DEPTH", "20") or None
    movetime_ms: int | None = _env_int("PVEXPLORER_ENGINE_MOVETIME_MS", "0") or None
    analysis_timeout_s: float = _env_float("PVEXPLORER_ENGINE_ANALYSIS_TIMEOUT_S", "300")
    startup_timeout_s: float = _env_float("PVEXPLORER_ENGINE_STARTUP_TIMEOUT_S", "10")
    quit_grace_s: float = _env_float("PVEXPLORER_ENGINE_QUIT_GRACE_S", "1")
    terminate_grace_s: float = _env_float("PVEXPLORER_ENGINE_TERMINATE_GRACE_S", "1")
    kill_grace_s: float = _env_float("PVEXPLORER_ENGINE_KILL_GRACE_S", "0.5")

    def uci_options(self) -> dict[str, object]:
        """Return the options applied right after the handshake."""
        options: dict[str, object] = {
            "Threads": self.threads,
            "Hash": self.hash_mb,
        }
        return {name: value for name, value in options.items() if value is not None}


@dataclass(slots=True)
class ExplorationSettings:
    """Frontier traversal budgets."""

    depth_ratio: float = _env_float("PVEXPLORER_DEPTH_RATIO", "0.5")
    max_ply_distance: int | None = _env_int("PVEXPLORER_MAX_PLY_DISTANCE", "0") or None
    max_positions: int | None = _env_int("PVEXPLORER_MAX_POSITIONS", "0") or None
    strategy_name: str = os.getenv("PVEXPLORER_STRATEGY_NAME", DEFAULT_STRATEGY_NAME)


@dataclass(slots=True)
class CheckpointSettings:
    """Checkpoint directory, cadence and retention."""

    directory: Path = Path(
        os.getenv("PVEXPLORER_CHECKPOINT_DIR", DEFAULT_DATA_DIR / "checkpoints")
    )
    autosave_interval_s: float = _env_float("PVEXPLORER_AUTOSAVE_INTERVAL_S", "30")
    max_snapshots: int = _env_int("PVEXPLORER_MAX_SNAPSHOTS", "5")
    enabled: bool = os.getenv("PVEXPLORER_CHECKPOINTS_ENABLED", "1") == "1"


@dataclass(slots=True, init=False)
class Settings:
    """Central configuration for an exploration run."""

    project_name: str = os.getenv("PVEXPLORER_PROJECT", "default")
    root_fen: str = os.getenv("PVEXPLORER_ROOT_FEN", DEFAULT_ROOT_FEN)

    engine: EngineSettings = field(default_factory=EngineSettings)
    exploration: ExplorationSettings = field(default_factory=ExplorationSettings)
    checkpoint: CheckpointSettings = field(default_factory=CheckpointSettings)

    duckdb_path: Path = Path(
        os.getenv("PVEXPLORER_DUCKDB_PATH", DEFAULT_DATA_DIR / "analysis.duckdb")
    )
    graph_path: Path = Path(os.getenv("PVEXPLORER_GRAPH_PATH", DEFAULT_DATA_DIR / "graph.json"))

    def __init__(self, **kwargs: object) -> None:
        for name, field_info in self.__dataclass_fields__.items():
            setattr(self, name, _field_value(name, field_info, kwargs))
        _apply_settings_aliases(self, kwargs)
        _raise_on_unexpected_kwargs(kwargs)

    @property
    def engine_path(self) -> Path:
        return self.engine.path

    @engine_path.setter
    def engine_path(self, value: Path | str) -> None:
        self.engine.path = Path(value)

    @property
    def engine_threads(self) -> int:
        return self.engine.threads

    @engine_threads.setter
    def engine_threads(self, value: int) -> None:
        self.engine.threads = value

    @property
    def engine_hash_mb(self) -> int:
        return self.engine.hash_mb

    @engine_hash_mb.setter
    def engine_hash_mb(self, value: int) -> None:
        self.engine.hash_mb = value

    @property
    def engine_multipv(self) -> int:
        return self.engine.multipv

    @engine_multipv.setter
    def engine_multipv(self, value: int) -> None:
        self.engine.multipv = value

    @property
    def engine_depth(self) -> int | None:
        return self.engine.depth

    @engine_depth.setter
    def engine_depth(self, value: int | None) -> None:
        self.engine.depth = value

    @property
    def engine_movetime_ms(self) -> int | None:
        return self.engine.movetime_ms

    @engine_movetime_ms.setter
    def engine_movetime_ms(self, value: int | None) -> None:
        self.engine.movetime_ms = value

    @property
    def engine_analysis_timeout_s(self) -> float:
        return self.engine.analysis_timeout_s

    @engine_analysis_timeout_s.setter
    def engine_analysis_timeout_s(self, value: float) -> None:
        self.engine.analysis_timeout_s = value

    @property
    def engine_startup_timeout_s(self) -> float:
        return self.engine.startup_timeout_s

    @engine_startup_timeout_s.setter
    def engine_startup_timeout_s(self, value: float) -> None:
        self.engine.startup_timeout_s = value

    @property
    def depth_ratio(self) -> float:
        return self.exploration.depth_ratio

    @depth_ratio.setter
    def depth_ratio(self, value: float) -> None:
        self.exploration.depth_ratio = value

    @property
    def max_ply_distance(self) -> int | None:
        return self.exploration.max_ply_distance

    @max_ply_distance.setter
    def max_ply_distance(self, value: int | None) -> None:
        self.exploration.max_ply_distance = value

    @property
    def max_positions(self) -> int | None:
        return self.exploration.max_positions

    @max_positions.setter
    def max_positions(self, value: int | None) -> None:
        self.exploration.max_positions = value

    @property
    def strategy_name(self) -> str:
        return self.exploration.strategy_name

    @strategy_name.setter
    def strategy_name(self, value: str) -> None:
        self.exploration.strategy_name = value

    @property
    def checkpoint_dir(self) -> Path:
        return self.checkpoint.directory

    @checkpoint_dir.setter
    def checkpoint_dir(self, value: Path | str) -> None:
        self.checkpoint.directory = Path(value)

    @property
    def autosave_interval_s(self) -> float:
        return self.checkpoint.autosave_interval_s

    @autosave_interval_s.setter
    def autosave_interval_s(self, value: float) -> None:
        self.checkpoint.autosave_interval_s = value

    @property
    def max_snapshots(self) -> int:
        return self.checkpoint.max_snapshots

    @max_snapshots.setter
    def max_snapshots(self, value: int) -> None:
        self.checkpoint.max_snapshots = value

    @property
    def checkpoints_enabled(self) -> bool:
        return self.checkpoint.enabled

    @checkpoints_enabled.setter
    def checkpoints_enabled(self, value: bool) -> None:
        self.checkpoint.enabled = value

    @property
    def data_dir(self) -> Path:
        return self.duckdb_path.parent

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.graph_path.parent.mkdir(parents=True, exist_ok=True)
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)


def get_settings(project_name: str | None = None) -> Settings:
    settings = Settings()
    load_dotenv()
    if project_name:
        settings.project_name = project_name
    settings.ensure_dirs()
    return settings
