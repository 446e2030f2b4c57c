"""Exploration State and its JSON-friendly form.

Serialized form::

    {
        "frontier": [fen, ...],                 # deque, FIFO order
        "visited": [fen, ...],                  # set, sorted
        "depth_of": [[fen, depth], ...],        # dict, insertion order
        "max_depth": int,
        "stats": {"analyzed": ..., "start_time": "<ISO 8601>", ...},
    }
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime

from pvexplorer.utils import Now


@dataclass(slots=True)
class ExplorationStats:
    analyzed: int = 0
    discovered: int = 0
    start_time: datetime = field(default_factory=Now.as_datetime)
    last_update: datetime = field(default_factory=Now.as_datetime)
    avg_time_per_position: float = 0.0

    @property
    def completion_percentage(self) -> int:
        if self.discovered <= 0:
            return 0
        return round(self.analyzed / self.discovered * 100)

    def record_analysis(self, elapsed_s: float, when: datetime | None = None) -> None:
        """Count one analyzed position and fold ``elapsed_s`` into the running average."""
        self.analyzed += 1
        self.last_update = when or Now.as_datetime()
        previous = self.analyzed - 1
        self.avg_time_per_position = (
            self.avg_time_per_position * previous + elapsed_s
        ) / self.analyzed


@dataclass(slots=True)
class ExplorationState:
    """Traversal bookkeeping for one session.

    ``frontier`` never holds the same fingerprint twice and never holds a
    visited fingerprint; ``_queued`` mirrors the frontier for O(1) checks.
    """

    frontier: deque[str] = field(default_factory=deque)
    visited: set[str] = field(default_factory=set)
    depth_of: dict[str, int] = field(default_factory=dict)
    max_depth: int = 0
    stats: ExplorationStats = field(default_factory=ExplorationStats)
    _queued: set[str] = field(default_factory=set, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._queued = set(self.frontier)

    def is_queued(self, fen: str) -> bool:
        return fen in self._queued

    def record_depth(self, fen: str, depth: int) -> int:
        """Store ``depth`` unless a shallower one is known; return the kept depth."""
        current = self.depth_of.get(fen)
        if current is None or depth < current:
            self.depth_of[fen] = depth
            return depth
        return current

    def enqueue(self, fen: str) -> bool:
        """Append ``fen`` unless it is visited or already queued."""
        if fen in self.visited or fen in self._queued:
            return False
        self.frontier.append(fen)
        self._queued.add(fen)
        self.stats.discovered += 1
        return True

    def pop(self) -> str:
        fen = self.frontier.popleft()
        self._queued.discard(fen)
        return fen

    def mark_visited(self, fen: str) -> None:
        self.visited.add(fen)

    def copy(self) -> ExplorationState:
        """Independent snapshot, safe to hand to another thread."""
        return ExplorationState(
            frontier=deque(self.frontier),
            visited=set(self.visited),
            depth_of=dict(self.depth_of),
            max_depth=self.max_depth,
            stats=replace(self.stats),
        )


def serialize_state(state: ExplorationState) -> dict[str, object]:
    stats = state.stats
    return {
        "frontier": list(state.frontier),
        "visited": sorted(state.visited),
        "depth_of": [[fen, depth] for fen, depth in state.depth_of.items()],
        "max_depth": state.max_depth,
        "stats": {
            "analyzed": stats.analyzed,
            "discovered": stats.discovered,
            "start_time": stats.start_time.isoformat(),
            "last_update": stats.last_update.isoformat(),
            "avg_time_per_position": stats.avg_time_per_position,
        },
    }


def _parse_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return Now.from_iso(value)
    return Now.as_datetime()


def deserialize_state(payload: Mapping[str, object]) -> ExplorationState:
    """Rebuild an ``ExplorationState``; raises ``ValueError`` on malformed data."""
    try:
        raw_stats = payload.get("stats") or {}
        if not isinstance(raw_stats, Mapping):
            raise ValueError("stats must be an object")
        stats = ExplorationStats(
            analyzed=int(raw_stats.get("analyzed", 0)),
            discovered=int(raw_stats.get("discovered", 0)),
            start_time=_parse_datetime(raw_stats.get("start_time")),
            last_update=_parse_datetime(raw_stats.get("last_update")),
            avg_time_per_position=float(raw_stats.get("avg_time_per_position", 0.0)),
        )
        return ExplorationState(
            frontier=deque(str(fen) for fen in payload.get("frontier") or []),
            visited={str(fen) for fen in payload.get("visited") or []},
            depth_of={str(fen): int(depth) for fen, depth in payload.get("depth_of") or []},
            max_depth=int(payload.get("max_depth", 0)),
            stats=stats,
        )
    except (TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed exploration state: {exc}") from exc
