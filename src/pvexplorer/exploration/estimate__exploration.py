from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pvexplorer.exploration.compute_max_depth__exploration import compute_max_depth

_DEFAULT_POSITION_CAP = 1000
_SECONDS_PER_POSITION = 2.0
_DEFAULT_ROOT_DEPTH = 20

Complexity = Literal["low", "medium", "high"]


@dataclass(frozen=True, slots=True)
class ExecutionEstimate:
    estimated_positions: int
    estimated_time_s: float
    complexity: Complexity
    resumable: bool = True


def _complexity(positions: int) -> Complexity:
    if positions > 100:
        return "high"
    if positions > 20:
        return "medium"
    return "low"


def estimate_execution(
    root_depth: int | None,
    depth_ratio: float,
    max_ply_distance: int | None = None,
    max_positions: int | None = None,
) -> ExecutionEstimate:
    """Rough upper bound on the work a run will do, assuming binary branching."""
    max_depth = compute_max_depth(root_depth or _DEFAULT_ROOT_DEPTH, depth_ratio, max_ply_distance)
    positions = min(2**max_depth, max_positions or _DEFAULT_POSITION_CAP)
    return ExecutionEstimate(
        estimated_positions=positions,
        estimated_time_s=positions * _SECONDS_PER_POSITION,
        complexity=_complexity(positions),
    )
