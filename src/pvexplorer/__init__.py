"""pvexplorer package entrypoints."""

from pvexplorer.app.wiring import run_exploration
from pvexplorer.config import Settings, get_settings
from pvexplorer.domain.move_graph import MoveEdge, MoveGraph, PositionNode
from pvexplorer.exploration.pv_explorer import ExplorationReport, PvExplorer


def main() -> None:
    """Run a single exploration from the configured root position."""
    report = run_exploration()
    print(
        f"session={report.session_id} analyzed={report.analyzed} "
        f"discovered={report.discovered} max_depth={report.max_depth} "
        f"failed={len(report.failed_positions)}"
    )


__all__ = [
    "ExplorationReport",
    "MoveEdge",
    "MoveGraph",
    "PositionNode",
    "PvExplorer",
    "Settings",
    "get_settings",
    "main",
    "run_exploration",
]
