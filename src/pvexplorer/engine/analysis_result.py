"""Analysis Result record and its reduction from raw engine output."""

from __future__ import annotations

from dataclasses import dataclass, field

from pvexplorer.domain.pv_moves import split_pv
from pvexplorer.engine.uci_types import AnalysisOutput, UciInfoPV, UciScore
from pvexplorer.errors import EmptyAnalysisError


@dataclass(slots=True)
class AnalysisResult:
    """Engine evaluation of one position.

    ``principal_variations`` holds one space separated line per multipv rank,
    best rank first; ``main_pv`` is the first of them split into tokens.
    """

    fingerprint: str
    depth: int
    score: UciScore | None = None
    principal_variations: list[str] = field(default_factory=list)
    selective_depth: int | None = None
    multipv_rank: int = 1
    time_ms: int | None = None
    nodes: int | None = None
    nodes_per_second: int | None = None
    best_move: str | None = None

    @property
    def main_pv(self) -> list[str]:
        if not self.principal_variations:
            return []
        return split_pv(self.principal_variations[0])

    def to_dict(self) -> dict[str, object]:
        return {
            "fingerprint": self.fingerprint,
            "depth": self.depth,
            "selective_depth": self.selective_depth,
            "multipv_rank": self.multipv_rank,
            "score_type": self.score.kind if self.score else None,
            "score": self.score.value if self.score else None,
            "principal_variations": list(self.principal_variations),
            "time_ms": self.time_ms,
            "nodes": self.nodes,
            "nodes_per_second": self.nodes_per_second,
            "best_move": self.best_move,
        }


def _rank(info: UciInfoPV) -> int:
    return info.multipv or 1


def _deepest_per_rank(infos: list[UciInfoPV]) -> dict[int, UciInfoPV]:
    deepest: dict[int, UciInfoPV] = {}
    for info in infos:
        rank = _rank(info)
        current = deepest.get(rank)
        # Later updates at the same depth supersede earlier ones.
        if current is None or (info.depth or 0) >= (current.depth or 0):
            deepest[rank] = info
    return deepest


def reduce_analysis_output(fingerprint: str, output: AnalysisOutput) -> AnalysisResult:
    """Fold the PV updates of one search into an ``AnalysisResult``.

    Raises ``EmptyAnalysisError`` when the search produced no main-line update.
    """
    deepest = _deepest_per_rank(output.infos)
    main = deepest.get(1)
    if main is None:
        raise EmptyAnalysisError(f"No principal variation reported for {fingerprint}")
    lines = [" ".join(deepest[rank].pv) for rank in sorted(deepest)]
    best_move = output.best_move.best_move if output.best_move else None
    return AnalysisResult(
        fingerprint=fingerprint,
        depth=main.depth or 0,
        score=main.score,
        principal_variations=lines,
        selective_depth=main.seldepth,
        multipv_rank=1,
        time_ms=main.time_ms,
        nodes=main.nodes,
        nodes_per_second=main.nps,
        best_move=best_move,
    )
