"""Directed graph of explored positions and their ranked continuations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class MoveEdge:
    """Outgoing move from a position.

    ``seq`` is the 1-based rank inside the owning node; ``seq == 1`` marks the
    primary continuation. The value passed into ``MoveGraph.add_move`` is
    ignored, the graph assigns it.
    """

    move: str
    to_fen: str
    seq: int = 0

    def to_dict(self) -> dict[str, object]:
        return {"move": self.move, "toFen": self.to_fen, "seq": self.seq}

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> MoveEdge:
        return cls(
            move=str(payload["move"]),
            to_fen=str(payload["toFen"]),
            seq=int(payload.get("seq") or 0),  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class PositionNode:
    """Immutable view of one position's ranked edges."""

    moves: tuple[MoveEdge, ...]

    @property
    def primary(self) -> MoveEdge | None:
        return self.moves[0] if self.moves else None


class MoveGraph:
    """Mapping from fingerprint to an ordered edge list.

    Transpositions are represented by several edges pointing at the same
    fingerprint, never by duplicate nodes. Edges are kept sorted by ``seq``.
    """

    def __init__(self, root_position: str | None = None) -> None:
        self.root_position = root_position
        self._nodes: dict[str, list[MoveEdge]] = {}

    def add_move(self, from_fen: str, edge: MoveEdge, is_primary: bool = False) -> MoveGraph:
        """Insert or promote ``edge`` under ``from_fen`` and return the graph."""
        moves = self._nodes.get(from_fen)
        if moves is None:
            self._nodes[from_fen] = [replace(edge, seq=1)]
            return self
        existing = next((m for m in moves if m.to_fen == edge.to_fen), None)
        if existing is not None:
            if not is_primary or moves[0] is existing:
                return self
            remaining = [m for m in moves if m is not existing]
            self._nodes[from_fen] = _resequence([existing, *remaining])
            return self
        if is_primary:
            self._nodes[from_fen] = _resequence([edge, *moves])
        else:
            moves.append(replace(edge, seq=len(moves) + 1))
        return self

    def find_position(self, fen: str) -> PositionNode | None:
        moves = self._nodes.get(fen)
        if moves is None:
            return None
        return PositionNode(moves=tuple(moves))

    def primary_move(self, fen: str) -> MoveEdge | None:
        moves = self._nodes.get(fen)
        return moves[0] if moves else None

    @property
    def nodes(self) -> Mapping[str, PositionNode]:
        """Read-only snapshot of every node."""
        return MappingProxyType(self.snapshot())

    def snapshot(self) -> dict[str, PositionNode]:
        return {fen: PositionNode(moves=tuple(moves)) for fen, moves in self._nodes.items()}

    def __contains__(self, fen: object) -> bool:
        return fen in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def to_document(self) -> dict[str, object]:
        """Return the ``{rootPosition, nodes}`` persistence document."""
        return {
            "rootPosition": self.root_position,
            "nodes": {
                fen: {"moves": [m.to_dict() for m in moves]} for fen, moves in self._nodes.items()
            },
        }

    @classmethod
    def from_document(cls, document: Mapping[str, object]) -> MoveGraph:
        root = document.get("rootPosition")
        graph = cls(str(root) if root else None)
        nodes = document.get("nodes") or {}
        if not isinstance(nodes, Mapping):
            raise ValueError("Invalid graph document: nodes must be an object")
        for fen, node in nodes.items():
            raw_moves = node.get("moves", []) if isinstance(node, Mapping) else []
            edges = sorted((MoveEdge.from_dict(m) for m in raw_moves), key=lambda m: m.seq)
            for edge in edges:
                graph.add_move(str(fen), edge, is_primary=False)
        return graph


def _resequence(moves: list[MoveEdge]) -> list[MoveEdge]:
    return [replace(m, seq=index) for index, m in enumerate(moves, start=1)]
