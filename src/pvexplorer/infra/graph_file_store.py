"""JSON file graph store."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pvexplorer.domain.move_graph import MoveGraph
from pvexplorer.ports.graph_store import GraphStore
from pvexplorer.utils import write_json_atomic
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class JsonGraphStore(GraphStore):
    """Keep the move graph document in a single JSON file."""

    path: Path

    def save_graph(self, document: Mapping[str, object]) -> None:
        write_json_atomic(self.path, dict(document))

    def load_document(self) -> dict[str, object] | None:
        """Return the stored document, or None when the file does not exist yet."""
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid graph document in {self.path}")
        return payload

    def load(self) -> MoveGraph | None:
        document = self.load_document()
        if document is None:
            return None
        graph = MoveGraph.from_document(document)
        logger.debug("Loaded graph with %s positions from %s", len(graph), self.path)
        return graph
