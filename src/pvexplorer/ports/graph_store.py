"""Port interface for move graph persistence."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class GraphStore(Protocol):
    """Persist the ``{rootPosition, nodes}`` move graph document."""

    def save_graph(self, document: Mapping[str, object]) -> None:
        """Replace the stored graph with ``document``."""
