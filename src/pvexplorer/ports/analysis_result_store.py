"""Port interface for analysis result persistence."""

from __future__ import annotations

from typing import Protocol

from pvexplorer.engine.analysis_result import AnalysisResult


class AnalysisResultStore(Protocol):
    """Persist engine results keyed by position fingerprint and engine slug."""

    def store_analysis_result(self, result: AnalysisResult, engine_slug: str) -> None:
        """Insert or replace the result for ``(result.fingerprint, engine_slug)``."""

    def get_best_analysis_for_position(self, fen: str) -> dict[str, object] | None:
        """Return the deepest stored analysis for ``fen`` across engines."""
