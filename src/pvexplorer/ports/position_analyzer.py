"""Port interface for single-position engine analysis."""

from __future__ import annotations

from typing import Protocol

from pvexplorer.engine.analysis_result import AnalysisResult


class PositionAnalyzerPort(Protocol):
    """Analyze one fingerprint at a time."""

    @property
    def engine_slug(self) -> str:
        """Identity of the engine producing results."""

    def analyze(self, fingerprint: str, depth: int | None = None) -> AnalysisResult:
        """Return the analysis of ``fingerprint``.

        Raises ``EngineConnectionError`` when the engine cannot be started and
        ``EngineTimeoutError``, ``EngineTerminatedError``, ``EngineBusyError``
        or ``EmptyAnalysisError`` when only this position failed.
        """
