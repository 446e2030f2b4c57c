"""One-position analysis on top of ``UciClient``."""

from __future__ import annotations

from contextlib import AbstractContextManager

from pvexplorer.config import EngineSettings
from pvexplorer.domain.fingerprint import to_full_fen
from pvexplorer.engine.analysis_result import AnalysisResult, reduce_analysis_output
from pvexplorer.engine.build_engine_slug__engine import build_engine_slug
from pvexplorer.engine.uci_client import UciClient
from pvexplorer.engine.uci_types import EngineInfo, EngineStatus
from pvexplorer.errors import EngineConnectionError, EngineTimeoutError
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)


class PositionAnalyzer(AbstractContextManager["PositionAnalyzer"]):
    """Analyze fingerprints, restarting the engine after a failure.

    A failed (re)start surfaces as ``EngineConnectionError``; every other
    engine error belongs to the position being analyzed.
    """

    def __init__(
        self,
        client: UciClient,
        *,
        depth: int | None = None,
        movetime_ms: int | None = None,
        multipv: int = 1,
        timeout_s: float | None = None,
    ) -> None:
        self.client = client
        self.depth = depth
        self.movetime_ms = movetime_ms
        self.multipv = multipv
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> PositionAnalyzer:
        client = UciClient(
            settings.path,
            options=settings.uci_options(),
            startup_timeout_s=settings.startup_timeout_s,
            analysis_timeout_s=settings.analysis_timeout_s,
            quit_grace_s=settings.quit_grace_s,
            terminate_grace_s=settings.terminate_grace_s,
            kill_grace_s=settings.kill_grace_s,
        )
        return cls(
            client,
            depth=settings.depth,
            movetime_ms=settings.movetime_ms,
            multipv=settings.multipv,
            timeout_s=settings.analysis_timeout_s,
        )

    def __enter__(self) -> PositionAnalyzer:
        self.ensure_connected()
        return self

    def __exit__(self, _exc_type, _exc, _exc_tb) -> None:
        self.close()

    @property
    def engine_info(self) -> EngineInfo:
        return self.client.engine_info

    @property
    def engine_slug(self) -> str:
        return build_engine_slug(self.client.engine_info)

    def ensure_connected(self) -> EngineInfo:
        status = self.client.status
        if status in (EngineStatus.IDLE, EngineStatus.ANALYZING):
            return self.client.engine_info
        if status == EngineStatus.ERROR:
            logger.warning("Engine in error state; restarting")
        try:
            return self.client.connect()
        except EngineTimeoutError as exc:
            raise EngineConnectionError(f"Engine handshake failed: {exc}") from exc

    def analyze(self, fingerprint: str, depth: int | None = None) -> AnalysisResult:
        """Analyze ``fingerprint`` at ``depth`` (or the configured limit)."""
        self.ensure_connected()
        search_depth = depth if depth is not None else self.depth
        output = self.client.analyze(
            to_full_fen(fingerprint),
            depth=search_depth,
            movetime_ms=None if search_depth is not None else self.movetime_ms,
            multipv=self.multipv,
            timeout_s=self.timeout_s,
        )
        return reduce_analysis_output(fingerprint, output)

    def close(self) -> None:
        self.client.disconnect()
