"""Tests for the engine-facing analyzer wrapper."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from pvexplorer.config import EngineSettings
from pvexplorer.engine.position_analyzer import PositionAnalyzer
from pvexplorer.engine.uci_types import (
    AnalysisOutput,
    EngineInfo,
    EngineStatus,
    UciBestMove,
    UciInfoPV,
    UciScore,
)
from pvexplorer.errors import EngineConnectionError, EngineTimeoutError

FINGERPRINT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"


def _client(status: EngineStatus = EngineStatus.IDLE) -> MagicMock:
    client = MagicMock()
    client.status = status
    client.engine_info = EngineInfo(name="FakeFish", version="1.2")
    client.connect.return_value = client.engine_info
    client.analyze.return_value = AnalysisOutput(
        infos=[UciInfoPV(pv=["e2e4", "e7e5"], depth=9, score=UciScore("cp", 25))],
        best_move=UciBestMove("e2e4"),
    )
    return client


class PositionAnalyzerTests(unittest.TestCase):
    def test_analyze_sends_full_fen_and_reduces_output(self) -> None:
        client = _client()
        analyzer = PositionAnalyzer(client, depth=12, multipv=2, timeout_s=5)

        result = analyzer.analyze(FINGERPRINT)

        client.analyze.assert_called_once_with(
            f"{FINGERPRINT} 0 1",
            depth=12,
            movetime_ms=None,
            multipv=2,
            timeout_s=5,
        )
        self.assertEqual(result.fingerprint, FINGERPRINT)
        self.assertEqual(result.depth, 9)
        self.assertEqual(result.main_pv, ["e2e4", "e7e5"])
        client.connect.assert_not_called()

    def test_depth_override_and_movetime_fallback(self) -> None:
        client = _client()
        analyzer = PositionAnalyzer(client, depth=None, movetime_ms=250)

        analyzer.analyze(FINGERPRINT)
        self.assertEqual(client.analyze.call_args.kwargs["movetime_ms"], 250)
        self.assertIsNone(client.analyze.call_args.kwargs["depth"])

        analyzer.analyze(FINGERPRINT, depth=18)
        self.assertEqual(client.analyze.call_args.kwargs["depth"], 18)
        self.assertIsNone(client.analyze.call_args.kwargs["movetime_ms"])

    def test_reconnects_after_engine_error(self) -> None:
        client = _client(EngineStatus.ERROR)
        PositionAnalyzer(client, depth=5).analyze(FINGERPRINT)
        client.connect.assert_called_once_with()

    def test_connects_when_disconnected(self) -> None:
        client = _client(EngineStatus.DISCONNECTED)
        analyzer = PositionAnalyzer(client, depth=5)
        self.assertEqual(analyzer.ensure_connected(), client.engine_info)
        client.connect.assert_called_once_with()

    def test_handshake_timeout_becomes_connection_error(self) -> None:
        client = _client(EngineStatus.ERROR)
        client.connect.side_effect = EngineTimeoutError("no uciok")
        with self.assertRaises(EngineConnectionError):
            PositionAnalyzer(client, depth=5).analyze(FINGERPRINT)
        client.analyze.assert_not_called()

    def test_engine_slug_uses_handshake_identity(self) -> None:
        self.assertEqual(PositionAnalyzer(_client()).engine_slug, "fakefish-1.2")

    def test_context_manager_connects_and_disconnects(self) -> None:
        client = _client(EngineStatus.DISCONNECTED)
        with PositionAnalyzer(client) as analyzer:
            self.assertIs(analyzer.client, client)
        client.connect.assert_called_once_with()
        client.disconnect.assert_called_once_with()

    def test_from_settings_copies_limits(self) -> None:
        settings = EngineSettings(
            path="/usr/bin/stockfish",
            threads=2,
            hash_mb=64,
            multipv=3,
            depth=14,
            movetime_ms=None,
            analysis_timeout_s=30,
        )
        analyzer = PositionAnalyzer.from_settings(settings)
        self.assertEqual(analyzer.depth, 14)
        self.assertEqual(analyzer.multipv, 3)
        self.assertEqual(analyzer.timeout_s, 30)
        self.assertEqual(analyzer.client.status, EngineStatus.DISCONNECTED)


if __name__ == "__main__":
    unittest.main()
