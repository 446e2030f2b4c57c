import shutil
import tempfile
import unittest
from pathlib import Path

from pvexplorer.db.duckdb_analysis_store import DuckDbAnalysisStore
from pvexplorer.engine.analysis_result import AnalysisResult
from pvexplorer.engine.uci_types import UciScore
from pvexplorer.errors import PersistenceError

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"
AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq -"


def _result(fen: str, depth: int, pv: str, cp: int = 20) -> AnalysisResult:
    return AnalysisResult(
        fingerprint=fen,
        depth=depth,
        score=UciScore("cp", cp),
        principal_variations=[pv],
        selective_depth=depth + 4,
        time_ms=1200,
        nodes=450000,
        nodes_per_second=375000,
        best_move=pv.split()[0],
    )


class DuckDbAnalysisStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.store = DuckDbAnalysisStore.open(self.tmp_dir / "nested" / "analysis.duckdb")

    def tearDown(self) -> None:
        self.store.close()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_store_and_fetch_round_trip(self) -> None:
        self.store.store_analysis_result(_result(START, 18, "e2e4 e7e5 g1f3"), "stockfish-16.1")

        row = self.store.get_analysis(START, "stockfish-16.1")

        assert row is not None
        self.assertEqual(row["fen"], START)
        self.assertEqual(row["engine_name"], "stockfish")
        self.assertEqual(row["engine_version"], "16.1")
        self.assertEqual(row["depth"], 18)
        self.assertEqual(row["seldepth"], 22)
        self.assertEqual(row["score_type"], "cp")
        self.assertEqual(row["score"], 20)
        self.assertEqual(row["principal_variations"], ["e2e4 e7e5 g1f3"])
        self.assertEqual(row["best_move"], "e2e4")
        self.assertIsNone(self.store.get_analysis(START, "other-1.0"))

    def test_upsert_replaces_existing_row(self) -> None:
        self.store.store_analysis_result(_result(START, 10, "d2d4"), "stockfish-16.1")
        first = self.store.get_analysis(START, "stockfish-16.1")
        assert first is not None
        self.store.store_analysis_result(_result(START, 20, "e2e4", cp=35), "stockfish-16.1")

        row = self.store.get_analysis(START, "stockfish-16.1")
        assert row is not None
        self.assertIsNotNone(row["updated_at"])
        self.assertGreaterEqual(row["updated_at"], first["updated_at"])
        self.assertEqual(row["depth"], 20)
        self.assertEqual(row["score"], 35)
        self.assertEqual(
            self.store.get_stats(),
            {"total_engines": 1, "total_positions": 1, "total_analyses": 1},
        )

    def test_best_analysis_prefers_deepest_engine(self) -> None:
        self.store.store_analysis_result(_result(START, 24, "e2e4"), "stockfish-16.1")
        self.store.store_analysis_result(_result(START, 12, "d2d4"), "komodo-dragon-3")
        self.store.store_analysis_result(_result(AFTER_E4, 30, "c7c5"), "komodo-dragon-3")

        best = self.store.get_best_analysis_for_position(START)
        assert best is not None
        self.assertEqual(best["engine_slug"], "stockfish-16.1")
        self.assertEqual(best["depth"], 24)
        self.assertIsNone(self.store.get_best_analysis_for_position("8/8/8/8/8/8/8/8 w - -"))
        self.assertEqual(
            self.store.get_stats(),
            {"total_engines": 2, "total_positions": 2, "total_analyses": 3},
        )

    def test_mate_score_and_empty_pv_are_stored(self) -> None:
        result = AnalysisResult(fingerprint=AFTER_E4, depth=1, score=UciScore("mate", -2))
        self.store.store_analysis_result(result, "stockfish-16.1")
        row = self.store.get_analysis(AFTER_E4, "stockfish-16.1")
        assert row is not None
        self.assertEqual(row["score_type"], "mate")
        self.assertEqual(row["score"], -2)
        self.assertEqual(row["principal_variations"], [])

    def test_closed_store_raises_persistence_error(self) -> None:
        self.store.close()
        with self.assertRaises(PersistenceError):
            self.store.store_analysis_result(_result(START, 5, "e2e4"), "stockfish-16.1")
        self.store = DuckDbAnalysisStore.open(":memory:")

    def test_empty_fingerprint_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.store.store_analysis_result(_result("", 5, "e2e4"), "stockfish-16.1")


if __name__ == "__main__":
    unittest.main()
