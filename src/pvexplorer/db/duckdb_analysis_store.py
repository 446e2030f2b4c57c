"""DuckDB-backed analysis result store."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

import duckdb
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pvexplorer.engine.analysis_result import AnalysisResult
from pvexplorer.engine.build_engine_slug__engine import parse_engine_slug
from pvexplorer.errors import PersistenceError
from pvexplorer.utils import Hasher
from pvexplorer.utils.logger import get_logger

logger = get_logger(__name__)

ENGINES_SCHEMA = """
CREATE TABLE IF NOT EXISTS engines (
    engine_id BIGINT PRIMARY KEY,
    slug TEXT NOT NULL,
    name TEXT NOT NULL,
    version TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

POSITIONS_SCHEMA = """
CREATE TABLE IF NOT EXISTS positions (
    position_id BIGINT PRIMARY KEY,
    fen TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

ANALYSIS_SCHEMA = """
CREATE TABLE IF NOT EXISTS analysis (
    position_id BIGINT NOT NULL,
    engine_id BIGINT NOT NULL,
    depth INTEGER NOT NULL,
    seldepth INTEGER,
    multipv INTEGER,
    time_ms BIGINT,
    nodes BIGINT,
    nps BIGINT,
    score_type TEXT,
    score INTEGER,
    pvs TEXT NOT NULL,
    best_move TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (position_id, engine_id)
);
"""

_UPSERT_ENGINE = """
INSERT INTO engines (engine_id, slug, name, version)
VALUES (?, ?, ?, ?)
ON CONFLICT (engine_id) DO UPDATE SET name = excluded.name, version = excluded.version
"""

_UPSERT_POSITION = """
INSERT INTO positions (position_id, fen)
VALUES (?, ?)
ON CONFLICT (position_id) DO NOTHING
"""

_UPSERT_ANALYSIS = """
INSERT INTO analysis (
    position_id, engine_id, depth, seldepth, multipv, time_ms, nodes, nps,
    score_type, score, pvs, best_move, updated_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, now())
ON CONFLICT (position_id, engine_id) DO UPDATE SET
    depth = excluded.depth,
    seldepth = excluded.seldepth,
    multipv = excluded.multipv,
    time_ms = excluded.time_ms,
    nodes = excluded.nodes,
    nps = excluded.nps,
    score_type = excluded.score_type,
    score = excluded.score,
    pvs = excluded.pvs,
    best_move = excluded.best_move,
    updated_at = now()
"""

_ANALYSIS_SELECT = """
SELECT
    p.fen AS fen,
    e.slug AS engine_slug,
    e.name AS engine_name,
    e.version AS engine_version,
    a.depth, a.seldepth, a.multipv, a.time_ms, a.nodes, a.nps,
    a.score_type, a.score, a.pvs, a.best_move, a.updated_at
FROM analysis a
JOIN positions p ON a.position_id = p.position_id
JOIN engines e ON a.engine_id = e.engine_id
"""


def _position_id(fen: str) -> int:
    if not fen:
        raise ValueError("Position fingerprint is required to build a position id.")
    return Hasher.hash_to_int(f"position|{fen}")


def _engine_id(slug: str) -> int:
    return Hasher.hash_to_int(f"engine|{slug}")


def _fetch_dicts(result: duckdb.DuckDBPyConnection) -> list[dict[str, object]]:
    columns = [desc[0] for desc in result.description]
    rows = [dict(zip(columns, row, strict=True)) for row in result.fetchall()]
    for row in rows:
        row["principal_variations"] = json.loads(str(row.pop("pvs") or "[]"))
    return rows


def get_connection(db_path: Path | str) -> duckdb.DuckDBPyConnection:
    """Open ``db_path`` (``:memory:`` allowed), creating parent directories."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Opening DuckDB at %s", db_path)
    return duckdb.connect(str(db_path))


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(ENGINES_SCHEMA)
    conn.execute(POSITIONS_SCHEMA)
    conn.execute(ANALYSIS_SCHEMA)


class DuckDbAnalysisStore:
    """Upsert and query analysis results keyed by fingerprint and engine slug.

    All statements run under one lock; the connection is shared by the
    exploration thread and any reader.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        init_schema(conn)

    @classmethod
    def open(cls, db_path: Path | str) -> DuckDbAnalysisStore:
        return cls(get_connection(db_path))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def store_analysis_result(self, result: AnalysisResult, engine_slug: str) -> None:
        """Insert or replace the stored analysis for this position and engine."""
        try:
            self._upsert(result, engine_slug)
        except duckdb.Error as exc:
            raise PersistenceError(
                f"Failed to store analysis for {result.fingerprint}: {exc}"
            ) from exc

    @retry(
        retry=retry_if_exception_type(duckdb.TransactionException),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    def _upsert(self, result: AnalysisResult, engine_slug: str) -> None:
        name, version = parse_engine_slug(engine_slug)
        position_id = _position_id(result.fingerprint)
        engine_id = _engine_id(engine_slug)
        score = result.score
        with self._lock:
            self._conn.execute("BEGIN TRANSACTION")
            try:
                self._conn.execute(_UPSERT_ENGINE, [engine_id, engine_slug, name, version])
                self._conn.execute(_UPSERT_POSITION, [position_id, result.fingerprint])
                self._conn.execute(
                    _UPSERT_ANALYSIS,
                    [
                        position_id,
                        engine_id,
                        result.depth,
                        result.selective_depth,
                        result.multipv_rank,
                        result.time_ms,
                        result.nodes,
                        result.nodes_per_second,
                        score.kind if score else None,
                        score.value if score else None,
                        json.dumps(result.principal_variations),
                        result.best_move,
                    ],
                )
                self._conn.execute("COMMIT")
            except duckdb.Error:
                self._conn.execute("ROLLBACK")
                raise

    def get_analysis(self, fen: str, engine_slug: str) -> dict[str, object] | None:
        with self._lock:
            rows = _fetch_dicts(
                self._conn.execute(
                    f"{_ANALYSIS_SELECT} WHERE p.fen = ? AND e.slug = ?",
                    [fen, engine_slug],
                )
            )
        return rows[0] if rows else None

    def get_best_analysis_for_position(self, fen: str) -> dict[str, object] | None:
        """Deepest analysis of ``fen`` across engines, newest first on ties."""
        with self._lock:
            rows = _fetch_dicts(
                self._conn.execute(
                    f"{_ANALYSIS_SELECT} WHERE p.fen = ? "
                    "ORDER BY a.depth DESC, a.updated_at DESC LIMIT 1",
                    [fen],
                )
            )
        return rows[0] if rows else None

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            counts = {
                table: self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()  # noqa: S608
                for table in ("engines", "positions", "analysis")
            }
        return {
            "total_engines": int(counts["engines"][0]) if counts["engines"] else 0,
            "total_positions": int(counts["positions"][0]) if counts["positions"] else 0,
            "total_analyses": int(counts["analysis"][0]) if counts["analysis"] else 0,
        }
