from __future__ import annotations

import json
from pathlib import Path

import pytest

from pvexplorer.domain.move_graph import MoveEdge, MoveGraph
from pvexplorer.errors import PersistenceError
from pvexplorer.infra.graph_file_store import JsonGraphStore

ROOT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"
AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq -"


def test_missing_file_loads_as_none(tmp_path: Path) -> None:
    store = JsonGraphStore(tmp_path / "graph.json")
    assert store.load_document() is None
    assert store.load() is None


def test_save_then_load_restores_graph(tmp_path: Path) -> None:
    graph = MoveGraph(ROOT)
    graph.add_move(ROOT, MoveEdge("e4", AFTER_E4))
    store = JsonGraphStore(tmp_path / "data" / "graph.json")

    store.save_graph(graph.to_document())

    loaded = store.load()
    assert loaded is not None
    assert loaded.root_position == ROOT
    assert loaded.snapshot() == graph.snapshot()
    assert json.loads(store.path.read_text())["rootPosition"] == ROOT


def test_non_object_document_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "graph.json"
    path.write_text("[1, 2, 3]")
    with pytest.raises(ValueError):
        JsonGraphStore(path).load()


def test_unwritable_location_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(PersistenceError):
        JsonGraphStore(blocker / "graph.json").save_graph({"rootPosition": ROOT, "nodes": {}})
