"""Tests for UCI line classification."""

from __future__ import annotations

from pvexplorer.engine.uci_parser import parse_uci_line
from pvexplorer.engine.uci_types import (
    UciBestMove,
    UciInfoCurrMove,
    UciInfoPV,
    UciInfoString,
    UciScore,
)


def test_parses_principal_variation_update() -> None:
    event = parse_uci_line(
        "info depth 12 seldepth 18 multipv 2 score cp -35 nodes 123456 nps 987654 "
        "tbhits 0 hashfull 12 time 125 pv d2d4 g8f6 c2c4"
    )
    assert isinstance(event, UciInfoPV)
    assert event.depth == 12
    assert event.seldepth == 18
    assert event.multipv == 2
    assert event.score == UciScore(kind="cp", value=-35)
    assert event.nodes == 123456
    assert event.nps == 987654
    assert event.tbhits == 0
    assert event.hashfull == 12
    assert event.time_ms == 125
    assert event.pv == ["d2d4", "g8f6", "c2c4"]


def test_parses_mate_score_and_bound_flags() -> None:
    event = parse_uci_line("info depth 30 score mate -3 lowerbound pv h7h8q")
    assert isinstance(event, UciInfoPV)
    assert event.score == UciScore(kind="mate", value=-3)
    assert event.pv == ["h7h8q"]


def test_pv_update_without_score_is_still_a_pv_update() -> None:
    event = parse_uci_line("info depth 3 pv e2e4")
    assert isinstance(event, UciInfoPV)
    assert event.score is None


def test_malformed_integer_drops_only_that_attribute() -> None:
    event = parse_uci_line("info depth x seldepth 7 nodes 1e5 score cp ?? pv e2e4 e7e5")
    assert isinstance(event, UciInfoPV)
    assert event.depth is None
    assert event.seldepth == 7
    assert event.nodes is None
    assert event.score is None
    assert event.pv == ["e2e4", "e7e5"]


def test_unknown_tokens_are_ignored() -> None:
    event = parse_uci_line("info depth 5 wdl 500 300 200 pv e2e4")
    assert isinstance(event, UciInfoPV)
    assert event.depth == 5
    assert event.pv == ["e2e4"]


def test_parses_current_move_update() -> None:
    event = parse_uci_line("info depth 9 currmove g1f3 currmovenumber 4")
    assert event == UciInfoCurrMove(currmove="g1f3", depth=9, currmovenumber=4)


def test_parses_info_string() -> None:
    event = parse_uci_line("info string NNUE evaluation using nn-1234.nnue")
    assert event == UciInfoString(text="NNUE evaluation using nn-1234.nnue")


def test_parses_best_move_with_ponder() -> None:
    assert parse_uci_line("bestmove e2e4 ponder e7e5") == UciBestMove("e2e4", "e7e5")


def test_best_move_none_yields_no_move() -> None:
    assert parse_uci_line("bestmove (none)") == UciBestMove(None, None)


def test_other_lines_are_not_classified() -> None:
    assert parse_uci_line("readyok") is None
    assert parse_uci_line("id name Stockfish 16") is None
    assert parse_uci_line("info depth 4 nodes 100") is None
    assert parse_uci_line("") is None
    assert parse_uci_line("bestmovex e2e4") is None
