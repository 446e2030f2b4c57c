"""Classify raw engine output lines into typed events."""

from __future__ import annotations

from collections import deque

from pvexplorer.engine.uci_types import (
    UciBestMove,
    UciInfoCurrMove,
    UciInfoPV,
    UciInfoString,
    UciOutput,
    UciScore,
)

_INT_ATTRS = {
    "depth": "depth",
    "seldepth": "seldepth",
    "multipv": "multipv",
    "time": "time_ms",
    "nodes": "nodes",
    "nps": "nps",
    "tbhits": "tbhits",
    "hashfull": "hashfull",
}
_SCORE_KINDS = ("cp", "mate")
_SCORE_BOUNDS = ("lowerbound", "upperbound")


def _to_int(token: str | None) -> int | None:
    if token is None:
        return None
    try:
        return int(token)
    except ValueError:
        return None


def parse_uci_line(line: str) -> UciOutput | None:
    """Return the event for ``line`` or None when it carries nothing we track."""
    text = line.strip()
    if text.startswith("info string"):
        return UciInfoString(text=text[len("info string") :].strip())
    if text.startswith("info "):
        return _parse_info(text)
    if text == "bestmove" or text.startswith("bestmove "):
        return _parse_best_move(text)
    return None


def _parse_info(text: str) -> UciInfoPV | UciInfoCurrMove | None:
    tokens = deque(text.split())
    values: dict[str, object] = {}
    pv: list[str] | None = None
    currmove: str | None = None
    while tokens:
        token = tokens.popleft()
        if token in _INT_ATTRS:
            value = _to_int(tokens.popleft()) if tokens else None
            if value is not None:
                values[_INT_ATTRS[token]] = value
        elif token == "score":
            score = _parse_score(tokens)
            if score is not None:
                values["score"] = score
        elif token == "currmove":
            currmove = tokens.popleft() if tokens else None
        elif token == "currmovenumber":
            value = _to_int(tokens.popleft()) if tokens else None
            if value is not None:
                values["currmovenumber"] = value
        elif token == "pv":
            pv = list(tokens)
            tokens.clear()
    if pv is not None:
        values.pop("currmovenumber", None)
        return UciInfoPV(pv=pv, **values)  # type: ignore[arg-type]
    if currmove is not None:
        return UciInfoCurrMove(
            currmove=currmove,
            depth=values.get("depth"),  # type: ignore[arg-type]
            currmovenumber=values.get("currmovenumber"),  # type: ignore[arg-type]
        )
    return None


def _parse_score(tokens: deque[str]) -> UciScore | None:
    if not tokens:
        return None
    kind = tokens.popleft()
    raw = tokens.popleft() if tokens else None
    while tokens and tokens[0] in _SCORE_BOUNDS:
        tokens.popleft()
    value = _to_int(raw)
    if kind not in _SCORE_KINDS or value is None:
        return None
    return UciScore(kind=kind, value=value)  # type: ignore[arg-type]


def _parse_best_move(text: str) -> UciBestMove:
    tokens = text.split()
    best: str | None = None
    ponder: str | None = None
    for index, token in enumerate(tokens[:-1]):
        if token == "bestmove":
            best = tokens[index + 1]
        elif token == "ponder":
            ponder = tokens[index + 1]
    if best == "(none)":
        best = None
    return UciBestMove(best_move=best, ponder=ponder)
