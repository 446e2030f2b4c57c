"""Typed events and options for the UCI line protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

ScoreKind = Literal["cp", "mate"]


class EngineStatus(StrEnum):
    DISCONNECTED = "disconnected"
    IDLE = "idle"
    ANALYZING = "analyzing"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class UciScore:
    kind: ScoreKind
    value: int


@dataclass(slots=True)
class UciInfoPV:
    """``info ... pv ...`` line: a principal-variation update."""

    pv: list[str] = field(default_factory=list)
    depth: int | None = None
    seldepth: int | None = None
    multipv: int | None = None
    score: UciScore | None = None
    time_ms: int | None = None
    nodes: int | None = None
    nps: int | None = None
    tbhits: int | None = None
    hashfull: int | None = None


@dataclass(slots=True)
class UciInfoCurrMove:
    """``info ... currmove ...`` line: the move currently being searched."""

    currmove: str
    depth: int | None = None
    currmovenumber: int | None = None


@dataclass(frozen=True, slots=True)
class UciBestMove:
    best_move: str | None
    ponder: str | None = None


@dataclass(frozen=True, slots=True)
class UciInfoString:
    text: str


UciOutput = UciInfoPV | UciInfoCurrMove | UciBestMove | UciInfoString


@dataclass(frozen=True, slots=True)
class EngineInfo:
    """Identity reported during the ``uci`` handshake."""

    name: str | None = None
    author: str | None = None
    version: str | None = None
    options: tuple[str, ...] = ()


@dataclass(slots=True)
class AnalysisOutput:
    """Everything one ``go`` produced before its ``bestmove``."""

    infos: list[UciInfoPV]
    best_move: UciBestMove | None
