"""UCI engine protocol client and position analysis."""

from pvexplorer.engine.analysis_result import AnalysisResult, reduce_analysis_output
from pvexplorer.engine.build_engine_slug__engine import build_engine_slug, parse_engine_slug
from pvexplorer.engine.position_analyzer import PositionAnalyzer
from pvexplorer.engine.uci_client import UciClient
from pvexplorer.engine.uci_parser import parse_uci_line
from pvexplorer.engine.uci_types import (
    AnalysisOutput,
    EngineInfo,
    EngineStatus,
    UciBestMove,
    UciInfoCurrMove,
    UciInfoPV,
    UciInfoString,
    UciScore,
)

__all__ = [
    "AnalysisOutput",
    "AnalysisResult",
    "EngineInfo",
    "EngineStatus",
    "PositionAnalyzer",
    "UciBestMove",
    "UciClient",
    "UciInfoCurrMove",
    "UciInfoPV",
    "UciInfoString",
    "UciScore",
    "build_engine_slug",
    "parse_engine_slug",
    "parse_uci_line",
]
