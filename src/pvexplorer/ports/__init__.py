from pvexplorer.ports.analysis_result_store import AnalysisResultStore
from pvexplorer.ports.graph_store import GraphStore
from pvexplorer.ports.position_analyzer import PositionAnalyzerPort

__all__ = ["AnalysisResultStore", "GraphStore", "PositionAnalyzerPort"]
