"""Custom error types used in pvexplorer."""


class PvExplorerError(Exception):
    """Base class for exploration errors."""


class EngineConnectionError(PvExplorerError, ConnectionError):
    """The engine process could not be spawned or exited during startup."""


class EngineBusyError(PvExplorerError):
    """An analysis was requested while another one is in flight."""


class EngineTimeoutError(PvExplorerError, TimeoutError):
    """Expected engine output never arrived."""


class EngineTerminatedError(PvExplorerError):
    """The engine process went away while a request was pending."""


class EmptyAnalysisError(PvExplorerError):
    """The engine finished a search without reporting a main line."""


class InvalidMoveError(PvExplorerError, ValueError):
    """A principal variation contains a move that is illegal in its position."""


class PersistenceError(PvExplorerError, OSError):
    """A checkpoint, graph or result-store write failed."""


__all__ = [
    "EmptyAnalysisError",
    "EngineBusyError",
    "EngineConnectionError",
    "EngineTerminatedError",
    "EngineTimeoutError",
    "InvalidMoveError",
    "PersistenceError",
    "PvExplorerError",
]
