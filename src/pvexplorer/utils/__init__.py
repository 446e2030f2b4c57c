"""Utility exports for the pvexplorer package."""

from .generate_id import generate_id
from .hasher import Hasher
from .logger import funclogger, get_logger, set_level
from .now import Now
from .write_json_atomic import write_json_atomic

__all__ = [
    "Hasher",
    "Now",
    "funclogger",
    "generate_id",
    "get_logger",
    "set_level",
    "write_json_atomic",
]
