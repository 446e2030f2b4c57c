"""Session snapshots for crash recovery and resume."""

from pvexplorer.checkpoint.build_checkpoint_filename__checkpoint import (
    build_checkpoint_filename,
    format_checkpoint_timestamp,
)
from pvexplorer.checkpoint.service import CheckpointService, SessionSnapshot

__all__ = [
    "CheckpointService",
    "SessionSnapshot",
    "build_checkpoint_filename",
    "format_checkpoint_timestamp",
]
