from pvexplorer.models.checkpoint import (
    CHECKPOINT_VERSION,
    Checkpoint,
    CheckpointLoadResult,
    CheckpointSummary,
)

__all__ = [
    "CHECKPOINT_VERSION",
    "Checkpoint",
    "CheckpointLoadResult",
    "CheckpointSummary",
]
