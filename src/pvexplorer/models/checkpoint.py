from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CHECKPOINT_VERSION = 1


class Checkpoint(BaseModel):
    """Versioned, timestamped snapshot of one exploration session.

    Attributes:
        version: Record format version.
        session_id: Session the snapshot belongs to.
        strategy_name: Traversal strategy that produced the state.
        project_name: Owning project.
        root_position: Fingerprint the session started from.
        state: Output of ``serialize_state``.
        config: Settings in effect when the snapshot was taken.
        metadata: Free-form extras such as the engine slug.
        saved_at: UTC write time.

    Example:
        >>> Checkpoint(session_id="s1", strategy_name="pv-explore", project_name="p",
        ...            root_position="8/8/8/8/8/8/8/8 w - -", saved_at=Now.as_datetime())
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    version: int = CHECKPOINT_VERSION
    session_id: str
    strategy_name: str
    project_name: str
    root_position: str
    state: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    saved_at: datetime


class CheckpointSummary(BaseModel):
    """Newest snapshot of a session, as listed by the checkpoint service."""

    session_id: str
    strategy_name: str
    project_name: str
    root_position: str
    saved_at: datetime
    analyzed: int = 0
    discovered: int = 0
    completion_percentage: int = 0
    frontier_size: int = 0
    path: str


class CheckpointLoadResult(BaseModel):
    """Outcome of loading a session; ``checkpoint`` is set only on success."""

    success: bool
    checkpoint: Checkpoint | None = None
    error: str | None = None
    age_s: float | None = None
    completion_percentage: int | None = None
    estimated_remaining_s: float | None = None
