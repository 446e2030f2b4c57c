from __future__ import annotations

import math


def compute_max_depth(
    observed_depth: int,
    depth_ratio: float,
    max_ply_distance: int | None = None,
) -> int:
    """Return the ply budget for a session.

    ``floor(observed_depth * depth_ratio)``, capped by ``max_ply_distance``
    when one is configured. Never negative.
    """
    budget = max(0, math.floor(observed_depth * depth_ratio))
    if max_ply_distance:
        budget = min(budget, max_ply_distance)
    return budget
