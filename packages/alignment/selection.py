"""Critical wall selection: pick the walls that best constrain an alignment.

Given the wall a user selected first (the *primary* wall), every other wall
of the same model is scored against it:

* **perpendicularity** – ``1 - |n_i · n_primary|``; perpendicular walls
  constrain a second axis, parallel ones add nothing.
* **area** – ``area_i / max_area``; large walls are measured more reliably.
* **adjacency** – 1.0 when a corner of wall *i* touches a corner of the
  primary wall (within 1 cm), else 0.0.

The weighted total ranks the candidates; ties keep the original order.
"""

from __future__ import annotations

import logging

from packages.alignment.geometry import (
    ADJACENCY_TOLERANCE,
    perpendicularity,
    vertices_within,
    wall_area,
)
from packages.core.types import Wall, WallScore

logger = logging.getLogger(__name__)

PERPENDICULARITY_WEIGHT = 0.5
AREA_WEIGHT = 0.3
ADJACENCY_WEIGHT = 0.2
DEFAULT_MAX_CRITICAL_WALLS = 3


def score_wall(
    wall: Wall,
    primary: Wall,
    max_area: float,
    *,
    index: int = -1,
    adjacency_tolerance: float = ADJACENCY_TOLERANCE,
) -> WallScore:
    """Score one candidate wall against the primary wall."""
    perp = perpendicularity(wall.normal, primary.normal)
    area = min(wall_area(wall) / max_area, 1.0) if max_area > 0 else 0.0
    adjacency = 1.0 if vertices_within(wall.vertices, primary.vertices, adjacency_tolerance) else 0.0
    total = PERPENDICULARITY_WEIGHT * perp + AREA_WEIGHT * area + ADJACENCY_WEIGHT * adjacency
    return WallScore(
        wall_index=index,
        wall_id=wall.id,
        perpendicularity=perp,
        area=area,
        adjacency=adjacency,
        total=total,
    )


def score_walls(primary_index: int, walls: list[Wall]) -> list[WallScore]:
    """Score breakdown for every non-primary wall, best first.

    Returns an empty list for an empty wall set or an out-of-range index.
    """
    if not walls:
        return []
    if not 0 <= primary_index < len(walls):
        logger.error("Invalid primary wall index %d (have %d walls)", primary_index, len(walls))
        return []

    primary = walls[primary_index]
    max_area = max(wall_area(w) for w in walls)
    scores = [
        score_wall(wall, primary, max_area, index=i)
        for i, wall in enumerate(walls)
        if i != primary_index
    ]
    # sorted() is stable, so equal totals keep their input order
    return sorted(scores, key=lambda s: -s.total)


def select_critical_walls(
    primary_index: int,
    walls: list[Wall],
    max_count: int = DEFAULT_MAX_CRITICAL_WALLS,
) -> list[int]:
    """Indices of the walls to validate, primary first.

    At most *max_count* indices are returned (including the primary).
    Invalid input yields an empty list rather than an exception.
    """
    if max_count < 1:
        logger.error("max_count must be at least 1, got %d", max_count)
        return []
    scores = score_walls(primary_index, walls)
    if not walls or not 0 <= primary_index < len(walls):
        return []

    chosen = scores[: max_count - 1]
    result = [primary_index] + [s.wall_index for s in chosen]

    logger.info(
        "Selected critical walls: primary=%d additional=%s",
        primary_index,
        [s.wall_index for s in chosen],
    )
    for s in chosen:
        logger.debug(
            "  wall %d (%s): total=%.3f perp=%.3f area=%.3f adj=%.1f",
            s.wall_index, s.wall_id, s.total, s.perpendicularity, s.area, s.adjacency,
        )
    return result
