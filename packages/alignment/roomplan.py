"""Read walls from a RoomPlan ``Room.json`` export.

Each exported wall carries

* ``identifier`` – stable UUID string,
* ``dimensions`` – ``[width, height, 0]`` in metres,
* ``transform`` – 16 floats, a column-major 4x4 whose X axis runs along the
  wall, Y axis points up and Z axis is the wall normal; translation is the
  wall centre.

Tiny or degenerate walls (usually scanner noise) are dropped here so they
never reach the alignment engine.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, Field

from packages.alignment.geometry import make_wall, normalize, wall_area
from packages.core.types import Wall

logger = logging.getLogger(__name__)

MIN_WALL_WIDTH = 0.15
MIN_WALL_HEIGHT = 0.5


class RoomPlanWalls(BaseModel):
    version: Optional[int] = None
    wall_count: int = 0
    walls: list[Wall] = Field(default_factory=list)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def column_major_to_matrix(flat: list[float]) -> np.ndarray:
    """4x4 matrix (rows) from a column-major flattened transform."""
    return np.asarray(flat, dtype=np.float64).reshape(4, 4).T


def _corners(center: np.ndarray, along: np.ndarray, up: np.ndarray, width: float, height: float) -> list[np.ndarray]:
    hw, hh = along * (width / 2), up * (height / 2)
    return [center - hw - hh, center + hw - hh, center + hw + hh, center - hw + hh]


def wall_from_roomplan(entry: dict[str, Any]) -> Optional[Wall]:
    """Convert one exported wall, or ``None`` if it is malformed or too small."""
    identifier = entry.get("identifier")
    if not isinstance(identifier, str) or not identifier:
        logger.debug("Skipping wall without identifier")
        return None

    dims = entry.get("dimensions")
    transform = entry.get("transform")
    if not isinstance(dims, list) or len(dims) < 2:
        logger.debug("Skipping wall %s: malformed dimensions", identifier)
        return None
    if not isinstance(transform, list) or len(transform) != 16:
        logger.debug("Skipping wall %s: malformed transform", identifier)
        return None
    values = [_number(v) for v in transform]
    if any(v is None for v in values):
        logger.debug("Skipping wall %s: non-numeric transform", identifier)
        return None

    width, height = _number(dims[0]), _number(dims[1])
    if width is None or height is None:
        logger.debug("Skipping wall %s: non-numeric dimensions", identifier)
        return None
    if width < MIN_WALL_WIDTH or height < MIN_WALL_HEIGHT:
        logger.debug("Skipping wall %s: too small (%.2fm x %.2fm)", identifier, width, height)
        return None

    m = column_major_to_matrix(values)
    normal = normalize(m[:3, 2])
    if normal is None:
        logger.debug("Skipping wall %s: degenerate normal", identifier)
        return None
    center = m[:3, 3]

    along, up = normalize(m[:3, 0]), normalize(m[:3, 1])
    vertices = _corners(center, along, up, width, height) if along is not None and up is not None else []

    return make_wall(
        identifier,
        normal,
        center,
        width,
        height,
        vertices=vertices,
        transform=m.tolist(),
    )


def parse_roomplan_export(data: dict[str, Any]) -> RoomPlanWalls:
    """Usable walls from a parsed export, largest first."""
    raw = data.get("walls")
    raw = raw if isinstance(raw, list) else []
    walls = [w for w in (wall_from_roomplan(e) for e in raw if isinstance(e, dict)) if w is not None]
    walls.sort(key=wall_area, reverse=True)

    version = data.get("version")
    logger.info("🧱 RoomPlan export: kept %d of %d walls", len(walls), len(raw))
    return RoomPlanWalls(
        version=version if isinstance(version, int) and not isinstance(version, bool) else None,
        wall_count=len(walls),
        walls=walls,
    )


def load_roomplan_walls(path: str | Path) -> RoomPlanWalls:
    """Read a ``.json`` RoomPlan export from disk.

    Raises ``ValueError`` for other extensions or unparseable content.
    """
    p = Path(path)
    if p.suffix.lower() != ".json":
        raise ValueError(f"Unsupported scan export format '{p.suffix}'. Supported: .json")
    logger.info("📄 Reading RoomPlan export %s", p.name)
    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid RoomPlan JSON in {p.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid RoomPlan JSON in {p.name}: expected an object")
    return parse_roomplan_export(data)
