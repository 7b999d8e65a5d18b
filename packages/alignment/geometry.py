"""Vector helpers, wall ingestion checks and rigid-transform utilities.

World frame is Y-up (the AR session convention).  Rotations are expressed as
intrinsic Y-X-Z Euler angles packed into a :class:`Vec3` as
``(x=pitch, y=yaw, z=roll)``.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree
from scipy.spatial.transform import Rotation

from packages.core.types import AlignmentConfig, Vec3, Wall, WallDimensions

logger = logging.getLogger(__name__)

UP_AXIS = np.array([0.0, 1.0, 0.0])
DEGENERATE_LENGTH = 1e-6
UNIT_TOLERANCE = 1e-3
ADJACENCY_TOLERANCE = 0.01  # metres

_EULER_ORDER = "YXZ"


def as_array(v: Vec3 | Sequence[float]) -> np.ndarray:
    if isinstance(v, Vec3):
        return np.array([v.x, v.y, v.z], dtype=np.float64)
    return np.asarray(v, dtype=np.float64).reshape(3)


def to_vec3(arr: np.ndarray | Sequence[float]) -> Vec3:
    a = np.asarray(arr, dtype=np.float64).reshape(3)
    return Vec3(x=float(a[0]), y=float(a[1]), z=float(a[2]))


def normalize(v: Vec3 | Sequence[float]) -> Optional[np.ndarray]:
    """Unit vector along *v*, or ``None`` when *v* is (near) zero or not finite."""
    a = as_array(v)
    if not np.all(np.isfinite(a)):
        return None
    length = float(np.linalg.norm(a))
    if length < DEGENERATE_LENGTH:
        return None
    return a / length


def dot(a: Vec3, b: Vec3) -> float:
    return float(np.dot(as_array(a), as_array(b)))


def wall_area(wall: Wall) -> float:
    return wall.dimensions.width * wall.dimensions.height


def perpendicularity(a: Vec3, b: Vec3) -> float:
    """1.0 for orthogonal normals, 0.0 for parallel or anti-parallel ones."""
    return 1.0 - min(abs(dot(a, b)), 1.0)


def vertices_within(
    a: Sequence[Vec3],
    b: Sequence[Vec3],
    tolerance: float = ADJACENCY_TOLERANCE,
) -> bool:
    """True when any vertex of *a* lies closer than *tolerance* to any vertex of *b*."""
    if not a or not b:
        return False
    tree = cKDTree(np.array([as_array(v) for v in b]))
    distances, _ = tree.query(np.array([as_array(v) for v in a]), k=1)
    return bool(np.any(np.asarray(distances) < tolerance))


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def wall_problem(wall: Wall) -> Optional[str]:
    """Describe why *wall* is unusable for alignment, or ``None`` if it is fine."""
    n = as_array(wall.normal)
    c = as_array(wall.center)
    if not (np.all(np.isfinite(n)) and np.all(np.isfinite(c))):
        return f"wall {wall.id}: non-finite normal or center"
    length = float(np.linalg.norm(n))
    if length < DEGENERATE_LENGTH:
        return f"wall {wall.id}: degenerate normal (length {length:.2e})"
    if abs(length - 1.0) > UNIT_TOLERANCE:
        return f"wall {wall.id}: normal is not unit length ({length:.4f})"
    d = wall.dimensions
    if not _finite(d.width, d.height) or d.width <= 0 or d.height <= 0:
        return f"wall {wall.id}: non-positive dimensions {d.width}x{d.height}"
    return None


def make_wall(
    wall_id: str,
    normal: Vec3 | Sequence[float],
    center: Vec3 | Sequence[float],
    width: float,
    height: float,
    *,
    vertices: Sequence[Vec3 | Sequence[float]] = (),
    transform: Optional[list[list[float]]] = None,
) -> Optional[Wall]:
    """Build a :class:`Wall` from raw values, normalising the normal.

    Degenerate input (zero normal, non-positive or non-finite size) is
    logged and rejected with ``None``.
    """
    unit = normalize(normal)
    if unit is None:
        logger.warning("Rejecting wall %s: degenerate normal %s", wall_id, normal)
        return None
    c = as_array(center)
    if not np.all(np.isfinite(c)):
        logger.warning("Rejecting wall %s: non-finite center", wall_id)
        return None
    if not _finite(width, height) or width <= 0 or height <= 0:
        logger.warning("Rejecting wall %s: invalid dimensions %sx%s", wall_id, width, height)
        return None
    return Wall(
        id=wall_id,
        normal=to_vec3(unit),
        center=to_vec3(c),
        dimensions=WallDimensions(width=float(width), height=float(height)),
        vertices=[v if isinstance(v, Vec3) else to_vec3(v) for v in vertices],
        transform=transform,
    )


# ── rotations ────────────────────────────────────────────────────────
def horizontal_direction(v: Vec3 | np.ndarray, up: np.ndarray = UP_AXIS) -> Optional[np.ndarray]:
    """Project *v* onto the plane perpendicular to *up* and normalise it."""
    a = as_array(v) if isinstance(v, Vec3) else np.asarray(v, dtype=np.float64)
    flat = a - np.dot(a, up) * up
    length = float(np.linalg.norm(flat))
    if length < 1e-4:
        return None
    return flat / length


def signed_yaw(v: np.ndarray, r: np.ndarray, up: np.ndarray = UP_AXIS) -> float:
    """Signed angle about *up* that turns horizontal unit vector *v* onto *r*."""
    cos_a = float(np.clip(np.dot(v, r), -1.0, 1.0))
    sin_a = float(np.dot(np.cross(v, r), up))
    return math.atan2(sin_a, cos_a)


def shortest_arc_rotation(
    source: Vec3 | np.ndarray,
    target: Vec3 | np.ndarray,
    up: np.ndarray = UP_AXIS,
) -> Rotation:
    """Rotation turning *source* onto *target* while keeping *up* fixed.

    For wall normals (both with a horizontal component) this is a pure yaw
    about *up*.  When either normal is (nearly) vertical the full 3D
    shortest arc about ``source x target`` is used instead.
    """
    v = horizontal_direction(source, up)
    r = horizontal_direction(target, up)
    if v is not None and r is not None:
        return Rotation.from_rotvec(up * signed_yaw(v, r, up))

    s = normalize(source if isinstance(source, Vec3) else to_vec3(source))
    t = normalize(target if isinstance(target, Vec3) else to_vec3(target))
    if s is None or t is None:
        return Rotation.identity()
    axis = np.cross(s, t)
    sin_a = float(np.linalg.norm(axis))
    cos_a = float(np.clip(np.dot(s, t), -1.0, 1.0))
    if sin_a < 1e-9:
        if cos_a > 0:
            return Rotation.identity()
        # anti-parallel: half turn about any axis perpendicular to source
        helper = up if abs(float(np.dot(s, up))) < 0.9 else np.array([1.0, 0.0, 0.0])
        perp = np.cross(s, helper)
        return Rotation.from_rotvec(perp / np.linalg.norm(perp) * math.pi)
    return Rotation.from_rotvec(axis / sin_a * math.atan2(sin_a, cos_a))


def rotation_to_euler(rotation: Rotation) -> Vec3:
    yaw, pitch, roll = rotation.as_euler(_EULER_ORDER)
    return Vec3(x=float(pitch), y=float(yaw), z=float(roll))


def euler_to_rotation(euler: Vec3) -> Rotation:
    return Rotation.from_euler(_EULER_ORDER, [euler.y, euler.x, euler.z])


def compose_transform(config: AlignmentConfig) -> np.ndarray:
    """Row-major 4x4 matrix ``Translation · Rotation · Scale``."""
    m = np.eye(4)
    m[:3, :3] = euler_to_rotation(config.rotation).as_matrix() * config.scale
    m[:3, 3] = as_array(config.position)
    return m


def transform_point(config: AlignmentConfig, point: Vec3) -> Vec3:
    """Where *point* (model-local) ends up after applying *config*."""
    p = np.append(as_array(point), 1.0)
    return to_vec3((compose_transform(config) @ p)[:3])
