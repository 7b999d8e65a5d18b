"""Compute scale, rotation and position that align a virtual wall with a real one.

The transform is applied to the model as ``Translation · Rotation · Scale``:
a model-local point ``p`` lands at ``position + R(scale * p)``.

Steps for a wall pair:

1. **Scale** – blended width/height ratio (:func:`calculate_wall_scale`).
2. **Rotation** – yaw about world up that turns the virtual normal onto the
   real normal (full shortest arc only for near-vertical normals).
3. **Position** – the real wall centre minus the rotated, scaled offset of
   the virtual wall centre from the model's reference point.
4. **Confidence** – weighted mix of proportion compatibility, scale
   reasonableness, dimension agreement after scaling and real-world
   plausibility of both walls.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation

from packages.alignment.dimensions import (
    calculate_model_scale,
    calculate_wall_scale,
    check_proportion_compatibility,
    is_valid_dimensions,
    validate_real_world_scale,
)
from packages.alignment.geometry import (
    UP_AXIS,
    as_array,
    horizontal_direction,
    rotation_to_euler,
    shortest_arc_rotation,
    signed_yaw,
    to_vec3,
    wall_area,
    wall_problem,
)
from packages.core.types import AlignmentConfig, ModelInfo, Vec3, Wall

logger = logging.getLogger(__name__)

PROPORTION_WEIGHT = 0.4
SCALE_WEIGHT = 0.3
DIMENSION_MATCH_WEIGHT = 0.2
PLAUSIBILITY_WEIGHT = 0.1

NORMAL_SCALE_RANGE = (0.5, 2.0)
EXTREME_SCALE_RANGE = (0.3, 3.0)
MAX_YAW_ERROR = math.pi / 4


class AlignmentError(ValueError):
    """The inputs do not allow an alignment to be computed."""


def scale_reasonableness(scale: float) -> float:
    """1.0 inside the normal scale range, decaying linearly outside it."""
    low, high = NORMAL_SCALE_RANGE
    if low <= scale <= high:
        return 1.0
    if scale < low:
        return max(0.0, scale / low)
    return max(0.0, high / scale)


def _dimension_match(source: tuple[float, ...], target: tuple[float, ...], scale: float) -> float:
    matches = [1.0 - min(abs(s * scale - t) / t, 1.0) for s, t in zip(source, target)]
    return sum(matches) / len(matches)


def alignment_confidence_breakdown(
    virtual: Wall,
    real: Wall,
    scale: float,
) -> dict[str, float]:
    """Individual confidence factors for a wall pair, plus their weighted total."""
    proportion = check_proportion_compatibility(virtual.dimensions, real.dimensions) or 0.0
    plausible = [
        validate_real_world_scale(virtual.dimensions).valid,
        validate_real_world_scale(real.dimensions).valid,
    ]
    factors = {
        "proportion": proportion,
        "scale": scale_reasonableness(scale),
        "dimension_match": _dimension_match(
            (virtual.dimensions.width, virtual.dimensions.height),
            (real.dimensions.width, real.dimensions.height),
            scale,
        ),
        "plausibility": sum(plausible) / len(plausible),
    }
    factors["confidence"] = (
        PROPORTION_WEIGHT * factors["proportion"]
        + SCALE_WEIGHT * factors["scale"]
        + DIMENSION_MATCH_WEIGHT * factors["dimension_match"]
        + PLAUSIBILITY_WEIGHT * factors["plausibility"]
    )
    return factors


def _require_usable(*walls: Wall) -> None:
    for wall in walls:
        problem = wall_problem(wall)
        if problem:
            raise AlignmentError(f"Cannot align: {problem}")


def _place(
    rotation: Rotation,
    scale: float,
    local_point: np.ndarray,
    world_point: Vec3,
) -> Vec3:
    return to_vec3(as_array(world_point) - rotation.apply(scale * local_point))


def calculate_wall_alignment(
    virtual: Wall,
    real: Wall,
    *,
    reference_point: Optional[Vec3] = None,
) -> AlignmentConfig:
    """Align a wall of the model (*virtual*) with a scanned wall (*real*).

    *reference_point* is the model's placement origin in the same frame as
    ``virtual.center``; it defaults to the origin.

    Raises :class:`AlignmentError` when either wall is unusable.
    """
    _require_usable(virtual, real)

    scale = calculate_wall_scale(virtual.dimensions, real.dimensions)
    rotation = shortest_arc_rotation(virtual.normal, real.normal)
    origin = as_array(reference_point) if reference_point is not None else np.zeros(3)
    position = _place(rotation, scale, as_array(virtual.center) - origin, real.center)

    factors = alignment_confidence_breakdown(virtual, real, scale)
    config = AlignmentConfig(
        scale=scale,
        position=position,
        rotation=rotation_to_euler(rotation),
        confidence=factors["confidence"],
    )
    logger.info(
        "🎯 Wall alignment %s → %s: scale=%.3f yaw=%.1f° confidence=%.0f%%",
        virtual.id, real.id, scale, math.degrees(config.rotation.y), config.confidence * 100,
    )
    logger.debug("Confidence factors: %s", factors)
    return config


def calculate_auto_alignment(source: ModelInfo, target: ModelInfo) -> AlignmentConfig:
    """Align a whole model (*source*) with a reference model or room scan (*target*).

    When both infos carry an anchor wall, rotation and position come from
    the wall pair; otherwise the scaled source centre is placed on the
    target centre with no rotation.

    Raises :class:`AlignmentError` when either model lacks usable dimensions.
    """
    for info in (source, target):
        if not is_valid_dimensions(info.dimensions):
            raise AlignmentError(
                f"Cannot align: model {info.model_id} has unusable dimensions {info.dimensions}"
            )

    scale = calculate_model_scale(source, target)
    reference = as_array(source.position)

    proportion = check_proportion_compatibility(source.dimensions, target.dimensions) or 0.0
    if source.wall is not None and target.wall is not None:
        _require_usable(source.wall, target.wall)
        rotation = shortest_arc_rotation(source.wall.normal, target.wall.normal)
        position = _place(rotation, scale, as_array(source.wall.center) - reference, target.wall.center)
        wall_proportion = check_proportion_compatibility(
            source.wall.dimensions, target.wall.dimensions
        ) or 0.0
        proportion = (proportion + wall_proportion) / 2
    else:
        rotation = Rotation.identity()
        position = _place(rotation, scale, as_array(source.center) - reference, target.center)

    plausible = [
        validate_real_world_scale(source.dimensions).valid,
        validate_real_world_scale(target.dimensions).valid,
    ]
    s, t = source.dimensions, target.dimensions
    confidence = (
        PROPORTION_WEIGHT * proportion
        + SCALE_WEIGHT * scale_reasonableness(scale)
        + DIMENSION_MATCH_WEIGHT * _dimension_match(
            (s.width, s.height, s.depth), (t.width, t.height, t.depth), scale
        )
        + PLAUSIBILITY_WEIGHT * sum(plausible) / len(plausible)
    )

    config = AlignmentConfig(
        scale=scale,
        position=position,
        rotation=rotation_to_euler(rotation),
        confidence=confidence,
    )
    logger.info(
        "Auto-alignment %s → %s: scale=%.3f position=(%.2f, %.2f, %.2f) confidence=%.0f%%",
        source.model_id, target.model_id, scale,
        position.x, position.y, position.z, confidence * 100,
    )
    return config


# ── two-wall solve ───────────────────────────────────────────────────
def _circular_mean(angles: list[float]) -> float:
    s = sum(math.sin(a) for a in angles)
    c = sum(math.cos(a) for a in angles)
    if abs(s) < 1e-6 and abs(c) < 1e-6:
        return 0.0
    return math.atan2(s, c)


def _scale_penalty(scale: float) -> float:
    if scale < EXTREME_SCALE_RANGE[0] or scale > EXTREME_SCALE_RANGE[1]:
        return 0.4
    if scale < NORMAL_SCALE_RANGE[0] or scale > NORMAL_SCALE_RANGE[1]:
        return 0.2
    return 0.0


def _solve_two_walls(
    virtual_walls: tuple[Wall, Wall],
    real_walls: tuple[Wall, Wall],
    flip: bool,
) -> AlignmentConfig:
    sign = -1.0 if flip else 1.0
    v_normals = [sign * as_array(w.normal) for w in virtual_walls]
    v_dirs = [horizontal_direction(n) for n in v_normals]
    r_dirs = [horizontal_direction(w.normal) for w in real_walls]
    if any(d is None for d in v_dirs + r_dirs):
        raise AlignmentError("Cannot align: a wall normal has no horizontal component")

    yaw = _circular_mean([signed_yaw(v, r) for v, r in zip(v_dirs, r_dirs)])
    rotation = Rotation.from_rotvec(UP_AXIS * yaw)

    ratios = [r.dimensions.width / v.dimensions.width for v, r in zip(virtual_walls, real_walls)]
    scale = sum(ratios) / len(ratios)

    offsets = [
        as_array(r.center) - rotation.apply(scale * as_array(v.center))
        for v, r in zip(virtual_walls, real_walls)
    ]
    weights = [max(0.001, wall_area(r)) for r in real_walls]
    translation = sum(w * o for w, o in zip(weights, offsets)) / sum(weights)

    errors = []
    for n, r in zip(v_normals, r_dirs):
        turned = horizontal_direction(rotation.apply(n))
        errors.append(math.acos(float(np.clip(np.dot(turned, r), -1.0, 1.0))))
    angular = float(np.clip(1.0 - (sum(errors) / len(errors)) / MAX_YAW_ERROR, 0.0, 1.0))

    # both pairs should agree on where the model goes
    spread = float(np.linalg.norm(offsets[0] - offsets[1]))
    reference_length = sum(r.dimensions.width for r in real_walls) / len(real_walls)
    agreement = 1.0 - min(spread / reference_length, 1.0)

    confidence = float(np.clip(angular * agreement - _scale_penalty(scale), 0.0, 1.0))

    return AlignmentConfig(
        scale=scale,
        position=to_vec3(translation),
        rotation=rotation_to_euler(rotation),
        confidence=confidence,
    )


def calculate_two_wall_alignment(
    virtual_walls: tuple[Wall, Wall],
    real_walls: tuple[Wall, Wall],
    *,
    flip_virtual_normals: Optional[bool] = None,
) -> AlignmentConfig:
    """Yaw-only alignment constrained by two wall pairs.

    Yaw is the circular mean of the per-pair yaws, scale the mean width
    ratio and position the area-weighted mean of the per-pair offsets.
    Confidence combines the residual normal error with how well the two
    pairs agree on the offset, minus a penalty for implausible scales.

    Model normals are sometimes exported facing inward; when
    *flip_virtual_normals* is ``None`` both orientations are solved and the
    more confident result is returned.
    """
    _require_usable(*virtual_walls, *real_walls)

    if flip_virtual_normals is not None:
        return _solve_two_walls(virtual_walls, real_walls, flip_virtual_normals)

    results: list[AlignmentConfig] = []
    errors: list[str] = []
    for flip in (False, True):
        try:
            results.append(_solve_two_walls(virtual_walls, real_walls, flip))
        except AlignmentError as exc:
            errors.append(str(exc))
    if not results:
        raise AlignmentError("; ".join(errors))

    # max() keeps the first of equal candidates, i.e. the unflipped solve
    best = max(results, key=lambda c: c.confidence)
    logger.info("Two-wall alignment: scale=%.3f confidence=%.0f%%", best.scale, best.confidence * 100)
    return best
