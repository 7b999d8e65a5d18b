"""Dimension matching: proportion compatibility, scale factors, plausibility checks.

Functions here accept either :class:`WallDimensions` (a single wall's
width/height) or :class:`ModelDimensions` (a whole model's bounding box).
Non-positive or non-finite dimensions are rejected with a log message and a
``None`` return, so they never reach a transform.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Union

from packages.core.types import (
    ModelDimensions,
    ModelInfo,
    ScaleContext,
    ScaleValidation,
    WallDimensions,
)

logger = logging.getLogger(__name__)

Dimensions = Union[WallDimensions, ModelDimensions]

ASPECT_RATIO_TOLERANCE = 1.0
COMPATIBILITY_WARNING_FLOOR = 0.6
VOLUME_BLEND_WEIGHT = 0.25

# (min width/depth, max width/depth, min height, max height) in metres
_CONTEXT_RANGES: dict[ScaleContext, tuple[float, float, float, float]] = {
    ScaleContext.WALL: (0.3, 30.0, 0.5, 6.0),
    ScaleContext.FURNITURE: (0.1, 5.0, 0.1, 3.0),
    ScaleContext.ROOM: (1.0, 20.0, 2.0, 5.0),
    ScaleContext.BUILDING: (5.0, 100.0, 2.4, 50.0),
}


def _values(d: Dimensions) -> tuple[float, ...]:
    if isinstance(d, ModelDimensions):
        return (d.width, d.height, d.depth)
    return (d.width, d.height)


def is_valid_dimensions(d: Dimensions) -> bool:
    return all(math.isfinite(v) and v > 0 for v in _values(d))


def _reject(label: str, *dims: Dimensions) -> bool:
    """Log and return True when any of *dims* is unusable."""
    for d in dims:
        if not is_valid_dimensions(d):
            logger.warning("%s: rejecting invalid dimensions %s", label, d)
            return True
    return False


def _aspect_ratios(a: Dimensions, b: Dimensions) -> list[tuple[float, float]]:
    pairs = [(a.width / a.height, b.width / b.height)]
    if isinstance(a, ModelDimensions) and isinstance(b, ModelDimensions):
        pairs.append((a.width / a.depth, b.width / b.depth))
        pairs.append((a.height / a.depth, b.height / b.depth))
    return pairs


# ── compatibility ────────────────────────────────────────────────────
def check_proportion_compatibility(
    a: Dimensions,
    b: Dimensions,
    *,
    tolerance: float = ASPECT_RATIO_TOLERANCE,
) -> Optional[float]:
    """Similarity of the aspect ratios of *a* and *b*, in [0, 1].

    Each ratio pair scores ``1 - min(1, |ra - rb| / tolerance)``; for two
    model bounding boxes the width/height, width/depth and height/depth
    scores are averaged.  Values below :data:`COMPATIBILITY_WARNING_FLOOR`
    should be reported to the user.
    """
    if _reject("proportion compatibility", a, b):
        return None
    scores = [1.0 - min(1.0, abs(ra - rb) / tolerance) for ra, rb in _aspect_ratios(a, b)]
    compatibility = sum(scores) / len(scores)
    logger.debug("Proportion compatibility %.1f%% (%s)", compatibility * 100, scores)
    return compatibility


def compare_dimensions(a: Dimensions, b: Dimensions) -> Optional[dict[str, float]]:
    """Percentage difference of *a* relative to *b* per axis, plus the average."""
    if _reject("compare dimensions", a, b):
        return None
    out = {
        "width": abs(a.width - b.width) / b.width * 100,
        "height": abs(a.height - b.height) / b.height * 100,
    }
    if isinstance(a, ModelDimensions) and isinstance(b, ModelDimensions):
        out["depth"] = abs(a.depth - b.depth) / b.depth * 100
    out["average"] = sum(out.values()) / len(out)
    return out


# ── scale factors ────────────────────────────────────────────────────
def calculate_wall_scale(virtual: WallDimensions, real: WallDimensions) -> Optional[float]:
    """Uniform scale mapping a virtual wall onto a real one.

    Width and height ratios are blended, each weighted by its share of the
    virtual wall's perimeter, so the dominant axis counts most while the
    other still pulls the estimate.
    """
    if _reject("wall scale", virtual, real):
        return None
    scale_w = real.width / virtual.width
    scale_h = real.height / virtual.height
    total = virtual.width + virtual.height
    scale = scale_w * (virtual.width / total) + scale_h * (virtual.height / total)
    logger.debug("Wall scale: width=%.3f height=%.3f blended=%.3f", scale_w, scale_h, scale)
    return scale


def calculate_optimal_scale(source: ModelDimensions, target: ModelDimensions) -> Optional[float]:
    """Per-axis ratios averaged with weights proportional to the target's extents."""
    if _reject("optimal scale", source, target):
        return None
    ratios = [t / s for s, t in zip(_values(source), _values(target))]
    largest = max(_values(target))
    weights = [t / largest for t in _values(target)]
    scale = sum(r * w for r, w in zip(ratios, weights)) / sum(weights)
    logger.debug("Scale factors %s weighted=%.3f", [round(r, 3) for r in ratios], scale)
    return scale


def calculate_simple_scale(source: Dimensions, target: Dimensions) -> Optional[float]:
    if _reject("simple scale", source, target):
        return None
    ratios = [t / s for s, t in zip(_values(source), _values(target))]
    return sum(ratios) / len(ratios)


def calculate_volume(dimensions: ModelDimensions) -> float:
    return dimensions.width * dimensions.height * dimensions.depth


def _volume_of(info: ModelInfo) -> float:
    if math.isfinite(info.volume) and info.volume > 0:
        return info.volume
    return calculate_volume(info.dimensions)


def calculate_volume_scale(source: ModelInfo, target: ModelInfo) -> Optional[float]:
    """Cube root of the volume ratio, falling back to bounding-box volumes."""
    if _reject("volume scale", source.dimensions, target.dimensions):
        return None
    return (_volume_of(target) / _volume_of(source)) ** (1.0 / 3.0)


def calculate_model_scale(
    source: ModelInfo,
    target: ModelInfo,
    *,
    volume_weight: float = VOLUME_BLEND_WEIGHT,
) -> Optional[float]:
    """Scale for a pair of models.

    The dimension-weighted scale is blended with the volumetric estimate
    when both models report a positive volume.
    """
    scale = calculate_optimal_scale(source.dimensions, target.dimensions)
    if scale is None:
        return None
    if source.volume > 0 and target.volume > 0:
        volumetric = calculate_volume_scale(source, target)
        scale = (1.0 - volume_weight) * scale + volume_weight * volumetric
    return scale


def apply_scale_to_dimensions(dimensions: Dimensions, scale: float) -> Dimensions:
    update = {"width": dimensions.width * scale, "height": dimensions.height * scale}
    if isinstance(dimensions, ModelDimensions):
        update["depth"] = dimensions.depth * scale
    return dimensions.model_copy(update=update)


def format_dimensions(dimensions: Dimensions, precision: int = 2) -> str:
    """``"3.50m x 2.40m x 4.20m"``"""
    return " x ".join(f"{v:.{precision}f}m" for v in _values(dimensions))


# ── real-world plausibility ──────────────────────────────────────────
def _resolve_context(dimensions: Dimensions, context: ScaleContext) -> ScaleContext:
    if context != ScaleContext.AUTO:
        return context
    if isinstance(dimensions, WallDimensions):
        return ScaleContext.WALL
    values = _values(dimensions)
    mean = sum(values) / len(values)
    if mean < 1.0:
        return ScaleContext.FURNITURE
    if mean > 10.0:
        return ScaleContext.BUILDING
    return ScaleContext.ROOM


def validate_real_world_scale(
    dimensions: Dimensions,
    context: ScaleContext | str = ScaleContext.AUTO,
) -> ScaleValidation:
    """Flag dimensions that are implausible for *context*.

    Only size or height outside the context's range makes the result
    invalid.  For rooms, unusual proportions and ceiling height relative to
    floor area are reported as advisory warnings that keep ``valid=True``.
    Never raises: unusable input or an unknown context comes back as
    ``valid=False`` with a warning.
    """
    try:
        requested = ScaleContext(context)
    except ValueError:
        logger.warning("Scale validation: unknown context %r", context)
        return ScaleValidation(
            valid=False,
            context=_resolve_context(dimensions, ScaleContext.AUTO),
            warnings=[f"Unknown scale context '{context}'"],
        )
    context = _resolve_context(dimensions, requested)
    name = context.value

    if not is_valid_dimensions(dimensions):
        logger.warning("Scale validation: invalid dimensions %s", dimensions)
        return ScaleValidation(
            valid=False,
            context=context,
            warnings=["Dimensions must be positive, finite numbers"],
        )

    min_size, max_size, min_height, max_height = _CONTEXT_RANGES[context]
    warnings: list[str] = []
    suggestions: list[str] = []
    suggested: Optional[float] = None

    horizontal = [("Width", dimensions.width)]
    if isinstance(dimensions, ModelDimensions) and context != ScaleContext.WALL:
        horizontal.append(("Depth", dimensions.depth))

    for label, value in horizontal:
        if value < min_size:
            factor = min_size / value
            warnings.append(f"{label} {value:.2f}m is very small for a {name}")
            suggestions.append(f"Consider scaling up by {factor:.1f}x")
            suggested = suggested or factor
        elif value > max_size:
            factor = value / max_size
            warnings.append(f"{label} {value:.2f}m is very large for a {name}")
            suggestions.append(f"Consider scaling down by {factor:.1f}x")
            suggested = suggested or 1.0 / factor

    out_of_range = bool(warnings)
    if dimensions.height < min_height:
        warnings.append(f"Height {dimensions.height:.2f}m is very small for a {name}")
        out_of_range = True
        if context == ScaleContext.ROOM:
            suggestions.append("Typical ceiling height is 2.4m - 3.0m")
    elif dimensions.height > max_height:
        warnings.append(f"Height {dimensions.height:.2f}m is very tall for a {name}")
        out_of_range = True

    if context == ScaleContext.ROOM and isinstance(dimensions, ModelDimensions):
        aspect = max(dimensions.width / dimensions.depth, dimensions.depth / dimensions.width)
        if aspect > 5.0:
            warnings.append(f"Room has unusual proportions ({aspect:.1f}:1 aspect ratio)")
            suggestions.append("Verify model is correct scale and orientation")
        height_ratio = dimensions.height / math.sqrt(dimensions.width * dimensions.depth)
        if height_ratio < 0.3:
            warnings.append("Ceiling height seems low relative to floor area")
        elif height_ratio > 1.5:
            warnings.append("Ceiling height seems very high relative to floor area")

    valid = not out_of_range
    if not warnings:
        logger.info("✅ Dimensions %s plausible for %s", format_dimensions(dimensions), name)
    else:
        logger.warning("⚠️ Dimensions %s need attention (%s): %s", format_dimensions(dimensions), name, warnings)

    return ScaleValidation(
        valid=valid,
        context=context,
        warnings=warnings,
        suggestions=suggestions,
        suggested_scale=suggested,
    )


def suggest_scale_adjustment(validation: ScaleValidation, dimensions: Dimensions) -> float:
    """Scale factor that would bring *dimensions* into a plausible range (1.0 = leave as is)."""
    if validation.valid:
        return 1.0
    if validation.suggested_scale:
        return validation.suggested_scale
    if not is_valid_dimensions(dimensions):
        return 1.0
    values = _values(dimensions)
    mean = sum(values) / len(values)
    if mean < 1.0 or mean > 10.0:
        return 3.0 / mean
    return 1.0


def get_confidence_level(confidence: float) -> str:
    if confidence >= 0.9:
        return "Excellent"
    if confidence >= 0.75:
        return "Good"
    if confidence >= 0.6:
        return "Fair"
    if confidence >= 0.4:
        return "Poor"
    return "Very Poor"
