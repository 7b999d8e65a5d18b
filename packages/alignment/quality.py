"""Classify an alignment result for display: quality level, warnings, colour."""

from __future__ import annotations

import logging

from packages.alignment.calculator import EXTREME_SCALE_RANGE, NORMAL_SCALE_RANGE
from packages.core.types import AlignmentConfig, AlignmentValidation, QualityLevel

logger = logging.getLogger(__name__)

POOR_CONFIDENCE = 0.4
ACCEPTABLE_CONFIDENCE = 0.6
GOOD_CONFIDENCE = 0.7

QUALITY_DESCRIPTIONS: dict[QualityLevel, str] = {
    QualityLevel.EXCELLENT: "Excellent alignment",
    QualityLevel.GOOD: "Good alignment",
    QualityLevel.ACCEPTABLE: "Acceptable alignment - adjust if needed",
    QualityLevel.POOR: "Poor alignment - consider selecting another wall",
}

QUALITY_COLORS: dict[QualityLevel, str] = {
    QualityLevel.EXCELLENT: "#34C759",
    QualityLevel.GOOD: "#30D158",
    QualityLevel.ACCEPTABLE: "#FFD60A",
    QualityLevel.POOR: "#FF453A",
}


def validate_alignment(config: AlignmentConfig) -> AlignmentValidation:
    """Quality level and user-facing warnings for *config*.

    Low confidence and out-of-range scales always produce a warning.  The
    result stays ``is_valid`` when the only warnings are about scale and
    confidence is at least 0.4.
    """
    warnings: list[str] = []
    confidence = config.confidence
    scale = config.scale

    if confidence < POOR_CONFIDENCE:
        warnings.append("Alignment confidence very low")
        level = QualityLevel.POOR
    elif confidence < ACCEPTABLE_CONFIDENCE:
        warnings.append("Moderate confidence - consider manual adjustment")
        level = QualityLevel.ACCEPTABLE
    elif confidence < GOOD_CONFIDENCE:
        level = QualityLevel.GOOD
    else:
        level = QualityLevel.EXCELLENT

    low, high = NORMAL_SCALE_RANGE
    if scale < low or scale > high:
        warnings.append(f"Scale outside normal range: {scale:.2f}x")
        if level == QualityLevel.EXCELLENT:
            level = QualityLevel.GOOD

    low, high = EXTREME_SCALE_RANGE
    if scale < low or scale > high:
        warnings.append(f"Extreme scale {scale:.2f}x - verify wall selection")
        level = QualityLevel.POOR

    is_valid = not warnings or confidence >= POOR_CONFIDENCE
    if warnings:
        logger.warning("Alignment quality %s: %s", level.value, warnings)
    return AlignmentValidation(is_valid=is_valid, warnings=warnings, quality_level=level)


def _level(subject: AlignmentValidation | QualityLevel) -> QualityLevel:
    if isinstance(subject, AlignmentValidation):
        return subject.quality_level
    return QualityLevel(subject)


def get_quality_description(subject: AlignmentValidation | QualityLevel) -> str:
    return QUALITY_DESCRIPTIONS[_level(subject)]


def get_quality_color(subject: AlignmentValidation | QualityLevel) -> str:
    return QUALITY_COLORS[_level(subject)]
