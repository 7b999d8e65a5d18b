"""Tests for alignment quality classification."""

from __future__ import annotations

import pytest

from packages.alignment.quality import get_quality_color, get_quality_description, validate_alignment
from packages.core.types import AlignmentConfig, QualityLevel, Vec3

ORIGIN = Vec3(x=0.0, y=0.0, z=0.0)


def _config(confidence: float, scale: float = 1.0) -> AlignmentConfig:
    return AlignmentConfig(scale=scale, position=ORIGIN, rotation=ORIGIN, confidence=confidence)


class TestValidateAlignment:
    @pytest.mark.parametrize(
        "confidence,level",
        [
            (0.95, QualityLevel.EXCELLENT),
            (0.7, QualityLevel.EXCELLENT),
            (0.65, QualityLevel.GOOD),
            (0.5, QualityLevel.ACCEPTABLE),
            (0.2, QualityLevel.POOR),
        ],
    )
    def test_levels_by_confidence(self, confidence, level):
        assert validate_alignment(_config(confidence)).quality_level == level

    def test_clean_result(self):
        result = validate_alignment(_config(0.9))
        assert result.is_valid
        assert result.warnings == []

    def test_moderate_confidence_warns(self):
        result = validate_alignment(_config(0.5))
        assert "Moderate confidence - consider manual adjustment" in result.warnings
        assert result.is_valid

    def test_very_low_confidence_invalid(self):
        result = validate_alignment(_config(0.2))
        assert "Alignment confidence very low" in result.warnings
        assert not result.is_valid

    def test_unusual_scale_downgrades_excellent(self):
        result = validate_alignment(_config(0.9, scale=2.5))
        assert result.quality_level == QualityLevel.GOOD
        assert result.warnings == ["Scale outside normal range: 2.50x"]

    def test_extreme_scale_forces_poor(self):
        result = validate_alignment(_config(0.9, scale=0.25))
        assert result.quality_level == QualityLevel.POOR
        assert any(w.startswith("Extreme scale 0.25x") for w in result.warnings)
        assert result.is_valid


class TestPresentation:
    def test_description_and_color(self):
        result = validate_alignment(_config(0.9))
        assert get_quality_description(result) == "Excellent alignment"
        assert get_quality_color(result) == "#34C759"

    @pytest.mark.parametrize("level", list(QualityLevel))
    def test_every_level_has_text_and_color(self, level):
        assert get_quality_description(level)
        assert get_quality_color(level).startswith("#")

    def test_accepts_level_value(self):
        assert get_quality_color("poor") == "#FF453A"
