"""Model-to-model auto-alignment over the AR bridge.

Fetches both models' dimensions from the bridge, computes the transform,
applies it and remembers it.  Bridge failures are reported as failed
results, never retried here.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field

from packages.alignment.calculator import AlignmentError, calculate_auto_alignment
from packages.alignment.dimensions import (
    COMPATIBILITY_WARNING_FLOOR,
    check_proportion_compatibility,
    validate_real_world_scale,
)
from packages.alignment.storage import AlignmentStorage, transform_from_config
from packages.core.bridge import ARBridge
from packages.core.types import AlignmentConfig, AlignmentTransform, ModelInfo, Result

logger = logging.getLogger(__name__)


class ModelPairValidation(BaseModel):
    valid: bool
    warnings: list[str] = Field(default_factory=list)
    proportion_compatibility: float = 0.0


class AutoAlignmentService:
    def __init__(self, bridge: ARBridge, storage: Optional[AlignmentStorage] = None) -> None:
        self._bridge = bridge
        self._storage = storage

    def _fetch_pair(self, source_id: str, target_id: str) -> Result[tuple[ModelInfo, ModelInfo]]:
        infos = []
        for model_id in (source_id, target_id):
            fetched = self._bridge.get_model_info(model_id)
            if not fetched.success or fetched.value is None:
                reason = fetched.error or "no data returned"
                logger.error("Could not get dimensions of %s: %s", model_id, reason)
                return Result.fail(f"Failed to get model dimensions for {model_id}: {reason}")
            infos.append(fetched.value)
        return Result.ok((infos[0], infos[1]))

    def validate_models(self, source_id: str, target_id: str) -> ModelPairValidation:
        pair = self._fetch_pair(source_id, target_id)
        if not pair.success:
            return ModelPairValidation(valid=False, warnings=[pair.error])
        source, target = pair.value

        warnings: list[str] = []
        for label, info in (("Source", source), ("Target", target)):
            check = validate_real_world_scale(info.dimensions)
            warnings.extend(f"{label}: {w}" for w in check.warnings)

        compatibility = check_proportion_compatibility(source.dimensions, target.dimensions)
        if compatibility is None:
            return ModelPairValidation(valid=False, warnings=warnings + ["Model dimensions are unusable"])
        if compatibility < COMPATIBILITY_WARNING_FLOOR:
            warnings.append(f"Models have very different proportions ({compatibility:.0%} compatible)")

        return ModelPairValidation(
            valid=compatibility >= COMPATIBILITY_WARNING_FLOOR,
            warnings=warnings,
            proportion_compatibility=compatibility,
        )

    def calculate(self, source_id: str, target_id: str) -> Result[AlignmentConfig]:
        logger.info("Calculating auto-alignment %s → %s", source_id, target_id)
        pair = self._fetch_pair(source_id, target_id)
        if not pair.success:
            return Result.fail(pair.error)
        source, target = pair.value
        try:
            config = calculate_auto_alignment(source, target)
        except AlignmentError as exc:
            logger.error("❌ Auto-alignment failed: %s", exc)
            return Result.fail(str(exc))
        return Result.ok(config)

    def apply(
        self,
        model_id: str,
        config: AlignmentConfig,
        *,
        source_model_id: Optional[str] = None,
        target_model_id: Optional[str] = None,
    ) -> Result[AlignmentConfig]:
        outcome = self._bridge.apply_transform(model_id, config)
        if not outcome.success:
            logger.error("❌ Applying auto-alignment to %s failed: %s", model_id, outcome.error)
            return Result.fail(outcome.error or "Failed to apply transformation")

        if self._storage is not None:
            saved = self._storage.save_last_auto_alignment(
                transform_from_config(config),
                model_id,
                source_model_id=source_model_id,
                target_model_id=target_model_id,
            )
            if not saved.success:
                logger.warning("Auto-alignment applied but not saved: %s", saved.error)
        logger.info("✅ Auto-alignment applied to %s", model_id)
        return Result.ok(config)

    def save_manual_adjustment(self, model_id: str, transform: AlignmentTransform) -> Result:
        if self._storage is None:
            return Result.fail("No alignment storage configured")
        return self._storage.save_last_manual_alignment(transform, model_id)
