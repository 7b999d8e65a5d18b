"""Wall-anchor workflow: model preview → wall scanning → alignment → complete.

One :class:`WallAnchorSession` drives one alignment session.  It owns its
:class:`WallAnchorWorkflow` state; callers read it through
:meth:`WallAnchorSession.get_workflow`, which returns a copy.

Steps only move forward.  The exceptions are :meth:`reset` (back to model
preview with everything cleared) and :meth:`recalculate` (from complete
back to alignment, keeping the selected walls).  Calling an operation
before its prerequisites exist raises :class:`WorkflowError`.
"""

from __future__ import annotations

import logging
from typing import Optional

from packages.alignment.calculator import calculate_two_wall_alignment, calculate_wall_alignment
from packages.alignment.geometry import wall_problem
from packages.alignment.quality import get_quality_color, get_quality_description, validate_alignment
from packages.alignment.storage import AlignmentStorage, transform_from_config
from packages.core.bridge import ARBridge
from packages.core.types import (
    AlignmentConfig,
    AlignmentValidation,
    Result,
    Vec3,
    Wall,
    WallAnchorWorkflow,
    WorkflowStep,
)

logger = logging.getLogger(__name__)


class WorkflowError(RuntimeError):
    """An operation was attempted without the data or step it requires."""


class WallAnchorSession:
    def __init__(self, bridge: ARBridge, storage: Optional[AlignmentStorage] = None) -> None:
        self._bridge = bridge
        self._storage = storage
        self._workflow = WallAnchorWorkflow()

    @property
    def current_step(self) -> WorkflowStep:
        return self._workflow.current_step

    def get_workflow(self) -> WallAnchorWorkflow:
        return self._workflow.model_copy()

    def _require_step(self, action: str, *allowed: WorkflowStep) -> None:
        step = self._workflow.current_step
        if step not in allowed:
            raise WorkflowError(
                f"Cannot {action} during step '{step.value}' "
                f"(expected {', '.join(s.value for s in allowed)})"
            )

    def fetch_walls(self, source_id: str) -> Result[list[Wall]]:
        """Walls of a loaded model or of the live scan, minus unusable ones."""
        fetched = self._bridge.get_walls(source_id)
        if not fetched.success:
            logger.error("❌ Could not get walls for %s: %s", source_id, fetched.error)
            return Result.fail(fetched.error or f"Failed to get walls for {source_id}")

        usable = []
        for wall in fetched.value or []:
            problem = wall_problem(wall)
            if problem:
                logger.warning("Dropping %s", problem)
                continue
            usable.append(wall)
        logger.info("🧱 %d usable walls from %s", len(usable), source_id)
        return Result.ok(usable)

    # ── transitions ───────────────────────────────────────────────
    def start_workflow(self, model_path: str) -> None:
        if not model_path:
            raise WorkflowError("A model path is required to start a workflow")
        self._workflow = WallAnchorWorkflow(model_path=model_path)
        logger.info("▶️ Workflow started for %s", model_path)

    def set_virtual_wall(self, wall: Wall) -> Result[WorkflowStep]:
        """Select the model wall; moves to wall scanning.

        An unusable wall is refused with a failed result and no state change.
        """
        if not self._workflow.model_path:
            raise WorkflowError("Start a workflow before selecting a virtual wall")
        self._require_step("select a virtual wall", WorkflowStep.MODEL_PREVIEW, WorkflowStep.WALL_SCANNING)
        problem = wall_problem(wall)
        if problem:
            logger.warning("Virtual wall refused: %s", problem)
            return Result.fail(problem)

        self._workflow.virtual_wall = wall
        self._workflow.current_step = WorkflowStep.WALL_SCANNING
        logger.info("Virtual wall %s selected", wall.id)
        return Result.ok(self._workflow.current_step)

    def set_real_wall(self, wall: Wall) -> Result[WorkflowStep]:
        """Select the scanned wall; moves to alignment.

        Clears any stale ``alignment_result`` computed from a previously
        selected real wall.
        """
        if self._workflow.virtual_wall is None:
            raise WorkflowError("Select a virtual wall before a real wall")
        self._require_step("select a real wall", WorkflowStep.WALL_SCANNING, WorkflowStep.ALIGNMENT)
        problem = wall_problem(wall)
        if problem:
            logger.warning("Real wall refused: %s", problem)
            return Result.fail(problem)

        self._workflow.real_wall = wall
        self._workflow.alignment_result = None
        self._workflow.current_step = WorkflowStep.ALIGNMENT
        logger.info("Real wall %s selected", wall.id)
        return Result.ok(self._workflow.current_step)

    def _selected_walls(self, action: str) -> tuple[Wall, Wall]:
        self._require_step(action, WorkflowStep.ALIGNMENT)
        virtual, real = self._workflow.virtual_wall, self._workflow.real_wall
        if virtual is None or real is None:
            raise WorkflowError(f"Cannot {action}: both a virtual and a real wall are required")
        return virtual, real

    def calculate_alignment(self, *, reference_point: Optional[Vec3] = None) -> AlignmentConfig:
        virtual, real = self._selected_walls("calculate alignment")
        config = calculate_wall_alignment(virtual, real, reference_point=reference_point)
        self._workflow.alignment_result = config
        return config

    def calculate_alignment_two_walls(
        self,
        second_virtual: Wall,
        second_real: Wall,
        *,
        flip_virtual_normals: Optional[bool] = None,
    ) -> AlignmentConfig:
        """Refine the alignment with a second, ideally perpendicular, wall pair."""
        virtual, real = self._selected_walls("calculate alignment")
        config = calculate_two_wall_alignment(
            (virtual, second_virtual),
            (real, second_real),
            flip_virtual_normals=flip_virtual_normals,
        )
        self._workflow.alignment_result = config
        return config

    def apply_alignment(self, model_id: str) -> Result[AlignmentConfig]:
        """Send the calculated transform to the renderer; moves to complete on success.

        A bridge failure comes back as a failed result and leaves the step
        unchanged.  Nothing is retried.
        """
        self._require_step("apply alignment", WorkflowStep.ALIGNMENT)
        config = self._workflow.alignment_result
        if config is None:
            raise WorkflowError("No alignment result to apply; calculate the alignment first")

        logger.info("Applying alignment to model %s", model_id)
        outcome = self._bridge.apply_transform(model_id, config)
        if not outcome.success:
            logger.error("❌ Applying alignment failed: %s", outcome.error)
            return Result.fail(outcome.error or "Failed to apply alignment")

        self._workflow.current_step = WorkflowStep.COMPLETE
        logger.info("✅ Alignment applied to %s", model_id)

        if self._storage is not None:
            saved = self._storage.save_last_auto_alignment(transform_from_config(config), model_id)
            if not saved.success:
                logger.warning("Alignment applied but not saved: %s", saved.error)
        return Result.ok(config)

    def recalculate(self, *, reference_point: Optional[Vec3] = None) -> AlignmentConfig:
        """Return from complete to alignment and compute a fresh result from the same walls."""
        self._require_step("recalculate", WorkflowStep.COMPLETE)
        self._workflow.alignment_result = None
        self._workflow.current_step = WorkflowStep.ALIGNMENT
        return self.calculate_alignment(reference_point=reference_point)

    def reset(self) -> None:
        self._workflow = WallAnchorWorkflow()
        logger.info("Workflow reset")

    # ── quality helpers ───────────────────────────────────────────
    def validate_alignment(self, config: Optional[AlignmentConfig] = None) -> AlignmentValidation:
        config = config or self._workflow.alignment_result
        if config is None:
            raise WorkflowError("No alignment result to validate")
        return validate_alignment(config)

    @staticmethod
    def get_quality_description(validation: AlignmentValidation) -> str:
        return get_quality_description(validation)

    @staticmethod
    def get_quality_color(validation: AlignmentValidation) -> str:
        return get_quality_color(validation)
