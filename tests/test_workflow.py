"""Tests for the wall-anchor workflow state machine."""

from __future__ import annotations

import math

import numpy as np
import pytest

from packages.alignment.geometry import as_array, make_wall
from packages.alignment.storage import AlignmentStorage
from packages.alignment.workflow import WallAnchorSession, WorkflowError
from packages.core.types import QualityLevel, Vec3, Wall, WallDimensions, WorkflowStep

VIRTUAL = make_wall("vA", [0, 0, 1], [0, 1.25, -2], 4.0, 2.5)
REAL = make_wall("rA", [1, 0, 0], [-1, 1.25, 1], 4.0, 2.5)
SECOND_VIRTUAL = make_wall("vB", [1, 0, 0], [2, 1.25, 0], 4.0, 2.5)
SECOND_REAL = make_wall("rB", [0, 0, -1], [1, 1.25, -1], 4.0, 2.5)

BROKEN = Wall(
    id="broken",
    normal=Vec3(x=0.0, y=0.0, z=0.0),
    center=Vec3(x=0.0, y=0.0, z=0.0),
    dimensions=WallDimensions(width=4.0, height=2.5),
)


@pytest.fixture()
def session(fake_bridge, tmp_path) -> WallAnchorSession:
    return WallAnchorSession(fake_bridge, AlignmentStorage(tmp_path))


@pytest.fixture()
def aligned(session) -> WallAnchorSession:
    session.start_workflow("a.usdz")
    session.set_virtual_wall(VIRTUAL)
    session.set_real_wall(REAL)
    return session


class TestTransitions:
    def test_initial_state(self, session):
        workflow = session.get_workflow()
        assert workflow.current_step == WorkflowStep.MODEL_PREVIEW
        assert workflow.virtual_wall is None
        assert workflow.real_wall is None
        assert workflow.alignment_result is None

    def test_virtual_wall_moves_to_scanning(self, session):
        session.start_workflow("a.usdz")
        result = session.set_virtual_wall(VIRTUAL)
        assert result.success
        assert session.current_step == WorkflowStep.WALL_SCANNING

    def test_reset_clears_everything(self, aligned):
        aligned.calculate_alignment()
        aligned.reset()
        workflow = aligned.get_workflow()
        assert workflow.current_step == WorkflowStep.MODEL_PREVIEW
        assert workflow.model_path == ""
        assert workflow.virtual_wall is None
        assert workflow.real_wall is None
        assert workflow.alignment_result is None

    def test_start_requires_path(self, session):
        with pytest.raises(WorkflowError):
            session.start_workflow("")

    def test_virtual_wall_before_start(self, session):
        with pytest.raises(WorkflowError):
            session.set_virtual_wall(VIRTUAL)

    def test_real_wall_before_virtual(self, session):
        session.start_workflow("a.usdz")
        with pytest.raises(WorkflowError):
            session.set_real_wall(REAL)

    def test_unusable_wall_refused_without_state_change(self, session):
        session.start_workflow("a.usdz")
        result = session.set_virtual_wall(BROKEN)
        assert not result.success
        assert "degenerate normal" in result.error
        assert session.current_step == WorkflowStep.MODEL_PREVIEW
        assert session.get_workflow().virtual_wall is None

    def test_get_workflow_is_a_copy(self, aligned):
        copy = aligned.get_workflow()
        copy.current_step = WorkflowStep.COMPLETE
        assert aligned.current_step == WorkflowStep.ALIGNMENT

    def test_reselecting_real_wall_clears_result(self, aligned):
        aligned.calculate_alignment()
        aligned.set_real_wall(REAL)
        assert aligned.get_workflow().alignment_result is None
        assert aligned.current_step == WorkflowStep.ALIGNMENT


class TestAlignment:
    def test_calculate(self, aligned):
        config = aligned.calculate_alignment()
        assert config.rotation.y == pytest.approx(math.pi / 2)
        np.testing.assert_allclose(as_array(config.position), [1.0, 0.0, 1.0], atol=1e-9)
        assert aligned.get_workflow().alignment_result == config

    def test_calculate_is_repeatable(self, aligned):
        first = aligned.calculate_alignment()
        second = aligned.calculate_alignment()
        assert (first.scale, first.rotation, first.position) == (second.scale, second.rotation, second.position)

    def test_calculate_before_real_wall(self, session):
        session.start_workflow("a.usdz")
        session.set_virtual_wall(VIRTUAL)
        with pytest.raises(WorkflowError):
            session.calculate_alignment()

    def test_two_walls(self, aligned):
        config = aligned.calculate_alignment_two_walls(SECOND_VIRTUAL, SECOND_REAL)
        assert config.confidence == pytest.approx(1.0)
        np.testing.assert_allclose(as_array(config.position), [1.0, 0.0, 1.0], atol=1e-9)

    def test_validate_and_present(self, aligned):
        aligned.calculate_alignment()
        validation = aligned.validate_alignment()
        assert validation.quality_level == QualityLevel.EXCELLENT
        assert WallAnchorSession.get_quality_description(validation) == "Excellent alignment"
        assert WallAnchorSession.get_quality_color(validation) == "#34C759"

    def test_validate_without_result(self, aligned):
        with pytest.raises(WorkflowError):
            aligned.validate_alignment()


class TestApply:
    def test_apply_completes_and_persists(self, aligned, fake_bridge, tmp_path):
        config = aligned.calculate_alignment()
        result = aligned.apply_alignment("house")
        assert result.success
        assert aligned.current_step == WorkflowStep.COMPLETE
        assert fake_bridge.applied == [("house", config)]

        stored = AlignmentStorage(tmp_path).load_last_auto_alignment()
        assert stored.model_id == "house"
        assert stored.transformation.scale == pytest.approx(config.scale)

    def test_bridge_failure_keeps_step(self, aligned, fake_bridge):
        aligned.calculate_alignment()
        fake_bridge.apply_error = "tracking lost"
        result = aligned.apply_alignment("house")
        assert not result.success
        assert result.error == "tracking lost"
        assert aligned.current_step == WorkflowStep.ALIGNMENT

    def test_apply_without_result(self, aligned):
        with pytest.raises(WorkflowError):
            aligned.apply_alignment("house")

    def test_recalculate_from_complete(self, aligned):
        aligned.calculate_alignment()
        aligned.apply_alignment("house")
        config = aligned.recalculate()
        assert aligned.current_step == WorkflowStep.ALIGNMENT
        assert aligned.get_workflow().alignment_result == config

    def test_recalculate_requires_complete(self, aligned):
        with pytest.raises(WorkflowError):
            aligned.recalculate()


class TestFetchWalls:
    def test_drops_unusable_walls(self, session, fake_bridge):
        fake_bridge.walls["scan"] = [REAL, BROKEN, SECOND_REAL]
        result = session.fetch_walls("scan")
        assert result.success
        assert [w.id for w in result.value] == ["rA", "rB"]

    def test_bridge_failure(self, session):
        result = session.fetch_walls("scan")
        assert not result.success
        assert result.error == "tracking unavailable"
