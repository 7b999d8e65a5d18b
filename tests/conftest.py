"""Shared test fixtures – a synthetic box room and a fake AR bridge."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pytest

from packages.alignment.geometry import make_wall
from packages.core.types import AlignmentConfig, ModelInfo, Result, Wall


def _box_wall(wall_id: str, normal, center, width: float, height: float, corners) -> Wall:
    wall = make_wall(wall_id, normal, center, width, height, vertices=corners)
    assert wall is not None
    return wall


def make_box_walls(width: float = 4.0, depth: float = 3.0, height: float = 2.5) -> list[Wall]:
    """Four walls of a *width* × *depth* room centred on the origin.

    Y is up, floor at y=0.  Normals face outward.  Order: back (-Z),
    right (+X), front (+Z), left (-X).
    """
    hx, hz, hy = width / 2, depth / 2, height / 2
    return [
        _box_wall("back", [0, 0, -1], [0, hy, -hz], width, height,
                  [[-hx, 0, -hz], [hx, 0, -hz], [hx, height, -hz], [-hx, height, -hz]]),
        _box_wall("right", [1, 0, 0], [hx, hy, 0], depth, height,
                  [[hx, 0, -hz], [hx, 0, hz], [hx, height, hz], [hx, height, -hz]]),
        _box_wall("front", [0, 0, 1], [0, hy, hz], width, height,
                  [[-hx, 0, hz], [hx, 0, hz], [hx, height, hz], [-hx, height, hz]]),
        _box_wall("left", [-1, 0, 0], [-hx, hy, 0], depth, height,
                  [[-hx, 0, -hz], [-hx, 0, hz], [-hx, height, hz], [-hx, height, -hz]]),
    ]


@pytest.fixture()
def box_room_walls() -> list[Wall]:
    return make_box_walls()


def roomplan_wall_entry(
    identifier: str,
    normal,
    center,
    width: float,
    height: float,
) -> dict:
    """A RoomPlan-style wall entry with a column-major transform."""
    z = np.asarray(normal, dtype=float)
    z = z / np.linalg.norm(z)
    y = np.array([0.0, 1.0, 0.0])
    x = np.cross(y, z)
    transform = [*x, 0.0, *y, 0.0, *z, 0.0, *center, 1.0]
    return {
        "identifier": identifier,
        "dimensions": [width, height, 0.0],
        "transform": [float(v) for v in transform],
    }


@pytest.fixture()
def roomplan_export() -> dict:
    """A small RoomPlan export: three usable walls and two noise walls."""
    return {
        "version": 2,
        "walls": [
            roomplan_wall_entry("A", [0, 0, 1], [0.0, 1.25, -2.0], 4.0, 2.5),
            roomplan_wall_entry("B", [1, 0, 0], [2.0, 1.25, 0.0], 5.0, 2.5),
            roomplan_wall_entry("C", [-1, 0, 0], [-2.0, 1.25, 0.0], 3.0, 2.5),
            roomplan_wall_entry("tiny", [0, 0, -1], [0.0, 1.0, 2.0], 0.1, 2.5),
            roomplan_wall_entry("low", [0, 0, -1], [1.0, 0.2, 2.0], 2.0, 0.3),
        ],
    }


class FakeBridge:
    """In-memory :class:`~packages.core.bridge.ARBridge` for tests."""

    def __init__(
        self,
        models: Optional[dict[str, ModelInfo]] = None,
        walls: Optional[dict[str, list[Wall]]] = None,
    ) -> None:
        self.models = models or {}
        self.walls = walls or {}
        self.applied: list[tuple[str, AlignmentConfig]] = []
        self.apply_error: Optional[str] = None

    def get_model_info(self, model_id: str) -> Result[ModelInfo]:
        if model_id not in self.models:
            return Result.fail(f"model {model_id} not loaded")
        return Result.ok(self.models[model_id])

    def get_walls(self, source_id: str) -> Result[list[Wall]]:
        if source_id not in self.walls:
            return Result.fail("tracking unavailable")
        return Result.ok(self.walls[source_id])

    def apply_transform(self, model_id: str, config: AlignmentConfig) -> Result[None]:
        if self.apply_error:
            return Result.fail(self.apply_error)
        self.applied.append((model_id, config))
        return Result.ok()


@pytest.fixture()
def fake_bridge() -> FakeBridge:
    return FakeBridge()
