"""Pydantic models for wall records, alignment results and session state.

Wall records are produced by an external scanner or model reader and are
read-only once built.  Everything downstream (scores, alignment configs,
validations) is derived from them by pure functions.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class BridgeError(RuntimeError):
    """Raised when unwrapping a failed :class:`Result`."""


# ── tiny helpers ──────────────────────────────────────────────────────
class Vec3(BaseModel):
    """A 3-component vector (x, y, z) in metres (or radians for Euler angles)."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float


class WallDimensions(BaseModel):
    """Planar extent of a wall in metres."""

    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class ModelDimensions(BaseModel):
    """Axis-aligned extent of a whole model in metres."""

    model_config = ConfigDict(frozen=True)

    width: float
    height: float
    depth: float


# ── wall records ─────────────────────────────────────────────────────
class Wall(BaseModel):
    """A planar wall from a 3D model or a live scan.

    ``normal`` is expected to be unit length; use
    :func:`packages.alignment.geometry.make_wall` to build one from raw
    values.  ``vertices`` is only populated for model walls and is used for
    adjacency tests.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    normal: Vec3
    center: Vec3
    dimensions: WallDimensions
    vertices: list[Vec3] = Field(default_factory=list)
    transform: Optional[list[list[float]]] = Field(
        default=None, description="Row-major 4x4 wall transform, when the source provides one"
    )


class ModelInfo(BaseModel):
    """Dimensions and placement of a loaded model, as reported by the AR bridge."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    dimensions: ModelDimensions
    center: Vec3
    position: Vec3 = Field(
        default_factory=lambda: Vec3(x=0.0, y=0.0, z=0.0),
        description="Reference point the model is placed by",
    )
    volume: float = 0.0
    wall: Optional[Wall] = None


class WallScore(BaseModel):
    """Per-wall score breakdown from critical wall selection."""

    wall_index: int
    wall_id: str
    perpendicularity: float
    area: float
    adjacency: float
    total: float


# ── alignment ────────────────────────────────────────────────────────
class AlignmentConfig(BaseModel):
    """Uniform scale, Euler rotation and position that place a model onto a real wall."""

    model_config = ConfigDict(frozen=True)

    scale: float = Field(gt=0)
    position: Vec3
    rotation: Vec3 = Field(description="Intrinsic Y-X-Z Euler angles in radians")
    confidence: float = Field(ge=0.0, le=1.0)


class ScaleContext(str, Enum):
    AUTO = "auto"
    WALL = "wall"
    ROOM = "room"
    BUILDING = "building"
    FURNITURE = "furniture"


class ScaleValidation(BaseModel):
    """Outcome of a real-world plausibility check on a set of dimensions."""

    valid: bool
    context: ScaleContext
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    suggested_scale: Optional[float] = None


class QualityLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class AlignmentValidation(BaseModel):
    is_valid: bool
    warnings: list[str] = Field(default_factory=list)
    quality_level: QualityLevel


# ── workflow ─────────────────────────────────────────────────────────
class WorkflowStep(str, Enum):
    MODEL_PREVIEW = "model_preview"
    WALL_SCANNING = "wall_scanning"
    ALIGNMENT = "alignment"
    COMPLETE = "complete"


class WallAnchorWorkflow(BaseModel):
    """State of one wall-anchor alignment session."""

    model_config = ConfigDict(protected_namespaces=())

    model_path: str = ""
    virtual_wall: Optional[Wall] = None
    real_wall: Optional[Wall] = None
    alignment_result: Optional[AlignmentConfig] = None
    current_step: WorkflowStep = WorkflowStep.MODEL_PREVIEW


# ── results ──────────────────────────────────────────────────────────
class Result(BaseModel, Generic[T]):
    """Success or failure of a call that crosses the native boundary."""

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, reason: str) -> "Result[T]":
        return cls(success=False, error=reason)

    def unwrap(self) -> T:
        if not self.success:
            raise BridgeError(self.error or "operation failed")
        return self.value


# ── persistence payloads ─────────────────────────────────────────────
class AlignmentTransform(BaseModel):
    position: Vec3
    rotation: Vec3
    scale: float


class LastManualAlignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    transformation: AlignmentTransform
    model_id: Optional[str] = Field(default=None, alias="modelId")
    updated_at: float = Field(alias="updatedAt", description="Epoch milliseconds")


class LastAutoAlignment(LastManualAlignment):
    source_model_id: Optional[str] = Field(default=None, alias="sourceModelId")
    target_model_id: Optional[str] = Field(default=None, alias="targetModelId")
