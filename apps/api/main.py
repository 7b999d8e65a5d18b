"""FastAPI application for the wall alignment engine.

Accepts a RoomPlan export of the model, ranks its walls for validation,
computes wall-pair and model-pair alignments, and stores the last applied
transforms for the viewer.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel as PydanticBaseModel, ConfigDict

from packages.alignment.calculator import AlignmentError, calculate_auto_alignment, calculate_wall_alignment
from packages.alignment.quality import get_quality_color, get_quality_description, validate_alignment
from packages.alignment.roomplan import parse_roomplan_export
from packages.alignment.selection import DEFAULT_MAX_CRITICAL_WALLS, score_walls, select_critical_walls
from packages.alignment.storage import AlignmentStorage
from packages.core.types import AlignmentConfig, AlignmentTransform, ModelInfo, Vec3, Wall

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wall Anchor API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # permissive for local development; tighten for production
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── In-memory store (single-model MVP) ───────────────────────────────
_state: dict = {
    "walls": None,        # list[Wall] or None
    "source_file": None,  # original filename
    "storage": AlignmentStorage(Path(os.environ.get("WALL_ANCHOR_STORAGE_DIR", ".wall_anchor"))),
}


def _alignment_response(config: AlignmentConfig) -> dict:
    validation = validate_alignment(config)
    return {
        "alignment": config.model_dump(),
        "validation": validation.model_dump(mode="json"),
        "description": get_quality_description(validation),
        "color": get_quality_color(validation),
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/upload")
async def upload_export(file: UploadFile = File(...)):
    """Upload a RoomPlan ``Room.json`` export of the model and keep its walls."""
    if not file.filename:
        raise HTTPException(400, "No filename provided")

    suffix = Path(file.filename).suffix.lower()
    if suffix != ".json":
        raise HTTPException(400, f"Unsupported format '{suffix}'. Use .json")

    logger.info(f"📥 Receiving export: {file.filename}")
    try:
        data = json.loads(await file.read())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(400, f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise HTTPException(400, "Invalid export: expected a JSON object")

    parsed = parse_roomplan_export(data)
    _state["walls"] = parsed.walls
    _state["source_file"] = file.filename

    logger.info(f"✅ Stored {parsed.wall_count} walls from {file.filename}")
    return {"filename": file.filename, "version": parsed.version, "wall_count": parsed.wall_count}


@app.get("/walls")
def get_walls():
    """Return the usable walls of the uploaded export, largest first."""
    if _state["walls"] is None:
        raise HTTPException(404, "No export uploaded yet")
    walls: list[Wall] = _state["walls"]
    return {"count": len(walls), "walls": [w.model_dump() for w in walls]}


class CriticalWallsRequest(PydanticBaseModel):
    """Body for the critical wall endpoint."""
    primary_index: int
    max_count: int = DEFAULT_MAX_CRITICAL_WALLS


@app.post("/critical-walls")
def critical_walls(req: CriticalWallsRequest):
    """Rank the uploaded walls against the wall the user picked first."""
    if _state["walls"] is None:
        raise HTTPException(404, "No export uploaded yet")

    walls: list[Wall] = _state["walls"]
    if req.primary_index < 0 or req.primary_index >= len(walls):
        raise HTTPException(400, f"Invalid primary_index {req.primary_index} (have {len(walls)} walls)")
    if req.max_count < 1:
        raise HTTPException(400, "max_count must be at least 1")

    selected = select_critical_walls(req.primary_index, walls, req.max_count)
    logger.info(f"🧱 Critical walls for {req.primary_index}: {selected}")
    return {
        "selected": selected,
        "wall_ids": [walls[i].id for i in selected],
        "scores": [s.model_dump() for s in score_walls(req.primary_index, walls)],
    }


class WallAlignmentRequest(PydanticBaseModel):
    """Body for the wall-pair alignment endpoint."""
    virtual_wall: Wall
    real_wall: Wall
    reference_point: Optional[Vec3] = None


@app.post("/align")
def align_walls(req: WallAlignmentRequest):
    """Transform placing the model's wall onto the scanned wall, with its quality."""
    try:
        config = calculate_wall_alignment(
            req.virtual_wall, req.real_wall, reference_point=req.reference_point
        )
    except AlignmentError as e:
        raise HTTPException(400, str(e))
    return _alignment_response(config)


class AutoAlignmentRequest(PydanticBaseModel):
    """Body for the model-pair alignment endpoint."""
    source: ModelInfo
    target: ModelInfo


@app.post("/auto-align")
def auto_align(req: AutoAlignmentRequest):
    """Transform placing the source model onto the target model."""
    try:
        config = calculate_auto_alignment(req.source, req.target)
    except AlignmentError as e:
        raise HTTPException(400, str(e))
    return _alignment_response(config)


class ManualAlignmentRequest(PydanticBaseModel):
    """Body for saving a manual adjustment."""

    model_config = ConfigDict(protected_namespaces=())

    transformation: AlignmentTransform
    model_id: Optional[str] = None


@app.get("/alignments/manual")
def get_manual_alignment():
    stored = _state["storage"].load_last_manual_alignment()
    if stored is None:
        raise HTTPException(404, "No manual alignment saved")
    return stored.model_dump(by_alias=True)


@app.put("/alignments/manual")
def put_manual_alignment(req: ManualAlignmentRequest):
    saved = _state["storage"].save_last_manual_alignment(req.transformation, req.model_id)
    if not saved.success:
        raise HTTPException(500, saved.error)
    return saved.value.model_dump(by_alias=True)


@app.delete("/alignments/manual")
def delete_manual_alignment():
    _state["storage"].clear_last_manual_alignment()
    return {"deleted": True}


@app.get("/alignments/auto")
def get_auto_alignment():
    stored = _state["storage"].load_last_auto_alignment()
    if stored is None:
        raise HTTPException(404, "No automatic alignment saved")
    return stored.model_dump(by_alias=True)
