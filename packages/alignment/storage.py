"""Persist the last applied manual and automatic alignment transforms.

A tiny key/value store: one JSON file per fixed key under a root
directory.  Loading never raises; missing or malformed data reads as
``None``.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from packages.core.types import (
    AlignmentConfig,
    AlignmentTransform,
    LastAutoAlignment,
    LastManualAlignment,
    Result,
)

logger = logging.getLogger(__name__)

LAST_MANUAL_ALIGNMENT_KEY = "alignment.last_manual_transform.v1"
LAST_AUTO_ALIGNMENT_KEY = "alignment.last_auto_transform.v1"

P = TypeVar("P", bound=BaseModel)


def transform_from_config(config: AlignmentConfig) -> AlignmentTransform:
    return AlignmentTransform(position=config.position, rotation=config.rotation, scale=config.scale)


def _now_ms() -> float:
    return time.time() * 1000.0


class AlignmentStorage:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _read(self, key: str, model: type[P]) -> Optional[P]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return model.model_validate_json(path.read_text())
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable %s: %s", path.name, exc)
            return None

    def _write(self, key: str, payload: P) -> Result[P]:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload.model_dump_json(by_alias=True, indent=2))
        except OSError as exc:
            logger.error("Could not write %s: %s", path, exc)
            return Result.fail(f"Could not save alignment: {exc}")
        logger.info("💾 Saved %s", path.name)
        return Result.ok(payload)

    def _clear(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    # ── manual ────────────────────────────────────────────────────
    def load_last_manual_alignment(self) -> Optional[LastManualAlignment]:
        return self._read(LAST_MANUAL_ALIGNMENT_KEY, LastManualAlignment)

    def save_last_manual_alignment(
        self,
        transformation: AlignmentTransform,
        model_id: Optional[str] = None,
    ) -> Result[LastManualAlignment]:
        payload = LastManualAlignment(
            transformation=transformation,
            model_id=model_id,
            updated_at=_now_ms(),
        )
        return self._write(LAST_MANUAL_ALIGNMENT_KEY, payload)

    def clear_last_manual_alignment(self) -> None:
        self._clear(LAST_MANUAL_ALIGNMENT_KEY)

    # ── automatic ─────────────────────────────────────────────────
    def load_last_auto_alignment(self) -> Optional[LastAutoAlignment]:
        return self._read(LAST_AUTO_ALIGNMENT_KEY, LastAutoAlignment)

    def save_last_auto_alignment(
        self,
        transformation: AlignmentTransform,
        model_id: Optional[str] = None,
        *,
        source_model_id: Optional[str] = None,
        target_model_id: Optional[str] = None,
    ) -> Result[LastAutoAlignment]:
        payload = LastAutoAlignment(
            transformation=transformation,
            model_id=model_id,
            source_model_id=source_model_id,
            target_model_id=target_model_id,
            updated_at=_now_ms(),
        )
        return self._write(LAST_AUTO_ALIGNMENT_KEY, payload)

    def clear_last_auto_alignment(self) -> None:
        self._clear(LAST_AUTO_ALIGNMENT_KEY)
