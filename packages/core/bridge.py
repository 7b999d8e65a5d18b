"""Capability interface for the native AR platform.

The alignment engine never talks to the device directly.  Everything it
needs from the AR runtime goes through an object satisfying
:class:`ARBridge`; tests pass a fake.  Implementations return failed
:class:`~packages.core.types.Result` values for transport or tracking
problems instead of raising, and own any timeout policy.
"""

from __future__ import annotations

from typing import Protocol

from packages.core.types import AlignmentConfig, ModelInfo, Result, Wall


class ARBridge(Protocol):
    def get_model_info(self, model_id: str) -> Result[ModelInfo]:
        """Dimensions, volume and placement of a loaded model."""
        ...

    def get_walls(self, source_id: str) -> Result[list[Wall]]:
        """Wall records of a loaded model or of the live scan session."""
        ...

    def apply_transform(self, model_id: str, config: AlignmentConfig) -> Result[None]:
        """Apply scale, rotation and position to the rendered model."""
        ...
