"""Terrain Bounded Context - Value Objects.

Immutable elevation data handed to the classifier and scorer.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, model_validator

from domain.grid.value_objects import BoundingBox, Compass, Landform

__all__ = ["Landform", "SlopeAspect", "TerrainGrid"]


class TerrainGrid(BaseModel):
    """Immutable elevation grid with geographic metadata (Value Object).

    Row 0 is the northern edge. NoData pixels are NaN. The data array is
    copied and made read-only at construction time.
    """

    data: NDArray[np.float32]  # 2D float32 array (height x width), read-only
    bounds: BoundingBox  # Geographic extent in EPSG:4326
    crs: str  # Always "EPSG:4326" (system CRS)
    resolution: tuple[float, float]  # (x_res, y_res) absolute values in degrees
    source_crs: str | None = None  # Original CRS before normalization

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "TerrainGrid":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if self.data.dtype != np.float32:
            raise ValueError(f"Data must be float32, got {self.data.dtype}")
        if self.crs != "EPSG:4326":
            raise ValueError(f"CRS must be EPSG:4326, got {self.crs}")
        if self.resolution[0] <= 0 or self.resolution[1] <= 0:
            raise ValueError(f"Resolution must be positive: {self.resolution}")
        if np.isnan(self.data).all():
            raise ValueError("Grid contains 100% NoData")

        # Owned, contiguous, read-only copy; caller arrays are never touched
        immutable = np.array(self.data, dtype=np.float32, copy=True, order="C")
        immutable.flags.writeable = False
        object.__setattr__(self, "data", immutable)

        return self


class SlopeAspect(BaseModel):
    """Local gradient of one cell (Value Object).

    aspect is the direction of steepest descent; None when no neighbour
    is lower than the cell.
    """

    slope_percent: float
    aspect: Compass | None = None

    model_config = ConfigDict(frozen=True)
