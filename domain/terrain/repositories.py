"""Terrain Bounded Context - Ports.

Elevation arrives from external DEM providers. The domain only depends on
this Protocol; concrete readers (GeoTIFF, web services) live under
``src/infrastructure``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .value_objects import TerrainGrid


class TerrainRepository(Protocol):
    """Anything able to produce a WGS84 elevation grid from a source path."""

    def load_dem(self, file_path: Path | str) -> TerrainGrid:
        """Return the DEM normalized to EPSG:4326 with NoData as NaN."""
        ...
