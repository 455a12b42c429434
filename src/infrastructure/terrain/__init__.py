"""Infrastructure adapters for the terrain bounded context.

Adapters here perform file I/O and return domain Value Objects.
"""

from .geotiff_adapter import GeoTiffTerrainAdapter

__all__ = ["GeoTiffTerrainAdapter"]
