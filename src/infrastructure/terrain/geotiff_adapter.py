"""GeoTIFF adapter for TerrainRepository.

Loads a single-band DEM with rasterio and returns a domain TerrainGrid in
EPSG:4326, ready to be sampled at H3 cell centers.

Lifecycle:
1) Open dataset with context manager (rasterio.open) inside rasterio.Env
2) Validate band count, CRS and geotransform
3) Read directly (WGS84) or reproject bilinearly to EPSG:4326
4) Convert nodata -> NaN as float32; reject all-NoData rasters
5) Build BoundingBox and positive resolution tuple, return TerrainGrid
"""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.errors import RasterioError
from rasterio.transform import array_bounds
from rasterio.warp import calculate_default_transform, reproject

from domain.grid.value_objects import BoundingBox
from domain.terrain.errors import (
    AllNoDataError,
    InvalidBoundsError,
    InvalidGeotransformError,
    InvalidRasterError,
    MissingCRSError,
)
from domain.terrain.value_objects import TerrainGrid

logger = logging.getLogger(__name__)

_TARGET_CRS = CRS.from_epsg(4326)
SUPPORTED_SUFFIXES = (".tif", ".tiff")
NODATA_WARNING_PCT = 80.0


def _to_nan(data: np.ndarray, nodata: float | None) -> np.ndarray:
    """Masked or explicit nodata pixels -> NaN, keeping float32."""
    if np.ma.isMaskedArray(data):
        data = np.ma.filled(data.astype(np.float32), np.float32(np.nan))
    if nodata is not None and not math.isnan(nodata):
        data = np.where(data == nodata, np.float32(np.nan), data)
    return np.asarray(data, dtype=np.float32)


class GeoTiffTerrainAdapter:
    """Infrastructure adapter loading DEMs from GeoTIFF files."""

    def __init__(self, resampling: Resampling = Resampling.bilinear) -> None:
        self.resampling = resampling

    def load_dem(self, file_path: Path | str) -> TerrainGrid:
        """Load a GeoTIFF DEM and return a normalized TerrainGrid.

        Raises:
            FileNotFoundError: If the file does not exist
            InvalidRasterError: Wrong extension, empty, multi-band or corrupt
            MissingCRSError: Raster has no CRS
            InvalidGeotransformError: Zero or non-finite pixel scale
            AllNoDataError: No valid pixel after nodata conversion
            InvalidBoundsError: Extent falls outside WGS84 range
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise InvalidRasterError(f"Unsupported file extension: {path.suffix}")
        if path.stat().st_size == 0:
            raise InvalidRasterError("Empty file")

        try:
            with rasterio.Env(), rasterio.open(path) as src:
                if src.count != 1:
                    raise InvalidRasterError(f"Expected 1 band, got {src.count}")
                if src.crs is None:
                    raise MissingCRSError("Raster has no CRS defined")

                transform = src.transform
                if not all(math.isfinite(v) for v in tuple(transform)[:6]):
                    raise InvalidGeotransformError("Invalid (NaN/Inf) transform values")
                if transform.a == 0 or transform.e == 0:
                    raise InvalidGeotransformError("Invalid transform scale (zero)")

                source_crs = src.crs.to_string()
                if src.crs == _TARGET_CRS:
                    data = _to_nan(src.read(1, masked=True), src.nodata)
                else:
                    transform, data = self._reproject(src)
                    logger.info(
                        "DEM %s: Reprojected from %s to EPSG:4326", path.name, source_crs
                    )
        except RasterioError as e:
            raise InvalidRasterError(f"Corrupted or invalid raster: {e}") from e

        if np.isnan(data).all():
            raise AllNoDataError("Raster contains 100% NoData pixels - unusable")

        height, width = data.shape
        minx, miny, maxx, maxy = array_bounds(height, width, transform)
        try:
            bounds = BoundingBox(min_x=minx, min_y=miny, max_x=maxx, max_y=maxy)
        except ValueError as e:
            raise InvalidBoundsError(str(e)) from e

        nodata_pct = float(np.isnan(data).mean() * 100.0)
        if nodata_pct > NODATA_WARNING_PCT:
            logger.warning("DEM %s: %.1f%% NoData pixels detected", path.name, nodata_pct)
        logger.debug("DEM %s: Loaded %dx%d grid", path.name, width, height)

        return TerrainGrid(
            data=data,
            bounds=bounds,
            crs="EPSG:4326",
            resolution=(abs(transform.a), abs(transform.e)),
            source_crs=source_crs,
        )

    def _reproject(self, src) -> tuple:
        """Warp band 1 of an open dataset onto an EPSG:4326 grid."""
        dst_transform, dst_width, dst_height = calculate_default_transform(
            src.crs, _TARGET_CRS, src.width, src.height, *src.bounds
        )
        destination = np.full((dst_height, dst_width), np.nan, dtype=np.float32)
        reproject(
            source=rasterio.band(src, 1),
            destination=destination,
            src_transform=src.transform,
            src_crs=src.crs,
            dst_transform=dst_transform,
            dst_crs=_TARGET_CRS,
            resampling=self.resampling,
            src_nodata=src.nodata,
            dst_nodata=np.nan,
        )
        return dst_transform, destination
