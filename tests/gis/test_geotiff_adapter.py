"""Tests for the GeoTIFF DEM adapter.

Each test writes a tiny GeoTIFF with rasterio into tmp_path, so the real
GDAL read/reproject paths are exercised.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from domain.terrain.errors import (
    AllNoDataError,
    InvalidBoundsError,
    InvalidRasterError,
    MissingCRSError,
)
from domain.terrain.value_objects import TerrainGrid
from src.infrastructure.terrain.geotiff_adapter import GeoTiffTerrainAdapter

NODATA = -9999.0
WGS84_TRANSFORM = from_origin(-90.0, 40.01, 0.001, 0.001)  # west, north, xres, yres


def write_dem(
    path,
    data: np.ndarray,
    *,
    crs: str | None = "EPSG:4326",
    transform=WGS84_TRANSFORM,
    nodata: float | None = None,
    count: int = 1,
):
    """Write a float32 GeoTIFF; every band gets the same data."""
    height, width = data.shape
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=count,
        dtype="float32",
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dst:
        for band in range(1, count + 1):
            dst.write(data.astype(np.float32), band)
    return path


def gradient(height: int = 10, width: int = 10) -> np.ndarray:
    return np.linspace(100, 200, height * width, dtype=np.float32).reshape(height, width)


@pytest.fixture
def adapter() -> GeoTiffTerrainAdapter:
    return GeoTiffTerrainAdapter()


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------
def test_wgs84_dem_loads_directly(adapter, tmp_path):
    data = gradient()
    path = write_dem(tmp_path / "dem.tif", data)

    grid = adapter.load_dem(path)

    assert isinstance(grid, TerrainGrid)
    assert grid.crs == "EPSG:4326"
    assert grid.data.shape == (10, 10)
    np.testing.assert_allclose(grid.data, data)
    assert grid.bounds.min_x == pytest.approx(-90.0)
    assert grid.bounds.max_y == pytest.approx(40.01)
    assert grid.bounds.max_x == pytest.approx(-89.99)
    assert grid.bounds.min_y == pytest.approx(40.0)
    assert grid.resolution == pytest.approx((0.001, 0.001))


def test_string_path_and_tiff_suffix(adapter, tmp_path):
    path = write_dem(tmp_path / "dem.TIFF", gradient())

    grid = adapter.load_dem(str(path))

    assert grid.data.shape == (10, 10)


def test_nodata_becomes_nan(adapter, tmp_path):
    data = gradient()
    data[0, 0] = NODATA
    data[5, 7] = NODATA
    path = write_dem(tmp_path / "dem.tif", data, nodata=NODATA)

    grid = adapter.load_dem(path)

    assert math.isnan(grid.data[0, 0])
    assert math.isnan(grid.data[5, 7])
    assert int(np.isnan(grid.data).sum()) == 2
    assert grid.data.dtype == np.float32


@pytest.mark.slow
def test_projected_dem_is_reprojected(adapter, tmp_path, caplog):
    # 2 km of Web Mercator south-east of (40N, 90W)
    transform = from_origin(-10_018_754.0, 4_865_942.0, 100.0, 100.0)
    path = write_dem(
        tmp_path / "mercator.tif",
        np.full((20, 20), 150.0, dtype=np.float32),
        crs="EPSG:3857",
        transform=transform,
    )

    with caplog.at_level(logging.INFO, logger="src.infrastructure.terrain.geotiff_adapter"):
        grid = adapter.load_dem(path)

    assert grid.crs == "EPSG:4326"
    assert grid.source_crs == "EPSG:3857"
    assert -90.01 < grid.bounds.min_x < grid.bounds.max_x < -89.97
    assert 39.98 < grid.bounds.min_y < grid.bounds.max_y < 40.01
    assert np.nanmax(np.abs(grid.data - 150.0)) < 1e-3
    assert "Reprojected" in caplog.text


def test_high_nodata_logs_warning(adapter, tmp_path, caplog):
    data = np.full((10, 10), NODATA, dtype=np.float32)
    data[0, :5] = 120.0
    path = write_dem(tmp_path / "sparse.tif", data, nodata=NODATA)

    with caplog.at_level(logging.WARNING):
        grid = adapter.load_dem(path)

    assert int(np.isfinite(grid.data).sum()) == 5
    assert "NoData" in caplog.text


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------
def test_missing_file_raises(adapter, tmp_path):
    with pytest.raises(FileNotFoundError):
        adapter.load_dem(tmp_path / "missing.tif")


def test_unsupported_extension_rejected(adapter, tmp_path):
    path = tmp_path / "dem.png"
    path.write_bytes(b"\x89PNG")

    with pytest.raises(InvalidRasterError):
        adapter.load_dem(path)


def test_empty_file_rejected(adapter, tmp_path):
    path = tmp_path / "empty.tif"
    path.write_bytes(b"")

    with pytest.raises(InvalidRasterError):
        adapter.load_dem(path)


def test_corrupted_file_rejected(adapter, tmp_path):
    path = tmp_path / "garbage.tif"
    path.write_bytes(b"this is not a tiff file at all")

    with pytest.raises(InvalidRasterError):
        adapter.load_dem(path)


def test_multiband_rejected(adapter, tmp_path):
    path = write_dem(tmp_path / "rgb.tif", gradient(), count=2)

    with pytest.raises(InvalidRasterError):
        adapter.load_dem(path)


def test_missing_crs_rejected(adapter, tmp_path):
    path = write_dem(tmp_path / "nocrs.tif", gradient(), crs=None)

    with pytest.raises(MissingCRSError):
        adapter.load_dem(path)


def test_all_nodata_rejected(adapter, tmp_path):
    path = write_dem(
        tmp_path / "blank.tif",
        np.full((4, 4), NODATA, dtype=np.float32),
        nodata=NODATA,
    )

    with pytest.raises(AllNoDataError):
        adapter.load_dem(path)


def test_bounds_outside_wgs84_rejected(adapter, tmp_path):
    path = write_dem(
        tmp_path / "antimeridian.tif",
        gradient(),
        transform=from_origin(179.5, 10.0, 0.1, 0.1),  # east edge at 180.5
    )

    with pytest.raises(InvalidBoundsError):
        adapter.load_dem(path)
