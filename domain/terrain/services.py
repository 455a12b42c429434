"""Terrain Bounded Context - Domain Services.

Pure domain logic for landform classification and elevation sampling.
NO I/O operations - DEM loading is implemented by infrastructure adapters
under `src/infrastructure/terrain/geotiff_adapter.py` via domain ports.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from pathlib import Path

import numpy as np

from domain.grid.geometry import forward_azimuth, geodesic_distance
from domain.grid.hex_index import cell_center, cell_neighbors
from domain.grid.value_objects import BoundingBox, Compass, GeoPoint, Landform
from domain.terrain.errors import PointOutOfBoundsError
from domain.terrain.repositories import TerrainRepository
from domain.terrain.value_objects import SlopeAspect, TerrainGrid

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
RIDGE_STD_FACTOR = 1.0  # tpi above +1 std -> RIDGE
DRAW_STD_FACTOR = 1.0  # tpi below -1 std -> DRAW
FLAT_STD_FACTOR = 0.5  # |tpi| below 0.5 std -> FLAT
THERMAL_TUNNEL_MAX_SLOPE_DEG = 5.0


# ---------------------------------------------------------------------------
# Landform Classification (Topographic Position Index)
# ---------------------------------------------------------------------------
def classify_landform(
    elevation: float, neighborhood_mean: float, neighborhood_std: float
) -> Landform:
    """Classify a point as RIDGE / DRAW / FLAT / SLOPE from its TPI.

    tpi = elevation - neighborhood_mean, tested in priority order:
    RIDGE (tpi > std), DRAW (tpi < -std), FLAT (|tpi| < 0.5 std), else SLOPE.

    A perfectly flat neighbourhood (std == 0) is FLAT regardless of tpi.

    Raises:
        ValueError: If any input is non-finite or std is negative
    """
    if not all(math.isfinite(v) for v in (elevation, neighborhood_mean, neighborhood_std)):
        raise ValueError("Landform inputs must be finite")
    if neighborhood_std < 0:
        raise ValueError(f"neighborhood_std must be non-negative, got {neighborhood_std}")
    if neighborhood_std == 0:
        return Landform.FLAT

    tpi = elevation - neighborhood_mean
    if tpi > RIDGE_STD_FACTOR * neighborhood_std:
        return Landform.RIDGE
    if tpi < -DRAW_STD_FACTOR * neighborhood_std:
        return Landform.DRAW
    if abs(tpi) < FLAT_STD_FACTOR * neighborhood_std:
        return Landform.FLAT
    return Landform.SLOPE


def is_thermal_tunnel(landform: Landform | str, slope_degrees: float) -> bool:
    """Low-lying drainage suitable for evening thermal travel."""
    return Landform(landform) is Landform.DRAW and slope_degrees < THERMAL_TUNNEL_MAX_SLOPE_DEG


def neighborhood_stats(elevations: Iterable[float]) -> tuple[float, float]:
    """Mean and population standard deviation, ignoring NaN samples.

    Raises:
        ValueError: If no finite sample is available
    """
    values = np.asarray(list(elevations), dtype=np.float64)
    values = values[np.isfinite(values)]
    if values.size == 0:
        raise ValueError("No finite elevation samples in neighborhood")
    return float(values.mean()), float(values.std())


def percent_to_degrees(slope_percent: float) -> float:
    """Convert a rise/run percentage into a slope angle in degrees."""
    return math.degrees(math.atan(slope_percent / 100.0))


# ---------------------------------------------------------------------------
# Elevation Sampling
# ---------------------------------------------------------------------------
def is_within_bounds(point: GeoPoint, bounds: BoundingBox) -> bool:
    """Check if point is within bounds (inclusive)."""
    return (
        bounds.min_x <= point.longitude <= bounds.max_x
        and bounds.min_y <= point.latitude <= bounds.max_y
    )


def bilinear_interpolate(grid: TerrainGrid, point: GeoPoint) -> tuple[float, bool]:
    """Interpolate elevation at an arbitrary point from the 4 nearest pixels.

    Edge pixels are clamped, so bilinear degrades to linear on edges and
    nearest on corners. If any of the 4 neighbours is NaN, returns
    (NaN, True).

    Returns:
        Tuple of (elevation_m, is_nodata)
    """
    # Row 0 = north edge (max_y), so y is inverted
    px = (point.longitude - grid.bounds.min_x) / grid.resolution[0]
    py = (grid.bounds.max_y - point.latitude) / grid.resolution[1]

    height, width = grid.data.shape
    x0 = max(0, min(int(math.floor(px)), width - 1))
    y0 = max(0, min(int(math.floor(py)), height - 1))
    x1 = max(0, min(x0 + 1, width - 1))
    y1 = max(0, min(y0 + 1, height - 1))

    window = grid.data[[y0, y0, y1, y1], [x0, x1, x0, x1]].astype(np.float64)
    if np.isnan(window).any():
        return (float("nan"), True)
    top_left, top_right, bottom_left, bottom_right = window

    fx = px - math.floor(px)
    fy = py - math.floor(py)
    elevation = (
        top_left * (1 - fx) * (1 - fy)
        + top_right * fx * (1 - fy)
        + bottom_left * (1 - fx) * fy
        + bottom_right * fx * fy
    )
    return (float(elevation), False)


def elevation_at(grid: TerrainGrid, point: GeoPoint) -> float:
    """Elevation in meters at ``point``; NaN on NoData.

    Raises:
        PointOutOfBoundsError: If point is outside the grid bounds
    """
    if not is_within_bounds(point, grid.bounds):
        raise PointOutOfBoundsError(point, grid.bounds)
    elevation, _ = bilinear_interpolate(grid, point)
    return elevation


def sample_cell_elevations(
    grid: TerrainGrid, cell_ids: Iterable[str]
) -> dict[str, float]:
    """Elevation at each cell center; cells off the DEM or on NoData are omitted."""
    samples: dict[str, float] = {}
    for cell_id in cell_ids:
        try:
            elevation = elevation_at(grid, cell_center(cell_id))
        except PointOutOfBoundsError:
            continue
        if not math.isnan(elevation):
            samples[cell_id] = elevation
    return samples


def load_cell_elevations(
    repository: TerrainRepository, file_path: Path | str, cell_ids: Iterable[str]
) -> dict[str, float]:
    """Load a DEM through the terrain port and sample it at cell centers."""
    return sample_cell_elevations(repository.load_dem(file_path), cell_ids)


# ---------------------------------------------------------------------------
# Slope & Aspect
# ---------------------------------------------------------------------------
def slope_and_aspect(
    cell_id: str, elevations: Mapping[str, float]
) -> SlopeAspect | None:
    """Steepest gradient from a cell to its immediate H3 neighbours.

    Run is the geodesic distance between cell centers. Aspect points
    toward the steepest downhill neighbour.

    Returns:
        SlopeAspect, or None if the cell or all of its neighbours lack
        a finite elevation
    """
    elevation = elevations.get(cell_id)
    if elevation is None or not math.isfinite(elevation):
        return None

    center = cell_center(cell_id)
    steepest = 0.0
    best_drop = 0.0
    downhill: GeoPoint | None = None
    seen = False
    for neighbor in sorted(cell_neighbors(cell_id, 1)):
        other = elevations.get(neighbor)
        if other is None or not math.isfinite(other):
            continue
        seen = True
        neighbor_center = cell_center(neighbor)
        grade = (elevation - other) / geodesic_distance(center, neighbor_center)
        steepest = max(steepest, abs(grade))
        if grade > best_drop:
            best_drop = grade
            downhill = neighbor_center

    if not seen:
        return None
    aspect = (
        Compass.from_bearing(forward_azimuth(center, downhill))
        if downhill is not None
        else None
    )
    return SlopeAspect(slope_percent=steepest * 100.0, aspect=aspect)
