"""Grid Bounded Context - Hex Index.

Converts polygons to sets of H3 cells and H3 cells back to geometry.

Containment semantics: a cell covers a polygon when any part of the cell's
hexagon lies inside it (interiors intersect). H3's own polygon fill only
checks cell centroids, so it is used to seed candidates; the exact test is
done with shapely on each candidate's hexagon.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import h3
from shapely.geometry import Polygon
from shapely.prepared import prep

from domain.grid.errors import InvalidGeometryError
from domain.grid.geometry import PointLike, distinct_vertex_count, open_ring
from domain.grid.value_objects import MAX_RESOLUTION, MIN_RESOLUTION, GeoPoint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
METERS_PER_DEGREE_LAT = 111_320.0
# Edge walk spacing as a fraction of the H3 hexagon edge length
EDGE_SAMPLE_FRACTION = 0.5


def _check_resolution(resolution: int) -> None:
    if isinstance(resolution, bool) or not isinstance(resolution, int):
        raise ValueError(f"resolution must be an integer, got {resolution!r}")
    if not (MIN_RESOLUTION <= resolution <= MAX_RESOLUTION):
        raise ValueError(
            f"resolution must be in [{MIN_RESOLUTION}, {MAX_RESOLUTION}], got {resolution}"
        )


def _check_cell(cell_id: str) -> None:
    if not isinstance(cell_id, str) or not h3.is_valid_cell(cell_id):
        raise InvalidGeometryError(f"Invalid H3 cell ID: {cell_id!r}")


def _hexagon(cell_id: str) -> Polygon:
    """Cell boundary as a shapely polygon in (lng, lat) order."""
    return Polygon([(lng, lat) for lat, lng in h3.cell_to_boundary(cell_id)])


def _overlaps(prepared, cell_id: str) -> bool:
    """Interiors intersect; sharing only an edge or vertex does not count."""
    hexagon = _hexagon(cell_id)
    return prepared.intersects(hexagon) and not prepared.touches(hexagon)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def cells_covering_polygon(
    polygon: Iterable[PointLike], resolution: int
) -> frozenset[str]:
    """Return every H3 cell at ``resolution`` whose hexagon overlaps the polygon.

    Args:
        polygon: Ring of GeoPoints or ``(lat, lng)`` pairs, closed or open
        resolution: H3 resolution (0-15, higher is finer)

    Returns:
        Frozen set of cell IDs. Empty for fewer than 3 distinct vertices,
        zero-area or self-intersecting rings.

    Raises:
        InvalidGeometryError: If any coordinate is NaN or out of range
        ValueError: If resolution is not an integer in [0, 15]
    """
    _check_resolution(resolution)
    ring = open_ring(polygon)

    if distinct_vertex_count(ring) < 3:
        logger.debug("Polygon has <3 distinct vertices; no cells")
        return frozenset()

    shape = Polygon([(p.longitude, p.latitude) for p in ring])
    if not shape.is_valid or shape.area == 0:
        logger.debug("Degenerate polygon (zero area or self-intersecting); no cells")
        return frozenset()

    # Seed 1: cells whose centroids fall inside the polygon
    candidates: set[str] = set(
        h3.h3shape_to_cells(
            h3.LatLngPoly([(p.latitude, p.longitude) for p in ring]), resolution
        )
    )

    # Seed 2: cells along a densified walk of the edges, plus their 1-ring,
    # catches cells clipped by an edge whose centroid lies outside
    edge_m = h3.average_hexagon_edge_length(resolution, unit="m")
    spacing_deg = edge_m * EDGE_SAMPLE_FRACTION / METERS_PER_DEGREE_LAT
    for lng, lat in shape.exterior.segmentize(spacing_deg).coords:
        cell = h3.latlng_to_cell(lat, lng, resolution)
        candidates.update(h3.grid_disk(cell, 1))

    prepared = prep(shape)
    covering = frozenset(cell for cell in candidates if _overlaps(prepared, cell))

    logger.debug(
        "Polygon covered by %d cells at resolution %d (%d candidates)",
        len(covering),
        resolution,
        len(candidates),
    )
    return covering


def cell_center(cell_id: str) -> GeoPoint:
    """Return the center of a cell."""
    _check_cell(cell_id)
    lat, lng = h3.cell_to_latlng(cell_id)
    return GeoPoint(latitude=lat, longitude=lng)


def cell_boundary(cell_id: str) -> tuple[GeoPoint, ...]:
    """Return the cell's hexagon (or pentagon) as a closed ring."""
    _check_cell(cell_id)
    ring = tuple(
        GeoPoint(latitude=lat, longitude=lng) for lat, lng in h3.cell_to_boundary(cell_id)
    )
    return ring + ring[:1]


def cell_resolution(cell_id: str) -> int:
    _check_cell(cell_id)
    return h3.get_resolution(cell_id)


def cell_neighbors(cell_id: str, k: int = 1) -> frozenset[str]:
    """Cells at grid distance 1..k (the cell itself excluded)."""
    _check_cell(cell_id)
    return frozenset(h3.grid_disk(cell_id, k)) - {cell_id}
