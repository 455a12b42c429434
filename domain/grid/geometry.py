"""Grid Bounded Context - Geometry Helpers.

Coordinate coercion and geodesic measurement shared by every context.
Inputs are validated here, at the component boundary; everything downstream
assumes finite, in-range coordinates.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import ValidationError
from pyproj import Geod

from domain.grid.errors import InvalidGeometryError
from domain.grid.value_objects import GeoPoint

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SQ_METERS_PER_ACRE = 4046.8564224
FEET_PER_METER = 3.280839895

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")

PointLike = GeoPoint | Sequence[float]


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------
def as_point(value: PointLike) -> GeoPoint:
    """Coerce a GeoPoint or a ``(lat, lng)`` pair into a GeoPoint.

    Raises:
        InvalidGeometryError: NaN, infinite, out-of-range or malformed input
    """
    if isinstance(value, GeoPoint):
        return value
    try:
        lat, lng = value
        return GeoPoint(latitude=lat, longitude=lng)
    except (TypeError, ValueError, ValidationError) as e:
        raise InvalidGeometryError(f"Invalid coordinate {value!r}: {e}") from e


def open_ring(polygon: Iterable[PointLike]) -> tuple[GeoPoint, ...]:
    """Validate a ring and drop its closing duplicate vertex, if present.

    The whole ring is validated before anything is returned, so a single
    bad vertex fails the call with no partial result.

    Raises:
        InvalidGeometryError: If ``polygon`` is not iterable or holds a
            malformed vertex
    """
    try:
        points = tuple(as_point(p) for p in polygon)
    except TypeError as e:
        raise InvalidGeometryError(
            f"Polygon must be a sequence of points, got {type(polygon).__name__}"
        ) from e
    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]
    return points


def closed_ring(polygon: Iterable[PointLike]) -> tuple[GeoPoint, ...]:
    """Validate a ring and make sure its last vertex repeats the first."""
    points = open_ring(polygon)
    return points + points[:1]


def distinct_vertex_count(points: Sequence[GeoPoint]) -> int:
    return len(set(points))


def coordinate_centroid(points: Sequence[GeoPoint]) -> GeoPoint | None:
    """Plain coordinate average; None for an empty sequence."""
    if not points:
        return None
    lat = sum(p.latitude for p in points) / len(points)
    lng = sum(p.longitude for p in points) / len(points)
    return GeoPoint(latitude=lat, longitude=lng)


# ---------------------------------------------------------------------------
# Geodesic Measurement
# ---------------------------------------------------------------------------
def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Geodesic distance between two points in meters (always positive)."""
    _, _, distance = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))


def forward_azimuth(start: GeoPoint, end: GeoPoint) -> float:
    """Initial bearing from start to end, degrees clockwise from north [0, 360)."""
    azimuth, _, _ = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(azimuth % 360.0)


def polygon_area_acres(ring: Sequence[GeoPoint]) -> float:
    """Geodesic area of a ring in acres; 0 for fewer than 3 distinct vertices."""
    points = open_ring(ring)
    if distinct_vertex_count(points) < 3:
        return 0.0
    area_m2, _ = _geod.polygon_area_perimeter(
        [p.longitude for p in points], [p.latitude for p in points]
    )
    return abs(float(area_m2)) / SQ_METERS_PER_ACRE


def polygon_perimeter_ft(ring: Sequence[GeoPoint]) -> float:
    """Geodesic perimeter of a ring in feet (closing edge included)."""
    points = open_ring(ring)
    if len(points) < 2:
        return 0.0
    _, perimeter_m = _geod.polygon_area_perimeter(
        [p.longitude for p in points], [p.latitude for p in points]
    )
    return float(perimeter_m) * FEET_PER_METER


def line_length_ft(points: Sequence[GeoPoint]) -> float:
    """Geodesic length of an open polyline in feet."""
    if len(points) < 2:
        return 0.0
    length_m = _geod.line_length(
        [p.longitude for p in points], [p.latitude for p in points]
    )
    return float(length_m) * FEET_PER_METER
