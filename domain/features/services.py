"""Features Bounded Context - Domain Services.

Relationship analysis between a drawn feature, the property boundary and
sibling features. Bearings and distances use an equirectangular (planar
lat/lng) approximation, which is acceptable at property scale; a geodesic
bearing would shift results near sector edges.

Analysis degrades field by field: bad or missing geometry yields "Unknown"
for the affected metric and never raises.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from shapely.geometry import Polygon

from domain.features.value_objects import (
    ANNOTATION,
    BEDDING,
    FOOD,
    SCREEN,
    STAND,
    TRAIL,
    Feature,
    GeometryType,
    PlanStats,
    ProximityEntry,
    SpatialMetrics,
    WindContext,
)
from domain.grid.errors import InvalidGeometryError
from domain.grid.geometry import (
    PointLike,
    distinct_vertex_count,
    line_length_ft,
    open_ring,
    polygon_area_acres,
    polygon_perimeter_ft,
)
from domain.grid.value_objects import Compass, angular_difference

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
UNKNOWN = "Unknown"
CENTRAL = "Central"

FEET_PER_DEGREE = 364_000  # Flat approximation used for centroid distances
PROXIMITY_THRESHOLD_FT = 1000  # exclusive
MAX_PROXIMITY_RESULTS = 5

LOWER_THIRD = 1.0 / 3.0
UPPER_THIRD = 2.0 / 3.0

EXPOSED_MAX_DEG = 45.0  # exclusive
SHELTERED_MIN_DEG = 135.0  # exclusive

COMPACT_MIN_RATIO = 0.6  # Polsby-Popper 4*pi*A / P^2
ELONGATED_MIN_ASPECT = 2.0  # long / short side of minimum rotated rectangle


# ---------------------------------------------------------------------------
# Orientation
# ---------------------------------------------------------------------------
def longest_edge_bearing(feature: Feature) -> Compass | None:
    """Compass bearing of the feature's single longest edge.

    Polygons include the closing edge and need 3 distinct vertices; lines
    need 2. Ties keep the first edge found.
    """
    points = feature.vertices
    if feature.geometry_type is GeometryType.POLYGON:
        if distinct_vertex_count(points) < 3:
            return None
        edges = zip(points, points[1:] + points[:1])
    elif feature.geometry_type is GeometryType.LINE:
        if distinct_vertex_count(points) < 2:
            return None
        edges = zip(points, points[1:])
    else:
        return None

    longest = 0.0
    bearing = None
    for start, end in edges:
        d_lng = end.longitude - start.longitude
        d_lat = end.latitude - start.latitude
        length = math.hypot(d_lng, d_lat)
        if length > longest:
            longest = length
            bearing = math.degrees(math.atan2(d_lng, d_lat))

    return Compass.from_bearing(bearing) if bearing is not None else None


# ---------------------------------------------------------------------------
# Relative Position
# ---------------------------------------------------------------------------
def relative_position(
    feature: Feature, boundary: Iterable[PointLike] | None
) -> str:
    """Place the feature centroid into thirds of the boundary's bounding box.

    Returns "North", "South-East", "Central", ... or "Unknown" when the
    boundary is missing, malformed or has zero extent.
    """
    if boundary is None:
        return UNKNOWN
    try:
        ring = open_ring(boundary)
    except InvalidGeometryError:
        return UNKNOWN
    center = feature.centroid
    if distinct_vertex_count(ring) < 3 or center is None:
        return UNKNOWN

    lats = [p.latitude for p in ring]
    lngs = [p.longitude for p in ring]
    lat_range = max(lats) - min(lats)
    lng_range = max(lngs) - min(lngs)
    if lat_range == 0 or lng_range == 0:
        return UNKNOWN

    lat_pos = (center.latitude - min(lats)) / lat_range
    lng_pos = (center.longitude - min(lngs)) / lng_range

    parts = []
    if lat_pos < LOWER_THIRD:
        parts.append("South")
    elif lat_pos > UPPER_THIRD:
        parts.append("North")
    if lng_pos < LOWER_THIRD:
        parts.append("West")
    elif lng_pos > UPPER_THIRD:
        parts.append("East")

    return "-".join(parts) if parts else CENTRAL


# ---------------------------------------------------------------------------
# Proximity
# ---------------------------------------------------------------------------
def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def proximity(
    feature: Feature,
    all_features: Iterable[Feature],
    threshold_ft: float = PROXIMITY_THRESHOLD_FT,
    limit: int = MAX_PROXIMITY_RESULTS,
) -> tuple[ProximityEntry, ...]:
    """Nearest sibling features by centroid distance, ascending.

    The feature itself is excluded by identity or id; distinct features
    with identical geometry are still reported.
    """
    center = feature.centroid
    if center is None:
        return ()

    nearby: list[ProximityEntry] = []
    for other in all_features:
        if other is feature or other.id == feature.id:
            continue
        other_center = other.centroid
        if other_center is None:
            continue
        distance_deg = math.hypot(
            other_center.longitude - center.longitude,
            other_center.latitude - center.latitude,
        )
        distance_ft = _round_half_up(distance_deg * FEET_PER_DEGREE)
        if distance_ft < threshold_ft:
            nearby.append(
                ProximityEntry(
                    feature_id=other.id,
                    label=other.label or other.kind,
                    kind=other.kind,
                    distance_ft=distance_ft,
                )
            )

    nearby.sort(key=lambda entry: entry.distance_ft)
    return tuple(nearby[:limit])


# ---------------------------------------------------------------------------
# Wind Exposure
# ---------------------------------------------------------------------------
def wind_exposure(orientation: Compass | None, prevailing_wind: Compass | str) -> str:
    """Coarse exposure class from the angle between orientation and wind."""
    if orientation is None:
        return UNKNOWN
    wind = Compass.parse(prevailing_wind)
    difference = angular_difference(orientation, wind)
    if difference < EXPOSED_MAX_DEG:
        return f"Exposed to {wind.value}"
    if difference > SHELTERED_MIN_DEG:
        return "Sheltered (leeward)"
    return "Partial exposure"


# ---------------------------------------------------------------------------
# Shape
# ---------------------------------------------------------------------------
def classify_shape(feature: Feature) -> str:
    """compact / elongated / irregular for polygons, "Unknown" otherwise.

    Measured on a local equirectangular projection so that a degree of
    longitude is scaled by cos(latitude).
    """
    if feature.geometry_type is not GeometryType.POLYGON:
        return UNKNOWN
    points = feature.vertices
    if distinct_vertex_count(points) < 3:
        return UNKNOWN

    scale = math.cos(math.radians(sum(p.latitude for p in points) / len(points)))
    shape = Polygon([(p.longitude * scale, p.latitude) for p in points])
    if not shape.is_valid or shape.area == 0:
        return UNKNOWN

    corners = list(shape.minimum_rotated_rectangle.exterior.coords)
    sides = sorted(math.dist(corners[i], corners[i + 1]) for i in range(2))
    if sides[0] == 0 or sides[1] / sides[0] >= ELONGATED_MIN_ASPECT:
        return "elongated"
    if 4 * math.pi * shape.area / shape.length**2 >= COMPACT_MIN_RATIO:
        return "compact"
    return "irregular"


# ---------------------------------------------------------------------------
# Main Service: analyze
# ---------------------------------------------------------------------------
def _perimeter_ft(feature: Feature) -> float:
    if feature.geometry_type is GeometryType.POLYGON:
        return polygon_perimeter_ft(feature.vertices)
    if feature.geometry_type is GeometryType.LINE:
        return line_length_ft(feature.vertices)
    return 0.0


def analyze(
    feature: Feature,
    boundary: Iterable[PointLike] | None,
    all_features: Iterable[Feature],
    wind_context: WindContext | None = None,
) -> SpatialMetrics:
    """Relationship metrics for one drawn feature.

    Args:
        feature: The feature to describe
        boundary: Property boundary ring, or None if not locked yet
        all_features: Every drawn feature (may include ``feature`` itself)
        wind_context: Prevailing wind; NW when not given

    Returns:
        SpatialMetrics; underivable fields hold "Unknown"
    """
    wind = (wind_context or WindContext()).prevailing_wind
    bearing = longest_edge_bearing(feature)

    return SpatialMetrics(
        label=feature.label or feature.kind or "Unknown Feature",
        acreage=feature.acres,
        perimeter_ft=_round_half_up(_perimeter_ft(feature)),
        shape=classify_shape(feature),
        orientation=bearing.value if bearing is not None else UNKNOWN,
        relative_position=relative_position(feature, boundary),
        proximity=proximity(feature, all_features),
        wind_exposure=wind_exposure(bearing, wind),
        notes=feature.note,
    )


def format_analysis(metrics: SpatialMetrics) -> str:
    """Render metrics as the text block handed to chat and report writers."""
    lines = [
        "ANALYSIS DATA:",
        f'    - User Label: "{metrics.label}"',
        f"    - Acreage: {metrics.acreage:.2f} acres",
        f"    - Perimeter: {metrics.perimeter_ft}ft",
        f"    - Shape: {metrics.shape}",
        f"    - Orientation: {metrics.orientation}",
        f"    - Position: {metrics.relative_position}",
        f"    - Wind Relationship: {metrics.wind_exposure}",
    ]
    if metrics.proximity:
        nearby = ", ".join(f"{p.label} ({p.distance_ft}ft)" for p in metrics.proximity)
        lines.append(f"    - Nearby Features: {nearby}")
    if metrics.notes:
        lines.append(f"    - User Notes: {metrics.notes}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Plan Roll-up
# ---------------------------------------------------------------------------
def summarize_plan(
    boundary: Sequence[PointLike] | None, features: Iterable[Feature]
) -> PlanStats:
    """Acreage by habitat kind and counts of linear/point features."""
    features = list(features)
    try:
        boundary_acres = polygon_area_acres(open_ring(boundary)) if boundary else 0.0
    except InvalidGeometryError:
        boundary_acres = 0.0

    def acres_of(kind: str) -> float:
        return sum(f.acres for f in features if f.kind == kind)

    def count_of(kind: str) -> int:
        return sum(1 for f in features if f.kind == kind)

    return PlanStats(
        boundary_acres=boundary_acres,
        feature_count=len(features),
        food_acres=acres_of(FOOD),
        bedding_acres=acres_of(BEDDING),
        screen_acres=acres_of(SCREEN),
        trail_count=count_of(TRAIL),
        stand_count=count_of(STAND),
        note_count=count_of(ANNOTATION),
    )
