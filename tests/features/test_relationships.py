"""Tests for the Feature Relationship Analyzer.

Boundary fixture (local): lat [40.0, 40.0045], lon [-90.0, -89.994]
(~500 m x ~510 m). Distances use the flat 364,000 ft/deg approximation.
"""

from __future__ import annotations

import math

import pytest

from domain.features.services import (
    analyze,
    classify_shape,
    format_analysis,
    longest_edge_bearing,
    proximity,
    relative_position,
    summarize_plan,
    wind_exposure,
)
from domain.features.value_objects import (
    BEDDING,
    FOOD,
    STAND,
    TRAIL,
    Feature,
    GeometryType,
    WindContext,
)
from domain.grid.value_objects import Compass, GeoPoint
from tests.conftest_utils import square, square_around

PLOT_SOUTH = 40.0
PLOT_NORTH = 40.0045
PLOT_WEST = -90.0
PLOT_EAST = -89.994


def polygon(points, **fields) -> Feature:
    return Feature(geometry_type=GeometryType.POLYGON, coordinates=points, **fields)


def point(lat: float, lng: float, **fields) -> Feature:
    return Feature(geometry_type=GeometryType.POINT, coordinates=[(lat, lng)], **fields)


@pytest.fixture
def plot_boundary() -> list[GeoPoint]:
    return square(PLOT_SOUTH, PLOT_WEST, PLOT_NORTH, PLOT_EAST)


@pytest.fixture
def north_plot() -> Feature:
    return polygon(square_around(40.0040, -89.997, 0.0002), kind=FOOD, label="North Plot")


@pytest.fixture
def south_plot() -> Feature:
    return polygon(square_around(40.0007, -89.997, 0.0002), kind=FOOD, label="South Plot")


# ===========================================================================
# End-to-end Scenario
# ===========================================================================
def test_north_and_south_plots_are_not_proximate(plot_boundary, north_plot, south_plot):
    features = [north_plot, south_plot]

    north = analyze(north_plot, plot_boundary, features)
    south = analyze(south_plot, plot_boundary, features)

    # 0.0033 deg apart, ~1201 ft
    assert north.proximity == ()
    assert south.proximity == ()
    assert north.relative_position == "North"
    assert south.relative_position == "South"


def test_analyze_polygon_metrics(plot_boundary, north_plot):
    metrics = analyze(north_plot, plot_boundary, [north_plot])

    assert metrics.label == "North Plot"
    assert metrics.acreage == pytest.approx(north_plot.acres)
    assert metrics.perimeter_ft > 0
    assert metrics.shape == "compact"
    assert metrics.orientation in {c.value for c in Compass}


def test_analyze_defaults_to_northwest_wind(plot_boundary):
    ridge = polygon(square(40.001, -89.999, 40.0011, -89.995))  # long E-W strip

    default = analyze(ridge, plot_boundary, [])
    explicit = analyze(ridge, plot_boundary, [], WindContext(prevailing_wind=Compass.E))

    assert default.orientation == "E"
    assert default.wind_exposure == "Partial exposure"
    assert explicit.wind_exposure == "Exposed to E"


def test_analyze_point_feature_degrades_to_unknown(plot_boundary):
    stand = point(40.002, -89.997, kind=STAND, note="Ladder stand")

    metrics = analyze(stand, plot_boundary, [stand])

    assert metrics.label == STAND
    assert metrics.acreage == 0.0
    assert metrics.perimeter_ft == 0
    assert metrics.shape == "Unknown"
    assert metrics.orientation == "Unknown"
    assert metrics.wind_exposure == "Unknown"
    assert metrics.relative_position == "Central"
    assert metrics.notes == "Ladder stand"


def test_analyze_without_boundary(north_plot):
    assert analyze(north_plot, None, []).relative_position == "Unknown"


def test_analyze_with_non_iterable_boundary():
    stand = point(40.002, -89.997, kind=STAND)

    assert analyze(stand, 5, [stand]).relative_position == "Unknown"


def test_line_perimeter_is_path_length():
    trail = Feature(
        geometry_type=GeometryType.LINE,
        coordinates=[(40.0, -90.0), (40.001, -90.0)],
        kind=TRAIL,
    )

    metrics = analyze(trail, None, [])

    # 0.001 deg of latitude is ~111 m (~364 ft)
    assert metrics.perimeter_ft == pytest.approx(364, abs=3)
    assert metrics.orientation == "N"


def test_centroid_ignores_closing_vertex():
    closed = polygon(square(40.0, -90.0, 40.002, -89.996))
    opened = polygon(closed.coordinates[:-1])

    assert closed.centroid == opened.centroid
    assert closed.centroid.latitude == pytest.approx(40.001)
    assert closed.centroid.longitude == pytest.approx(-89.998)


# ===========================================================================
# Orientation
# ===========================================================================
def test_longest_edge_bearing_for_rectangle():
    strip = polygon(square(40.0, -90.0, 40.0001, -89.999))

    assert longest_edge_bearing(strip) == Compass.E


def test_longest_edge_bearing_includes_closing_edge():
    # closing edge (last -> first) runs roughly south and is the longest
    ring = [(40.0, -90.0), (40.0005, -89.9995), (40.003, -89.9995)]

    assert longest_edge_bearing(polygon(ring)) == Compass.S


def test_longest_edge_bearing_needs_enough_vertices():
    sliver = polygon([(40.0, -90.0), (40.001, -90.0)])
    dot = point(40.0, -90.0)

    assert longest_edge_bearing(sliver) is None
    assert longest_edge_bearing(dot) is None


# ===========================================================================
# Relative Position
# ===========================================================================
@pytest.mark.parametrize(
    ("lat", "lng", "expected"),
    [
        (40.0040, -89.9995, "North-West"),
        (40.0040, -89.9945, "North-East"),
        (40.0005, -89.9945, "South-East"),
        (40.0022, -89.997, "Central"),
        (40.0022, -89.9995, "West"),
    ],
)
def test_relative_position_thirds(plot_boundary, lat, lng, expected):
    assert relative_position(point(lat, lng), plot_boundary) == expected


@pytest.mark.parametrize(
    "boundary",
    [
        None,
        [],
        [(40.0, -90.0), (40.001, -90.0)],
        [(40.0, -90.0), (40.0, -89.99), (40.0, -89.98)],
        [(40.0, -90.0), (math.nan, -90.0), (40.001, -89.99)],
        5,
        object(),
    ],
)
def test_relative_position_unknown_for_bad_boundary(north_plot, boundary):
    assert relative_position(north_plot, boundary) == "Unknown"


# ===========================================================================
# Proximity
# ===========================================================================
def test_proximity_sorted_and_capped(north_plot):
    others = [
        point(40.0040 + 0.0001 * i, -89.997, label=f"Stand {i}", kind=STAND)
        for i in range(7, 0, -1)
    ]

    nearby = proximity(north_plot, [north_plot, *others])

    assert [p.label for p in nearby] == [f"Stand {i}" for i in range(1, 6)]
    assert [p.distance_ft for p in nearby] == sorted(p.distance_ft for p in nearby)
    assert nearby[0].distance_ft == 36  # 0.0001 deg * 364,000 ft/deg rounded


def test_proximity_excludes_self_by_id(north_plot):
    same = north_plot.model_copy()

    assert proximity(north_plot, [north_plot, same]) == ()


def test_proximity_reports_distinct_feature_with_identical_geometry(north_plot):
    twin = polygon(north_plot.coordinates, kind=BEDDING)

    nearby = proximity(north_plot, [twin])

    assert len(nearby) == 1
    assert nearby[0].feature_id == twin.id
    assert nearby[0].label == BEDDING
    assert nearby[0].distance_ft == 0


def test_proximity_threshold(north_plot):
    near = point(40.0040, -89.997 + 0.0027, label="near")  # ~983 ft
    far = point(40.0040, -89.997 + 0.0028, label="far")  # ~1019 ft

    assert [p.label for p in proximity(north_plot, [near, far])] == ["near"]


# ===========================================================================
# Wind Exposure
# ===========================================================================
@pytest.mark.parametrize(
    ("orientation", "wind", "expected"),
    [
        (Compass.N, Compass.N, "Exposed to N"),
        (Compass.NW, "nw", "Exposed to NW"),
        (Compass.NE, Compass.N, "Partial exposure"),
        (Compass.E, Compass.NW, "Partial exposure"),
        (Compass.SE, Compass.NW, "Sheltered (leeward)"),
        (Compass.S, Compass.N, "Sheltered (leeward)"),
        (None, Compass.NW, "Unknown"),
    ],
)
def test_wind_exposure(orientation, wind, expected):
    assert wind_exposure(orientation, wind) == expected


# ===========================================================================
# Shape
# ===========================================================================
def test_square_is_compact(north_plot):
    assert classify_shape(north_plot) == "compact"


def test_long_strip_is_elongated():
    strip = polygon(square(40.0, -90.0, 40.0001, -89.999))

    assert classify_shape(strip) == "elongated"


def test_l_shape_is_irregular():
    unit_lat = 0.001
    unit_lng = 0.001 / math.cos(math.radians(40.0015))
    corners = [(0, 0), (3, 0), (3, 1), (1, 1), (1, 3), (0, 3)]
    ring = [(40.0 + y * unit_lat, -90.0 + x * unit_lng) for x, y in corners]

    assert classify_shape(polygon(ring)) == "irregular"


def test_shape_unknown_for_non_polygons():
    assert classify_shape(point(40.0, -90.0)) == "Unknown"
    assert classify_shape(polygon([(40.0, -90.0), (40.001, -90.0)])) == "Unknown"


# ===========================================================================
# Acreage
# ===========================================================================
def test_acreage_of_small_square():
    # ~111 m x ~111 m at 40N
    plot = polygon(square(40.0, -90.0, 40.001, -89.9987))

    assert plot.acres == pytest.approx(3.05, rel=0.01)


def test_open_and_closed_rings_have_same_acreage(north_plot):
    open_plot = polygon(north_plot.coordinates[:-1])

    assert open_plot.acres == pytest.approx(north_plot.acres)


# ===========================================================================
# Formatting
# ===========================================================================
def test_format_analysis(plot_boundary, north_plot):
    neighbor = point(40.0041, -89.997, label="Oak Stand", kind=STAND)
    metrics = analyze(
        north_plot.model_copy(update={"note": "Clover, frost seeded"}),
        plot_boundary,
        [north_plot, neighbor],
    )

    text = format_analysis(metrics)
    lines = text.splitlines()

    assert lines[0] == "ANALYSIS DATA:"
    assert '    - User Label: "North Plot"' in lines
    assert "    - Position: North" in lines
    assert f"    - Acreage: {metrics.acreage:.2f} acres" in lines
    assert "    - Nearby Features: Oak Stand (36ft)" in lines
    assert lines[-1] == "    - User Notes: Clover, frost seeded"


def test_format_analysis_omits_empty_sections(north_plot):
    text = format_analysis(analyze(north_plot, None, []))

    assert "Nearby Features" not in text
    assert "User Notes" not in text


# ===========================================================================
# Plan Roll-up
# ===========================================================================
def test_summarize_plan(plot_boundary, north_plot, south_plot):
    bedding = polygon(square_around(40.002, -89.998, 0.0003), kind=BEDDING)
    features = [
        north_plot,
        south_plot,
        bedding,
        Feature(
            geometry_type=GeometryType.LINE,
            coordinates=[(40.001, -89.999), (40.003, -89.999)],
            kind=TRAIL,
        ),
        point(40.002, -89.996, kind=STAND),
    ]

    stats = summarize_plan(plot_boundary, features)

    assert stats.feature_count == 5
    assert stats.food_acres == pytest.approx(north_plot.acres + south_plot.acres)
    assert stats.bedding_acres == pytest.approx(bedding.acres)
    assert stats.screen_acres == 0.0
    assert stats.trail_count == 1
    assert stats.stand_count == 1
    assert stats.note_count == 0
    assert stats.boundary_acres == pytest.approx(63.3, rel=0.01)


def test_summarize_plan_without_boundary():
    stats = summarize_plan(None, [])

    assert stats.boundary_acres == 0.0
    assert stats.feature_count == 0


def test_summarize_plan_with_non_iterable_boundary():
    assert summarize_plan(5, []).boundary_acres == 0.0
