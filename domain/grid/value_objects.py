"""Grid Bounded Context - Value Objects.

Immutable data structures for geographic points, extents, compass directions
and per-cell habitat state. All validation occurs at construction time via
Pydantic.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Resolution Constants
# ---------------------------------------------------------------------------
BASE_RESOLUTION = 10  # Whole-property grids (~0.1 acre hexes)
PRECISION_RESOLUTION = 12  # Precision overlays
MIN_RESOLUTION = 0
MAX_RESOLUTION = 15

DEFAULT_PERMEABILITY = 0.5  # Explicit neutral value for freshly generated cells


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Invariants:
        GP-1: latitude in [-90, 90]
        GP-2: longitude in [-180, 180]
        GP-3: both finite
    """

    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    model_config = ConfigDict(frozen=True)


class BoundingBox(BaseModel):
    """Geographic extent in EPSG:4326 (Value Object).

    Used both for DEM extents and for map viewports handed over with
    vision detections. Invalid boxes cannot be instantiated.
    """

    min_x: float  # Western boundary (longitude)
    min_y: float  # Southern boundary (latitude)
    max_x: float  # Eastern boundary (longitude)
    max_y: float  # Northern boundary (latitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        if not (-180 <= self.min_x <= 180):
            raise ValueError(f"min_x longitude out of range: {self.min_x}")
        if not (-180 <= self.max_x <= 180):
            raise ValueError(f"max_x longitude out of range: {self.max_x}")
        if not (-90 <= self.min_y <= 90):
            raise ValueError(f"min_y latitude out of range: {self.min_y}")
        if not (-90 <= self.max_y <= 90):
            raise ValueError(f"max_y latitude out of range: {self.max_y}")
        if not (self.min_x < self.max_x):
            raise ValueError(
                f"Invalid x ordering: min_x={self.min_x} >= max_x={self.max_x}"
            )
        if not (self.min_y < self.max_y):
            raise ValueError(
                f"Invalid y ordering: min_y={self.min_y} >= max_y={self.max_y}"
            )
        return self

    @classmethod
    def from_edges(
        cls, north: float, south: float, east: float, west: float
    ) -> "BoundingBox":
        """Build from map-style edge names."""
        return cls(min_x=west, min_y=south, max_x=east, max_y=north)

    @property
    def north(self) -> float:
        return self.max_y

    @property
    def south(self) -> float:
        return self.min_y

    @property
    def east(self) -> float:
        return self.max_x

    @property
    def west(self) -> float:
        return self.min_x

    def corners(self) -> tuple[GeoPoint, ...]:
        """Closed ring NW -> NE -> SE -> SW -> NW."""
        nw = GeoPoint(latitude=self.north, longitude=self.west)
        return (
            nw,
            GeoPoint(latitude=self.north, longitude=self.east),
            GeoPoint(latitude=self.south, longitude=self.east),
            GeoPoint(latitude=self.south, longitude=self.west),
            nw,
        )


# ---------------------------------------------------------------------------
# Compass
# ---------------------------------------------------------------------------
class Compass(str, Enum):
    """Coarse 8-way compass direction."""

    N = "N"
    NE = "NE"
    E = "E"
    SE = "SE"
    S = "S"
    SW = "SW"
    W = "W"
    NW = "NW"

    @property
    def bearing(self) -> float:
        """Canonical bearing in degrees clockwise from north."""
        return _COMPASS_ORDER.index(self) * 45.0

    @classmethod
    def from_bearing(cls, bearing: float) -> "Compass":
        """Map a bearing to the 45-degree sector centred on each direction.

        Sector lower edges are inclusive: 22.5 is NE, 337.5 is N.
        """
        normalized = bearing % 360.0
        index = int(((normalized + 22.5) % 360.0) // 45.0)
        return _COMPASS_ORDER[index]

    @classmethod
    def parse(cls, value: "Compass | str") -> "Compass":
        """Accept a member or its case-insensitive name ("nw", " NW ")."""
        if isinstance(value, Compass):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            raise ValueError(f"Unknown compass direction: {value!r}") from e


_COMPASS_ORDER: tuple[Compass, ...] = tuple(Compass)


def angular_difference(a: Compass, b: Compass) -> float:
    """Circular difference between two compass directions, in [0, 180]."""
    diff = abs(a.bearing - b.bearing) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


# ---------------------------------------------------------------------------
# Cell Classification Tags
# ---------------------------------------------------------------------------
class TerrainTag(str, Enum):
    """Closed set of habitat classifications a cell can carry."""

    UNCLASSIFIED = "unclassified"
    HEAVY_TIMBER = "heavy_timber"
    SCRUB_BRUSH = "scrub_brush"
    OPEN_PASTURE = "open_pasture"
    BEDDING = "bedding"
    FOOD_PLOT = "food_plot"
    WATER = "water"

    @classmethod
    def from_label(cls, label: str) -> "TerrainTag":
        """Parse a free-form label; unknown labels become UNCLASSIFIED."""
        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.UNCLASSIFIED


class Landform(str, Enum):
    """Topographic-position landform classes."""

    RIDGE = "RIDGE"
    DRAW = "DRAW"
    FLAT = "FLAT"
    SLOPE = "SLOPE"


# ---------------------------------------------------------------------------
# Cell Records
# ---------------------------------------------------------------------------
class CellUpdate(BaseModel):
    """Partial cell state for field-level merges (Value Object).

    Only fields explicitly supplied are merged; absent fields keep their
    prior values. Unknown fields are rejected. ``terrain`` can be changed but
    never cleared: reset a cell with ``TerrainTag.UNCLASSIFIED``.
    """

    terrain: TerrainTag | None = None
    elevation_m: float | None = Field(default=None, allow_inf_nan=False)
    permeability: float | None = Field(default=None, ge=0, le=1)
    confidence: float | None = Field(default=None, ge=0, le=1)
    landform: Landform | None = None
    slope_percent: float | None = Field(default=None, ge=0)
    aspect: Compass | None = None
    bedding_score: int | None = None
    movement_cost: int | None = None
    thermal_tunnel: bool | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("terrain", mode="before")
    @classmethod
    def reject_null_terrain(cls, value: object) -> object:
        if value is None:
            raise ValueError("terrain cannot be cleared; use TerrainTag.UNCLASSIFIED")
        return value


class CellRecord(BaseModel):
    """Habitat state of one hex cell (Value Object).

    Invariants:
        CR-1: permeability and confidence, when set, lie in [0, 1]
        CR-2: user_modified only moves False -> True through updates
        CR-3: terrain is always a TerrainTag; elevation_m, when set, is finite
    """

    cell_id: str
    terrain: TerrainTag = TerrainTag.UNCLASSIFIED
    elevation_m: float | None = Field(default=None, allow_inf_nan=False)
    permeability: float | None = Field(default=None, ge=0, le=1)
    confidence: float | None = Field(default=None, ge=0, le=1)
    user_modified: bool = False
    # Enrichment outputs
    landform: Landform | None = None
    slope_percent: float | None = Field(default=None, ge=0)
    aspect: Compass | None = None
    bedding_score: int | None = None
    movement_cost: int | None = None
    thermal_tunnel: bool | None = None

    model_config = ConfigDict(frozen=True)

    def merged(self, update: CellUpdate, user_modified: bool) -> "CellRecord":
        """Return a re-validated copy with the update's explicitly-set fields applied."""
        changes = update.model_dump(exclude_unset=True)
        if user_modified:
            changes["user_modified"] = True
        return CellRecord.model_validate({**self.model_dump(), **changes})


# ---------------------------------------------------------------------------
# Grid Project / Snapshot / Statistics
# ---------------------------------------------------------------------------
class GridProject(BaseModel):
    """Project metadata attached to a Grid (Value Object)."""

    boundary: tuple[GeoPoint, ...] = ()
    base_resolution: int = Field(
        default=BASE_RESOLUTION, ge=MIN_RESOLUTION, le=MAX_RESOLUTION
    )
    total_acres: float = Field(default=0.0, ge=0)

    model_config = ConfigDict(frozen=True)


class GridSnapshot(BaseModel):
    """Complete, immutable state of one project's grid.

    The cells mapping is never mutated after construction; every Grid
    write produces a new snapshot.
    """

    project: GridProject = Field(default_factory=GridProject)
    cells: dict[str, CellRecord] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_keys(self) -> "GridSnapshot":
        for key, record in self.cells.items():
            if key != record.cell_id:
                raise ValueError(
                    f"Cell key {key} does not match record cell_id {record.cell_id}"
                )
        return self


class GridStatistics(BaseModel):
    """Aggregate read-out of a grid for dashboards and reports."""

    total_cells: int = Field(ge=0)
    per_terrain_counts: dict[TerrainTag, int]
    avg_permeability: float = Field(ge=0, le=1)
    classified_count: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)
