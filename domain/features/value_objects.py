"""Features Bounded Context - Value Objects.

User-drawn geometries and the metrics derived from them. Features are
independent of the Grid: they are analysed against the boundary and each
other, never written into cell records.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.grid.geometry import coordinate_centroid, polygon_area_acres
from domain.grid.value_objects import Compass, GeoPoint

# Feature kinds produced by the drawing tools
FOOD = "food"
BEDDING = "bedding"
SCREEN = "screen"
TRAIL = "trail"
STAND = "stand"
ANNOTATION = "annotation"


class GeometryType(str, Enum):
    POLYGON = "polygon"
    LINE = "line"
    POINT = "point"


class Feature(BaseModel):
    """A user-drawn polygon, line or point (Value Object).

    ``id`` distinguishes features with identical geometry; a fresh one is
    generated unless supplied. Coordinates may be GeoPoints or
    ``(lat, lng)`` pairs.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    geometry_type: GeometryType
    coordinates: tuple[GeoPoint, ...]
    kind: str = "feature"
    label: str = ""
    note: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("coordinates", mode="before")
    @classmethod
    def coerce_pairs(cls, value: Any) -> Any:
        if isinstance(value, Sequence) and not isinstance(value, str):
            return tuple(
                {"latitude": p[0], "longitude": p[1]}
                if isinstance(p, Sequence) and not isinstance(p, str)
                else p
                for p in value
            )
        return value

    @property
    def vertices(self) -> tuple[GeoPoint, ...]:
        """Coordinates without a polygon's closing duplicate vertex."""
        points = self.coordinates
        if (
            self.geometry_type is GeometryType.POLYGON
            and len(points) > 1
            and points[0] == points[-1]
        ):
            return points[:-1]
        return points

    @property
    def centroid(self) -> GeoPoint | None:
        """Coordinate average of the vertices."""
        return coordinate_centroid(self.vertices)

    @property
    def acres(self) -> float:
        if self.geometry_type is not GeometryType.POLYGON:
            return 0.0
        return polygon_area_acres(self.vertices)


class WindContext(BaseModel):
    """Weather context for exposure analysis."""

    prevailing_wind: Compass = Compass.NW

    model_config = ConfigDict(frozen=True)


class ProximityEntry(BaseModel):
    """A neighbouring feature and its centroid distance."""

    feature_id: str
    label: str
    kind: str
    distance_ft: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class SpatialMetrics(BaseModel):
    """Human-readable relationship metrics for one feature.

    Any field that cannot be derived holds "Unknown" (or an empty tuple)
    instead of failing the whole analysis.
    """

    label: str
    acreage: float = Field(ge=0)
    perimeter_ft: int = Field(ge=0)
    shape: str
    orientation: str
    relative_position: str
    proximity: tuple[ProximityEntry, ...] = ()
    wind_exposure: str
    notes: str = ""

    model_config = ConfigDict(frozen=True)


class PlanStats(BaseModel):
    """Acreage and count roll-up of a drawn plan."""

    boundary_acres: float = Field(ge=0)
    feature_count: int = Field(ge=0)
    food_acres: float = Field(ge=0)
    bedding_acres: float = Field(ge=0)
    screen_acres: float = Field(ge=0)
    trail_count: int = Field(ge=0)
    stand_count: int = Field(ge=0)
    note_count: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)
