"""Vision Bounded Context - Domain Services.

Translates normalized detection boxes into geographic footprints and H3
cells, and stamps accepted detections onto a Grid.

Axis convention: image rows grow downward while latitude grows northward.
The footprint is anchored at the viewport's southern edge, so
``south = S + y_min/1000 * (N - S)`` and ``north = S + y_max/1000 * (N - S)``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from domain.grid.cell_store import Grid
from domain.grid.errors import InvalidGeometryError
from domain.grid.hex_index import cells_covering_polygon
from domain.grid.value_objects import BoundingBox, CellUpdate, GeoPoint, TerrainTag
from domain.vision.value_objects import BOX_SCALE, Detection, VisionPacket

logger = logging.getLogger(__name__)


def _lerp(low: float, high: float, fraction: float) -> float:
    # Exact at both ends: fraction 0 -> low, fraction 1 -> high
    return low * (1.0 - fraction) + high * fraction


def _check_box(box: Sequence[float]) -> tuple[float, float, float, float]:
    try:
        y_min, x_min, y_max, x_max = (float(v) for v in box)
    except (TypeError, ValueError) as e:
        raise InvalidGeometryError(f"Box must be [y_min, x_min, y_max, x_max]: {box!r}") from e
    if not all(math.isfinite(v) for v in (y_min, x_min, y_max, x_max)):
        raise InvalidGeometryError(f"Box values must be finite: {box!r}")
    return y_min, x_min, y_max, x_max


def detection_footprint(
    box: Sequence[float], viewport: BoundingBox
) -> tuple[GeoPoint, ...]:
    """Geographic ring (closed, NW -> NE -> SE -> SW -> NW) of a detection box.

    Raises:
        InvalidGeometryError: If the box is malformed or maps outside WGS84
    """
    y_min, x_min, y_max, x_max = _check_box(box)

    south = _lerp(viewport.south, viewport.north, y_min / BOX_SCALE)
    north = _lerp(viewport.south, viewport.north, y_max / BOX_SCALE)
    west = _lerp(viewport.west, viewport.east, x_min / BOX_SCALE)
    east = _lerp(viewport.west, viewport.east, x_max / BOX_SCALE)

    try:
        nw = GeoPoint(latitude=north, longitude=west)
        return (
            nw,
            GeoPoint(latitude=north, longitude=east),
            GeoPoint(latitude=south, longitude=east),
            GeoPoint(latitude=south, longitude=west),
            nw,
        )
    except ValueError as e:
        raise InvalidGeometryError(f"Box {box!r} maps outside WGS84 range") from e


def box_to_cells(
    box: Sequence[float], viewport: BoundingBox, resolution: int
) -> frozenset[str]:
    """H3 cells covered by a normalized detection box.

    A zero-width or zero-height box yields an empty set.

    Example:
        >>> viewport = BoundingBox.from_edges(north=40.01, south=40.0, east=-89.99, west=-90.0)
        >>> box_to_cells([0, 0, 1000, 1000], viewport, 10) == cells_covering_polygon(
        ...     viewport.corners(), 10
        ... )
        True
    """
    y_min, x_min, y_max, x_max = _check_box(box)
    if y_min == y_max or x_min == x_max:
        logger.debug("Degenerate detection box %s; no cells", list(box))
        return frozenset()
    return cells_covering_polygon(detection_footprint(box, viewport), resolution)


def _as_detections(
    detections: VisionPacket | Iterable[Detection | Mapping[str, Any]],
) -> list[Detection]:
    if isinstance(detections, VisionPacket):
        return list(detections.features)
    return [
        d if isinstance(d, Detection) else Detection.model_validate(d)
        for d in detections
    ]


def apply_detections(
    grid: Grid,
    detections: VisionPacket | Iterable[Detection | Mapping[str, Any]],
    viewport: BoundingBox,
    *,
    resolution: int | None = None,
    min_confidence: float = 0.0,
) -> Grid:
    """Stamp accepted detections onto the grid as user-modified cells.

    A detection is accepted when its label names a TerrainTag and its
    confidence reaches ``min_confidence``. Where detections overlap, the
    higher-confidence one wins. Covered cells outside the grid are skipped.

    Args:
        grid: Project grid to update in place
        detections: VisionPacket, Detection objects or raw mappings
        viewport: Map bounds the screenshot was taken with
        resolution: H3 resolution; defaults to the grid's base resolution
        min_confidence: Lower bound (inclusive) for acceptance

    Returns:
        The same Grid, for chaining
    """
    if resolution is None:
        resolution = grid.project.base_resolution

    parsed = _as_detections(detections)
    accepted: list[tuple[Detection, TerrainTag]] = []
    for detection in parsed:
        tag = TerrainTag.from_label(detection.label)
        if tag is TerrainTag.UNCLASSIFIED:
            logger.warning("Skipping detection with unknown label %r", detection.label)
            continue
        if detection.confidence < min_confidence:
            logger.debug(
                "Skipping %s detection below confidence %.2f", tag.value, min_confidence
            )
            continue
        accepted.append((detection, tag))

    # Ascending confidence so stronger detections overwrite weaker ones
    accepted.sort(key=lambda item: item[0].confidence)
    stamped: dict[str, CellUpdate] = {}
    for detection, tag in accepted:
        update = CellUpdate(terrain=tag, confidence=detection.confidence)
        for cell_id in box_to_cells(detection.box_2d, viewport, resolution):
            stamped[cell_id] = update

    grid.set_cells(sorted(stamped.items()), user_modified=True)
    logger.info(
        "Applied %d of %d detections to %d cells",
        len(accepted),
        len(parsed),
        len(stamped),
    )
    return grid
