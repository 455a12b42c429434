"""Habitat Bounded Context - Domain Services.

Bedding suitability and movement cost heuristics, plus the per-cell
enrichment pipeline that runs them over a Grid.

Scores are additive and relative: no normalization is applied and there is
no floor on movement cost (a thicket on flat ground costs less than base).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from domain.grid.cell_store import Grid
from domain.grid.hex_index import cell_neighbors
from domain.grid.value_objects import CellRecord, CellUpdate, Compass, TerrainTag
from domain.habitat.config import (
    DEFAULT_NEIGHBORHOOD_RING,
    DEFAULT_SCORING,
    OPEN_FIELD,
    THICKET,
    ScoringConfig,
)
from domain.terrain.services import (
    classify_landform,
    is_thermal_tunnel,
    neighborhood_stats,
    percent_to_degrees,
    slope_and_aspect,
)

logger = logging.getLogger(__name__)

_LAND_COVER = {
    TerrainTag.OPEN_PASTURE: OPEN_FIELD,
    TerrainTag.FOOD_PLOT: OPEN_FIELD,
    TerrainTag.SCRUB_BRUSH: THICKET,
}


# ---------------------------------------------------------------------------
# Bedding Score
# ---------------------------------------------------------------------------
def score_bedding(
    elevation: float,
    max_ridge_elevation: float,
    slope_percent: float,
    aspect: Compass | str | None,
    prevailing_wind: Compass | str,
    config: ScoringConfig = DEFAULT_SCORING,
) -> int:
    """Additive bedding suitability score.

    Rules:
        Military crest: elevation / max_ridge_elevation strictly inside
            (0.65, 0.85); skipped when max_ridge_elevation <= 0
        Bench: slope_percent strictly inside (2, 8)
        Leeward: aspect differs from the prevailing wind (8-way match);
            no bonus when aspect is None (flat ground has no facing)

    Example:
        >>> score_bedding(850, 1000, 5, "E", "W")
        50
    """
    if not (math.isfinite(elevation) and math.isfinite(slope_percent)):
        raise ValueError("elevation and slope_percent must be finite")

    score = 0

    if math.isfinite(max_ridge_elevation) and max_ridge_elevation > 0:
        relative_height = elevation / max_ridge_elevation
        if config.military_crest_min_ratio < relative_height < config.military_crest_max_ratio:
            score += config.military_crest_bonus

    if config.bench_min_slope_percent < slope_percent < config.bench_max_slope_percent:
        score += config.bench_bonus

    if aspect is not None and Compass.parse(aspect) is not Compass.parse(prevailing_wind):
        score += config.leeward_bonus

    return score


# ---------------------------------------------------------------------------
# Movement Cost
# ---------------------------------------------------------------------------
def calculate_movement_cost(
    slope_percent: float,
    land_cover: str | None,
    config: ScoringConfig = DEFAULT_SCORING,
) -> int:
    """Travel cost for one cell; slope penalties stack (25% slope -> +60)."""
    cost = config.base_movement_cost

    if slope_percent > config.steep_slope_percent:
        cost += config.steep_slope_penalty
    if slope_percent > config.moderate_slope_percent:
        cost += config.moderate_slope_penalty

    if land_cover == OPEN_FIELD:
        cost += config.open_field_penalty
    elif land_cover == THICKET:
        cost -= config.thicket_bonus

    return cost


def land_cover_for(tag: TerrainTag | str) -> str | None:
    """Movement-cost land cover for a cell classification, if it has one."""
    return _LAND_COVER.get(TerrainTag(tag))


def permeability_from_cost(cost: int) -> float:
    """Map a movement cost onto [0, 1]; base cost or cheaper is fully permeable."""
    return min(1.0, 1.0 / max(cost, 1))


# ---------------------------------------------------------------------------
# Enrichment Pipeline
# ---------------------------------------------------------------------------
def enrich_grid(
    grid: Grid,
    elevations: Mapping[str, float],
    prevailing_wind: Compass | str,
    *,
    neighborhood_ring: int = DEFAULT_NEIGHBORHOOD_RING,
    config: ScoringConfig = DEFAULT_SCORING,
) -> Grid:
    """Classify and score every grid cell that has an elevation sample.

    Samples for cells outside the grid still feed neighbourhood statistics
    and slopes of edge cells. Updates are derived and merged under one grid
    write (``Grid.update_cells``), so movement cost always reflects the
    terrain tag it is written next to. ``user_modified`` is left untouched.

    Args:
        grid: Project grid to enrich in place
        elevations: Cell ID -> elevation in meters (any DEM source)
        prevailing_wind: 8-way compass direction
        neighborhood_ring: H3 grid distance used for TPI statistics
        config: Scoring heuristics

    Returns:
        The same Grid, for chaining
    """
    wind = Compass.parse(prevailing_wind)
    known = {k: v for k, v in elevations.items() if v is not None and math.isfinite(v)}
    enriched = 0

    def build(cells: Mapping[str, CellRecord]) -> list[tuple[str, CellUpdate]]:
        nonlocal enriched
        targets = sorted(k for k in known if k in cells)
        if not targets:
            return []
        max_ridge = max(known[k] for k in targets)

        updates = [
            (
                cell_id,
                _enrichment_for(
                    cell_id, cells[cell_id], known, max_ridge, wind,
                    neighborhood_ring, config,
                ),
            )
            for cell_id in targets
        ]
        enriched = len(updates)
        return updates

    grid.update_cells(build, user_modified=False)
    if enriched:
        logger.info("Enriched %d of %d grid cells", enriched, len(grid))
    else:
        logger.debug("No elevation samples for grid cells; nothing to enrich")
    return grid


def _enrichment_for(
    cell_id: str,
    record: CellRecord,
    known: Mapping[str, float],
    max_ridge: float,
    wind: Compass,
    neighborhood_ring: int,
    config: ScoringConfig,
) -> CellUpdate:
    """Terrain-derived fields for one cell, costed against its current tag."""
    elevation = known[cell_id]
    fields: dict = {"elevation_m": elevation}

    ring = [known[n] for n in cell_neighbors(cell_id, neighborhood_ring) if n in known]
    landform = None
    if ring:
        mean, std = neighborhood_stats(ring)
        landform = classify_landform(elevation, mean, std)
        fields["landform"] = landform

    gradient = slope_and_aspect(cell_id, known)
    if gradient is not None:
        slope = gradient.slope_percent
        cost = calculate_movement_cost(slope, land_cover_for(record.terrain), config)
        fields.update(
            slope_percent=slope,
            aspect=gradient.aspect,
            bedding_score=score_bedding(
                elevation, max_ridge, slope, gradient.aspect, wind, config
            ),
            movement_cost=cost,
            permeability=permeability_from_cost(cost),
        )
        if landform is not None:
            fields["thermal_tunnel"] = is_thermal_tunnel(
                landform, percent_to_degrees(slope)
            )

    return CellUpdate(**fields)
