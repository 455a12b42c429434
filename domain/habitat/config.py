"""Habitat Bounded Context - Tunable Heuristics.

Every score bonus and cost penalty is a named constant so it can be tuned
without touching control flow. ``ScoringConfig`` bundles them for callers
that want to override a subset.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

# ---------------------------------------------------------------------------
# Bedding Score
# ---------------------------------------------------------------------------
MILITARY_CREST_BONUS = 50
MILITARY_CREST_MIN_RATIO = 0.65  # exclusive
MILITARY_CREST_MAX_RATIO = 0.85  # exclusive
BENCH_BONUS = 30
BENCH_MIN_SLOPE_PERCENT = 2.0  # exclusive
BENCH_MAX_SLOPE_PERCENT = 8.0  # exclusive
LEEWARD_BONUS = 20

# ---------------------------------------------------------------------------
# Movement Cost
# ---------------------------------------------------------------------------
BASE_MOVEMENT_COST = 1
STEEP_SLOPE_PERCENT = 20.0
STEEP_SLOPE_PENALTY = 50
MODERATE_SLOPE_PERCENT = 10.0
MODERATE_SLOPE_PENALTY = 10
OPEN_FIELD_PENALTY = 20
THICKET_BONUS = 5

OPEN_FIELD = "Open Field"
THICKET = "Thicket"

# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------
DEFAULT_NEIGHBORHOOD_RING = 2  # H3 grid distance used for TPI statistics


class ScoringConfig(BaseModel):
    """Frozen bundle of habitat heuristics; defaults mirror the constants above."""

    military_crest_bonus: int = MILITARY_CREST_BONUS
    military_crest_min_ratio: float = MILITARY_CREST_MIN_RATIO
    military_crest_max_ratio: float = MILITARY_CREST_MAX_RATIO
    bench_bonus: int = BENCH_BONUS
    bench_min_slope_percent: float = BENCH_MIN_SLOPE_PERCENT
    bench_max_slope_percent: float = BENCH_MAX_SLOPE_PERCENT
    leeward_bonus: int = LEEWARD_BONUS

    base_movement_cost: int = BASE_MOVEMENT_COST
    steep_slope_percent: float = STEEP_SLOPE_PERCENT
    steep_slope_penalty: int = STEEP_SLOPE_PENALTY
    moderate_slope_percent: float = MODERATE_SLOPE_PERCENT
    moderate_slope_penalty: int = MODERATE_SLOPE_PENALTY
    open_field_penalty: int = OPEN_FIELD_PENALTY
    thicket_bonus: int = THICKET_BONUS

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_ranges(self) -> "ScoringConfig":
        if not (self.military_crest_min_ratio < self.military_crest_max_ratio):
            raise ValueError("military crest band must have min < max")
        if not (self.bench_min_slope_percent < self.bench_max_slope_percent):
            raise ValueError("bench slope band must have min < max")
        if min(self.military_crest_bonus, self.bench_bonus, self.leeward_bonus) < 0:
            raise ValueError("bedding bonuses must be non-negative")
        return self


DEFAULT_SCORING = ScoringConfig()
