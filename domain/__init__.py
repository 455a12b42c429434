"""Habitat Grid Domain Layer.

This package contains the core business logic organized by bounded contexts:
- grid: Hex index, cell store, geographic value objects
- terrain: Elevation grids, landform classification, slope and aspect
- habitat: Bedding suitability, movement cost, per-cell enrichment
- vision: Translating vision-model detections onto the grid
- features: Relationships between user-drawn features and the boundary
"""

# Imports alphabetized per project style (isort)
from domain import features, grid, habitat, terrain, vision

__all__ = ["features", "grid", "habitat", "terrain", "vision"]
