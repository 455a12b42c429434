"""Terrain Bounded Context.

Responsible for elevation and landform shape:
- Value Objects: TerrainGrid, SlopeAspect
- Ports: TerrainRepository
- Services: classify_landform, is_thermal_tunnel, sample_cell_elevations,
  slope_and_aspect
"""
