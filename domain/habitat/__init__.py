"""Habitat Bounded Context.

Responsible for wildlife habitat heuristics:
- Config: ScoringConfig and named heuristic constants
- Services: score_bedding, calculate_movement_cost, enrich_grid
"""
