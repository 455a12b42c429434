"""Features Bounded Context.

Responsible for user-drawn geometry and how it relates to the property:
- Value Objects: Feature, SpatialMetrics, ProximityEntry, PlanStats
- Services: analyze, format_analysis, summarize_plan
"""
