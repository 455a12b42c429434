"""Grid Bounded Context.

Responsible for the discrete spatial index of a property:
- Value Objects: GeoPoint, BoundingBox, Compass, CellRecord, GridSnapshot
- Services: cells_covering_polygon, cell_center, cell_boundary (Hex Index)
- Entities: Grid (Cell Store)
"""
