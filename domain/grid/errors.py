"""Grid Bounded Context - Error Hierarchy.

Custom exceptions and warnings for spatial indexing and cell updates.

Degenerate input (zero-area polygons, zero-size detection boxes) is not an
error: operations return empty results and log at DEBUG level.
"""

from __future__ import annotations


class HabitatGridError(Exception):
    """Base error for grid and geometry operations."""


class InvalidGeometryError(HabitatGridError, ValueError):
    """Coordinates are malformed, non-finite, or outside WGS84 range.

    Fatal to the specific call; never leaves a Grid partially mutated.
    """


class CellNotFoundWarning(UserWarning):
    """A single-cell update targeted a cell ID absent from the Grid.

    Attributes:
        cell_id: The offending H3 cell ID
    """

    def __init__(self, cell_id: str) -> None:
        self.cell_id = cell_id
        super().__init__(f"Cell {cell_id} not found in grid; update skipped")
