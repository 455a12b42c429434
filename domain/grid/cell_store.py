"""Grid Bounded Context - Cell Store.

``Grid`` owns the per-cell habitat state of one project. Callers hold one
instance per project and pass it to enrichment and vision services.

Concurrency model (copy-on-write):
1) Writers take ``_lock``, build a new ``GridSnapshot`` and swap one reference
2) Readers grab the current snapshot reference once and work on it
3) A reader therefore never observes a half-applied replace or batch update
"""

from __future__ import annotations

import logging
import threading
import warnings
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from domain.grid.errors import CellNotFoundWarning
from domain.grid.geometry import PointLike, closed_ring, polygon_area_acres
from domain.grid.hex_index import cells_covering_polygon
from domain.grid.value_objects import (
    BASE_RESOLUTION,
    DEFAULT_PERMEABILITY,
    CellRecord,
    CellUpdate,
    GridProject,
    GridSnapshot,
    GridStatistics,
    TerrainTag,
)

logger = logging.getLogger(__name__)

PartialCell = CellUpdate | Mapping[str, Any]


def _as_update(partial: PartialCell) -> CellUpdate:
    if isinstance(partial, CellUpdate):
        return partial
    return CellUpdate.model_validate(dict(partial))


class Grid:
    """Sparse mapping of H3 cell ID -> CellRecord plus project metadata.

    Lifecycle: created empty, populated by ``Grid.generate`` from a locked
    boundary, mutated incrementally, replaced wholesale on project load and
    cleared on project reset.
    """

    def __init__(self, snapshot: GridSnapshot | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = snapshot if snapshot is not None else GridSnapshot()

    @classmethod
    def generate(
        cls, boundary: Iterable[PointLike], resolution: int = BASE_RESOLUTION
    ) -> "Grid":
        """Build a grid covering a locked property boundary.

        Every covering cell starts unclassified with an explicit neutral
        permeability and zero confidence.

        Raises:
            InvalidGeometryError: If the boundary has malformed coordinates
        """
        ring = closed_ring(boundary)
        cell_ids = cells_covering_polygon(ring, resolution)
        cells = {
            cell_id: CellRecord(
                cell_id=cell_id, permeability=DEFAULT_PERMEABILITY, confidence=0.0
            )
            for cell_id in sorted(cell_ids)
        }
        project = GridProject(
            boundary=ring if len(ring) > 1 else (),
            base_resolution=resolution,
            total_acres=polygon_area_acres(ring),
        )
        logger.info(
            "Generated grid with %d cells at resolution %d (%.2f acres)",
            len(cells),
            resolution,
            project.total_acres,
        )
        return cls(GridSnapshot(project=project, cells=cells))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def snapshot(self) -> GridSnapshot:
        return self._snapshot

    @property
    def project(self) -> GridProject:
        return self._snapshot.project

    @property
    def cells(self) -> Mapping[str, CellRecord]:
        """Read-only view of the current cells."""
        return MappingProxyType(self._snapshot.cells)

    def get(self, cell_id: str) -> CellRecord | None:
        return self._snapshot.cells.get(cell_id)

    def __len__(self) -> int:
        return len(self._snapshot.cells)

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._snapshot.cells

    def cells_by_terrain(self, tag: TerrainTag | str) -> list[CellRecord]:
        """All records carrying ``tag``, ordered by cell ID."""
        tag = TerrainTag(tag)
        cells = self._snapshot.cells
        return [cells[k] for k in sorted(cells) if cells[k].terrain == tag]

    def statistics(self) -> GridStatistics:
        """Aggregate counts over one consistent snapshot.

        Unset permeability counts as 0 toward the mean.
        """
        records = list(self._snapshot.cells.values())
        counts: dict[TerrainTag, int] = {}
        total_permeability = 0.0
        classified = 0
        for record in records:
            counts[record.terrain] = counts.get(record.terrain, 0) + 1
            total_permeability += record.permeability or 0.0
            if record.terrain != TerrainTag.UNCLASSIFIED:
                classified += 1

        return GridStatistics(
            total_cells=len(records),
            per_terrain_counts=counts,
            avg_permeability=total_permeability / len(records) if records else 0.0,
            classified_count=classified,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def replace_grid(self, source: "GridSnapshot | Grid") -> "Grid":
        """Replace cells and project metadata wholesale (project load)."""
        snapshot = source.snapshot() if isinstance(source, Grid) else source
        with self._lock:
            self._snapshot = snapshot
        logger.info("Grid replaced with %d cells", len(snapshot.cells))
        return self

    def set_cell(
        self, cell_id: str, partial: PartialCell, *, user_modified: bool = True
    ) -> "Grid":
        """Merge ``partial`` into one cell.

        An absent cell ID leaves the grid unchanged and emits a
        ``CellNotFoundWarning``.

        Args:
            cell_id: Target H3 cell ID
            partial: CellUpdate or mapping of the fields to overwrite
            user_modified: True for manual edits and accepted detections,
                False for automated enrichment (flag left as is)
        """
        update = _as_update(partial)
        with self._lock:
            current = self._snapshot
            existing = current.cells.get(cell_id)
            if existing is not None:
                cells = dict(current.cells)
                cells[cell_id] = existing.merged(update, user_modified)
                self._snapshot = GridSnapshot.model_construct(
                    project=current.project, cells=cells
                )

        if existing is None:
            warnings.warn(CellNotFoundWarning(cell_id), stacklevel=2)
        return self

    def set_cells(
        self,
        updates: Iterable[tuple[str, PartialCell]],
        *,
        user_modified: bool = True,
    ) -> "Grid":
        """Merge many partial updates in one atomic swap.

        Unknown cell IDs are skipped. All partials are validated before the
        grid is touched, so a bad partial leaves the grid unchanged.
        """
        pending = [(cell_id, _as_update(partial)) for cell_id, partial in updates]
        skipped = 0
        with self._lock:
            current = self._snapshot
            cells = dict(current.cells)
            for cell_id, update in pending:
                existing = cells.get(cell_id)
                if existing is None:
                    skipped += 1
                    continue
                cells[cell_id] = existing.merged(update, user_modified)
            self._snapshot = GridSnapshot.model_construct(
                project=current.project, cells=cells
            )

        logger.debug(
            "Batch update: %d applied, %d unknown cells skipped",
            len(pending) - skipped,
            skipped,
        )
        return self

    def update_cells(
        self,
        build: Callable[[Mapping[str, CellRecord]], Iterable[tuple[str, PartialCell]]],
        *,
        user_modified: bool = True,
    ) -> "Grid":
        """Derive updates from the current cells and merge them in one swap.

        ``build`` runs while the write lock is held, so no other write can
        land between the read it is given and the merge of its results. It
        must not call back into this Grid's write methods. An empty result
        leaves the current snapshot in place.
        """
        skipped = 0
        applied = 0
        with self._lock:
            current = self._snapshot
            pending = [
                (cell_id, _as_update(partial))
                for cell_id, partial in build(MappingProxyType(current.cells))
            ]
            if not pending:
                return self
            cells = dict(current.cells)
            for cell_id, update in pending:
                existing = cells.get(cell_id)
                if existing is None:
                    skipped += 1
                    continue
                cells[cell_id] = existing.merged(update, user_modified)
                applied += 1
            self._snapshot = GridSnapshot.model_construct(
                project=current.project, cells=cells
            )

        logger.debug(
            "Derived update: %d applied, %d unknown cells skipped", applied, skipped
        )
        return self

    def reset(self) -> "Grid":
        """Clear all cells and project metadata."""
        with self._lock:
            self._snapshot = GridSnapshot()
        logger.info("Grid reset")
        return self
