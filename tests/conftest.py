"""Root pytest configuration for all tests.

Provides a ~1 km square property boundary in central Illinois and the
matching map viewport. Domain tests build value objects directly - no I/O.
"""

from __future__ import annotations

import pytest

from domain.grid.value_objects import BoundingBox, GeoPoint
from tests.conftest_utils import EAST, NORTH, SOUTH, WEST, square


@pytest.fixture
def boundary() -> list[GeoPoint]:
    return square(SOUTH, WEST, NORTH, EAST)


@pytest.fixture
def viewport() -> BoundingBox:
    return BoundingBox.from_edges(north=NORTH, south=SOUTH, east=EAST, west=WEST)
