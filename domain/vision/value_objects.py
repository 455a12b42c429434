"""Vision Bounded Context - Value Objects.

Detections as returned by a vision model looking at a map screenshot:
``box_2d`` is ``[y_min, x_min, y_max, x_max]`` on a 0-1000 scale normalized
to the image bounds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

BOX_SCALE = 1000


class Detection(BaseModel):
    """One labelled region found by the vision model (Value Object)."""

    label: str
    box_2d: tuple[int, int, int, int]
    confidence: float = Field(ge=0, le=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("box_2d")
    @classmethod
    def validate_box(cls, box: tuple[int, int, int, int]) -> tuple[int, int, int, int]:
        if any(not (0 <= v <= BOX_SCALE) for v in box):
            raise ValueError(f"box_2d values must be in [0, {BOX_SCALE}]: {box}")
        return box


class VisionPacket(BaseModel):
    """Full vision response: detections plus free-text notes."""

    features: tuple[Detection, ...] = ()
    notes: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)
