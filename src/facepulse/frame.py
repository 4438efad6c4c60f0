"""Frame, ROI and sample value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class ROI:
    """Axis-aligned rectangle in frame pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def clamp(self, frame_width: int, frame_height: int) -> Optional["ROI"]:
        """Intersect with the frame bounds; None when nothing is left."""
        x0 = max(0, int(self.x))
        y0 = max(0, int(self.y))
        x1 = min(int(frame_width), int(self.x) + int(self.width))
        y1 = min(int(frame_height), int(self.y) + int(self.height))
        if x1 <= x0 or y1 <= y0:
            return None
        return ROI(x0, y0, x1 - x0, y1 - y0)

    def slices(self) -> tuple[slice, slice]:
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


@dataclass(frozen=True)
class RGBSample:
    r: float
    g: float
    b: float

    def is_finite(self) -> bool:
        return bool(np.isfinite([self.r, self.g, self.b]).all())

    @property
    def brightness(self) -> float:
        return (self.r + self.g + self.b) / 3.0


@dataclass
class Frame:
    """A borrowed video frame.

    Args:
        pixels: HxWx3 RGB or HxWx4 RGBA array.
        timestamp: capture time in seconds, if known.
    """

    pixels: np.ndarray
    timestamp: Optional[float] = None

    def __post_init__(self) -> None:
        p = self.pixels
        if p.ndim != 3 or p.shape[2] not in (3, 4):
            raise ValueError("pixels must be HxWx3 (RGB) or HxWx4 (RGBA) array")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def has_alpha(self) -> bool:
        return self.pixels.shape[2] == 4

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[..., :3]
