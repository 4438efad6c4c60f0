"""Rolling per-channel RGB buffer."""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional

import numpy as np

from .frame import RGBSample


class SignalBuffer:
    """Fixed-capacity FIFO of RGB samples with synchronized channels.

    All channels are appended together, so their lengths and offsets never
    diverge. Not thread-safe; the owning session controller serializes
    access.
    """

    def __init__(self, capacity: int = 900, min_fill: int = 300) -> None:
        if min_fill < 1:
            raise ValueError("min_fill must be >= 1")
        if capacity < min_fill:
            raise ValueError("capacity must be >= min_fill")
        self.capacity = int(capacity)
        self.min_fill = int(min_fill)
        self.R: Deque[float] = deque(maxlen=self.capacity)
        self.G: Deque[float] = deque(maxlen=self.capacity)
        self.B: Deque[float] = deque(maxlen=self.capacity)
        self.T: Deque[Optional[float]] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self.G)

    def add_reading(self, rgb: RGBSample, timestamp: Optional[float] = None) -> None:
        self.R.append(float(rgb.r))
        self.G.append(float(rgb.g))
        self.B.append(float(rgb.b))
        self.T.append(timestamp)

    def buffer_progress(self) -> float:
        return min(len(self) / self.min_fill, 1.0)

    def analysis_progress(self) -> float:
        return min(len(self) / self.capacity, 1.0)

    def has_minimum_data(self) -> bool:
        return len(self) >= self.min_fill

    def reset(self) -> None:
        self.R.clear()
        self.G.clear()
        self.B.clear()
        self.T.clear()

    def channel(self, name: str) -> np.ndarray:
        """Copy of one channel ('r', 'g' or 'b') as float64."""
        buf = {"r": self.R, "g": self.G, "b": self.B}.get(name.lower())
        if buf is None:
            raise ValueError(f"unknown channel: {name!r}")
        return np.array(buf, dtype=np.float64)

    def timestamps(self) -> np.ndarray:
        """Known timestamps only, in insertion order."""
        return np.array([t for t in self.T if t is not None], dtype=np.float64)

    def recent_timestamps(self, n: int) -> Optional[np.ndarray]:
        """Last ``n`` timestamps, or None if any of them is unknown."""
        tail = list(self.T)[-n:]
        if any(t is None for t in tail):
            return None
        return np.array(tail, dtype=np.float64)

    def last_timestamp(self) -> Optional[float]:
        return self.T[-1] if self.T else None

    def samples(self) -> list[RGBSample]:
        return [RGBSample(r, g, b) for r, g, b in zip(self.R, self.G, self.B)]
