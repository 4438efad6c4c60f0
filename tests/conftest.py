from __future__ import annotations

import numpy as np
import pytest

from facepulse.frame import RGBSample


def pulse_samples(
    n: int = 300,
    fs: float = 30.0,
    f: float = 1.2,
    amp: float = 5.0,
    noise: float = 1.0,
    seed: int = 0,
) -> list[RGBSample]:
    """Synthetic mean-RGB trace with a pulse in the green channel."""
    rng = np.random.RandomState(seed)
    t = np.arange(n) / fs
    g = 128.0 + amp * np.sin(2 * np.pi * f * t) + noise * rng.randn(n)
    r = 160.0 + noise * rng.randn(n)
    b = 110.0 + noise * rng.randn(n)
    return [RGBSample(float(x), float(y), float(z)) for x, y, z in zip(r, g, b)]


@pytest.fixture
def skin_frame() -> np.ndarray:
    """160x120 grey frame with a textured skin-coloured head region."""
    rng = np.random.RandomState(3)
    img = np.full((120, 160, 3), 128, dtype=np.float32)
    patch = np.array([200.0, 140.0, 120.0]) + 5.0 * rng.randn(45, 80, 3)
    img[15:60, 40:120] = patch
    return np.clip(img, 0, 255).astype(np.uint8)


@pytest.fixture
def pulse():
    return pulse_samples
