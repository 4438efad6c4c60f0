"""Mean RGB sampling over an ROI, plus per-sample lighting and motion checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from .frame import ROI, Frame, RGBSample


@dataclass(frozen=True)
class SamplerConfig:
    opacity_threshold: int = 128  # pixels with alpha <= this are skipped
    dark_brightness: float = 50.0
    bright_brightness: float = 200.0
    movement_threshold: float = 15.0  # sum of |dR|+|dG|+|dB|


class Lighting(str, Enum):
    TOO_DARK = "too_dark"
    TOO_BRIGHT = "too_bright"
    GOOD = "good"


def opaque_pixels(frame: Frame, roi: ROI, opacity_threshold: int = 128) -> np.ndarray:
    """Return an Nx3 float array of RGB pixels inside ``roi`` that are opaque.

    The ROI is clamped to the frame first; an empty array is returned when
    nothing remains.
    """
    clamped = roi.clamp(frame.width, frame.height)
    if clamped is None:
        return np.empty((0, 3), dtype=np.float32)
    patch = frame.pixels[clamped.slices()]
    rgb = patch[..., :3].reshape(-1, 3).astype(np.float32)
    if frame.has_alpha:
        alpha = patch[..., 3].reshape(-1)
        rgb = rgb[alpha > opacity_threshold]
    return rgb


def sample(
    frame: Frame,
    roi: ROI,
    cfg: Optional[SamplerConfig] = None,
) -> Optional[RGBSample]:
    """Average R, G, B over the opaque pixels of ``roi``.

    Returns None for a degenerate ROI or a fully transparent region; the
    caller treats that as "skip this frame".
    """
    cfg = cfg or SamplerConfig()
    if roi.is_empty:
        return None
    sel = opaque_pixels(frame, roi, cfg.opacity_threshold)
    if sel.shape[0] == 0:
        return None
    r_mean, g_mean, b_mean = sel.mean(axis=0)
    return RGBSample(float(r_mean), float(g_mean), float(b_mean))


def assess_lighting(rgb: RGBSample, cfg: Optional[SamplerConfig] = None) -> Lighting:
    cfg = cfg or SamplerConfig()
    brightness = rgb.brightness
    if brightness < cfg.dark_brightness:
        return Lighting.TOO_DARK
    if brightness > cfg.bright_brightness:
        return Lighting.TOO_BRIGHT
    return Lighting.GOOD


def detect_movement(
    previous: RGBSample,
    current: RGBSample,
    threshold: float = 15.0,
) -> bool:
    """Flag a jump in mean colour large enough to indicate head movement."""
    total = (
        abs(current.r - previous.r)
        + abs(current.g - previous.g)
        + abs(current.b - previous.b)
    )
    return total > threshold
