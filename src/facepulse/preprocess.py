"""Signal conditioning for rPPG: detrend, normalize, window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.signal import butter, lfilter

# Rounding residue after detrending a flat signal stays below this
_FLAT_STD = 1e-10


@dataclass(frozen=True)
class ConditionerConfig:
    bandpass: bool = False  # optional Butterworth stage before windowing
    fs: float = 30.0
    fmin: float = 0.7
    fmax: float = 4.0
    order: int = 3


def detrend(x: np.ndarray) -> np.ndarray:
    """Subtract the least-squares line fitted over indices 0..n-1.

    Uses the closed-form sums, so no matrix solve is needed.
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    if n < 2:
        return x.copy()
    if np.ptp(x) == 0:
        return np.zeros_like(x)
    idx = np.arange(n, dtype=np.float64)
    sum_x = n * (n - 1) / 2.0
    sum_y = float(x.sum())
    sum_xy = float(np.dot(idx, x))
    sum_x2 = n * (n - 1) * (2 * n - 1) / 6.0
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return x - (slope * idx + intercept)


def normalize(x: np.ndarray) -> np.ndarray:
    """Zero mean, unit (population) standard deviation.

    A flat signal maps to the zero vector.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    mean = float(x.mean())
    std = float(x.std())
    if std <= _FLAT_STD or not np.isfinite(std):
        return np.zeros_like(x)
    return (x - mean) / std


def hamming_window(x: np.ndarray) -> np.ndarray:
    """Apply 0.54 - 0.46*cos(2*pi*i/(n-1)) to taper the edges."""
    x = np.asarray(x, dtype=np.float64)
    return x * np.hamming(x.size)


def bandpass(
    x: np.ndarray,
    fs: float,
    fmin: float = 0.7,
    fmax: float = 4.0,
    order: int = 3,
) -> np.ndarray:
    """Causal Butterworth band-pass filter (lfilter).

    Args:
        x: 1D array.
        fs: sampling rate [Hz].
        fmin: low cut [Hz].
        fmax: high cut [Hz].
        order: IIR order.
    """
    x = np.asarray(x, dtype=np.float64)
    nyq = 0.5 * fs
    low = max(1e-6, fmin / nyq)
    high = min(0.999, fmax / nyq)
    if not (0 < low < high < 1):
        return x.copy()
    b, a = butter(order, [low, high], btype="band")
    return lfilter(b, a, x)


def condition(x: np.ndarray, cfg: Optional[ConditionerConfig] = None) -> np.ndarray:
    """Detrend -> normalize -> (optional band-pass) -> Hamming window.

    Output has the same length as the input.
    """
    cfg = cfg or ConditionerConfig()
    y = normalize(detrend(x))
    if cfg.bandpass and y.size > 0 and np.any(y):
        y = bandpass(y, cfg.fs, cfg.fmin, cfg.fmax, cfg.order)
    return hamming_window(y)


def preview_signal(green: np.ndarray, n: int = 60, min_len: int = 30) -> np.ndarray:
    """Detrended, normalized tail of the green channel for waveform display."""
    g = np.asarray(green, dtype=np.float64)
    if g.size < min_len:
        return np.empty(0, dtype=np.float64)
    return normalize(detrend(g[-n:]))
