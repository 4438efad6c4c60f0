"""BPM estimation from the band-limited magnitude spectrum."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .quality import CONFIDENCE_SNR_SCALE, band_snr, snr_confidence

DEFAULT_BPM = 72


@dataclass(frozen=True)
class SpectralConfig:
    fmin: float = 0.7  # Hz (42 BPM)
    fmax: float = 4.0  # Hz (240 BPM)
    min_samples: int = 30
    default_bpm: int = DEFAULT_BPM
    confidence_snr_scale: float = CONFIDENCE_SNR_SCALE
    method: str = "fft"  # fft | dft

    def __post_init__(self) -> None:
        if not (0.0 <= self.fmin < self.fmax):
            raise ValueError("expected 0 <= fmin < fmax")
        if self.method not in ("fft", "dft"):
            raise ValueError(f"unknown spectrum method: {self.method!r}")
        if self.confidence_snr_scale <= 0:
            raise ValueError("confidence_snr_scale must be positive")


@dataclass(frozen=True)
class Spectrum:
    freqs: np.ndarray
    magnitude: np.ndarray


@dataclass(frozen=True)
class SpectralEstimate:
    bpm: int
    confidence: float
    snr: float
    peak_hz: float = 0.0


def _half_bins(n: int) -> int:
    # bins k with k < n/2
    return (n + 1) // 2


def dft_magnitude(x: np.ndarray) -> np.ndarray:
    """Direct O(n^2) DFT magnitude over the first half of the bins."""
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    k = np.arange(_half_bins(n), dtype=np.float64)[:, None]
    t = np.arange(n, dtype=np.float64)[None, :]
    angle = -2.0 * np.pi * k * t / n
    re = np.cos(angle) @ x
    im = np.sin(angle) @ x
    return np.sqrt(re * re + im * im)


def fft_magnitude(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    return np.abs(np.fft.rfft(x))[: _half_bins(x.size)]


def magnitude_spectrum(x: np.ndarray, fs: float, method: str = "fft") -> Spectrum:
    """Magnitude spectrum with bin k at k*fs/N."""
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    if n == 0 or fs <= 0:
        return Spectrum(np.empty(0), np.empty(0))
    mag = dft_magnitude(x) if method == "dft" else fft_magnitude(x)
    freqs = np.arange(mag.size, dtype=np.float64) * fs / n
    return Spectrum(freqs, mag)


def analyze(
    signal: np.ndarray,
    fs: float,
    cfg: Optional[SpectralConfig] = None,
) -> SpectralEstimate:
    """Estimate BPM, SNR and confidence from a conditioned signal.

    Peaks outside [fmin, fmax] are ignored regardless of magnitude.
    Too-short or non-finite input yields (0, 0.0, 0.0); a spectrum with no
    positive in-band bin yields the default BPM at zero confidence.
    """
    cfg = cfg or SpectralConfig()
    x = np.asarray(signal, dtype=np.float64)
    if x.size < cfg.min_samples or fs <= 0 or not np.all(np.isfinite(x)):
        return SpectralEstimate(0, 0.0, 0.0)
    spec = magnitude_spectrum(x, fs, cfg.method)
    band = (spec.freqs >= cfg.fmin) & (spec.freqs <= cfg.fmax)
    in_band = np.where(band, spec.magnitude, 0.0)
    idx = int(np.argmax(in_band))
    if not band.any() or in_band[idx] <= 0.0:
        return SpectralEstimate(cfg.default_bpm, 0.0, 0.0)
    peak_hz = float(spec.freqs[idx])
    snr = band_snr(spec.magnitude, band, idx)
    conf = snr_confidence(snr, cfg.confidence_snr_scale)
    return SpectralEstimate(int(np.floor(peak_hz * 60.0 + 0.5)), conf, snr, peak_hz)

