"""Quality metrics for rPPG signals.

Includes the in-band/out-of-band SNR, the SNR-derived confidence and the
coarse quality label shown to users. The divisor and tier thresholds are
empirical calibration constants; only their monotonicity matters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

# SNR value that maps to full confidence
CONFIDENCE_SNR_SCALE = 10.0

EXCELLENT_THRESHOLD = 0.8
GOOD_THRESHOLD = 0.6
FAIR_THRESHOLD = 0.4


class Quality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {Quality.POOR: 0, Quality.FAIR: 1, Quality.GOOD: 2, Quality.EXCELLENT: 3}


@dataclass(frozen=True)
class QualityThresholds:
    excellent: float = EXCELLENT_THRESHOLD
    good: float = GOOD_THRESHOLD
    fair: float = FAIR_THRESHOLD
    snr_scale: float = CONFIDENCE_SNR_SCALE

    def __post_init__(self) -> None:
        if not (self.excellent >= self.good >= self.fair):
            raise ValueError("thresholds must satisfy excellent >= good >= fair")
        if self.snr_scale <= 0:
            raise ValueError("snr_scale must be positive")


def band_snr(magnitude: np.ndarray, in_band: np.ndarray, peak_index: int) -> float:
    """Peak magnitude over the mean magnitude of all out-of-band bins.

    Returns 0.0 when there are no out-of-band bins or their mean is zero.
    """
    mag = np.asarray(magnitude, dtype=np.float64)
    band = np.asarray(in_band, dtype=bool)
    if mag.size == 0 or not (0 <= peak_index < mag.size):
        return 0.0
    noise_bins = mag[~band]
    if noise_bins.size == 0:
        return 0.0
    noise = float(noise_bins.mean())
    if noise <= 0.0 or not np.isfinite(noise):
        return 0.0
    return float(mag[peak_index]) / noise


def snr_confidence(snr: float, scale: float = CONFIDENCE_SNR_SCALE) -> float:
    """Linear map of SNR to [0, 1]."""
    if not np.isfinite(snr):
        return 0.0
    return float(np.clip(snr / scale, 0.0, 1.0))


def quality_score(snr: float, confidence: float, snr_scale: float = CONFIDENCE_SNR_SCALE) -> float:
    return (snr / snr_scale + confidence) / 2.0


def classify(
    snr: float,
    confidence: float,
    thresholds: QualityThresholds = QualityThresholds(),
) -> Quality:
    score = quality_score(snr, confidence, thresholds.snr_scale)
    if score >= thresholds.excellent:
        return Quality.EXCELLENT
    if score >= thresholds.good:
        return Quality.GOOD
    if score >= thresholds.fair:
        return Quality.FAIR
    return Quality.POOR
