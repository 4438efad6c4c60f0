"""Camera-based heart-rate (rPPG) estimation core.

Per frame: locate a skin ROI, average its RGB, buffer it, and once enough
data is buffered condition the green channel and read the pulse off its
spectrum.
"""

from .bpm import SpectralConfig, SpectralEstimate, analyze
from .buffer import SignalBuffer
from .frame import ROI, Frame, RGBSample
from .preprocess import condition
from .quality import Quality, QualityThresholds, classify
from .roi import RoiLocator
from .sampler import sample
from .session import RPPGReading, SessionConfig, SessionController, SessionState

__all__ = [
    "Frame",
    "ROI",
    "RGBSample",
    "RoiLocator",
    "sample",
    "SignalBuffer",
    "condition",
    "analyze",
    "SpectralConfig",
    "SpectralEstimate",
    "classify",
    "Quality",
    "QualityThresholds",
    "RPPGReading",
    "SessionConfig",
    "SessionController",
    "SessionState",
]

__version__ = "0.1.0"
