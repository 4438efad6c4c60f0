"""rPPG session controller.

Advanced explicitly by the capture loop, one call per frame:

    locate ROI -> sample mean RGB -> buffer -> (when ready) condition,
    analyze, classify -> RPPGReading

States are derived from the buffer fill: Idle (empty), Buffering (below
``min_fill``) and Ready. Ready is kept while samples keep arriving since
eviction never drops the buffer below ``capacity >= min_fill``.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

import numpy as np

from .bpm import SpectralConfig, analyze
from .buffer import SignalBuffer
from .frame import ROI, Frame, RGBSample
from .preprocess import ConditionerConfig, condition, preview_signal
from .quality import Quality, QualityThresholds, classify
from .roi import RoiLocator
from .sampler import Lighting, SamplerConfig, assess_lighting, detect_movement, sample

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    BUFFERING = "buffering"
    READY = "ready"


@dataclass(frozen=True)
class RPPGReading:
    bpm: int
    confidence: float
    snr: float
    quality: Quality
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "bpm": self.bpm,
            "confidence": self.confidence,
            "snr": self.snr,
            "quality": self.quality.value,
            "timestamp": self.timestamp,
        }


@dataclass
class SessionConfig:
    capacity: int = 900  # 30 s at 30 fps
    min_fill: int = 300  # 10 s at 30 fps
    sample_rate_hz: float = 30.0
    estimate_sample_rate: bool = False  # derive fs from frame timestamps
    analysis_every: int = 1  # samples between analysis passes once ready
    channel: str = "g"
    reset_after_missed_frames: Optional[int] = 150  # ~5 s without ROI
    spectral: SpectralConfig = field(default_factory=SpectralConfig)
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)
    conditioner: ConditionerConfig = field(default_factory=ConditionerConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)

    def __post_init__(self) -> None:
        if self.capacity < self.min_fill:
            raise ValueError("capacity must be >= min_fill")
        if self.sample_rate_hz <= 0:
            raise ValueError("sample_rate_hz must be positive")
        if self.analysis_every < 1:
            raise ValueError("analysis_every must be >= 1")
        if self.channel not in ("r", "g", "b"):
            raise ValueError(f"unknown channel: {self.channel!r}")


class SessionController:
    """Owns one subject's signal buffer and emits readings."""

    def __init__(
        self,
        cfg: Optional[SessionConfig] = None,
        locator: Optional[RoiLocator] = None,
    ) -> None:
        self.cfg = cfg or SessionConfig()
        self.locator = locator or RoiLocator()
        self._buffer = SignalBuffer(self.cfg.capacity, self.cfg.min_fill)
        self._lock = threading.Lock()
        self._analysis_lock = threading.Lock()
        self._generation = 0
        self._since_analysis = 0
        self._missed_frames = 0
        self._stopped = False
        self._previous: Optional[RGBSample] = None
        self.last_roi: Optional[ROI] = None
        self.last_reading: Optional[RPPGReading] = None
        self.lighting = Lighting.GOOD
        self.movement_detected = False

    # --- progress queries -------------------------------------------------

    @property
    def state(self) -> SessionState:
        n = len(self._buffer)
        if n == 0:
            return SessionState.IDLE
        if n < self._buffer.min_fill:
            return SessionState.BUFFERING
        return SessionState.READY

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __len__(self) -> int:
        return len(self._buffer)

    def buffer_progress(self) -> float:
        return self._buffer.buffer_progress()

    def analysis_progress(self) -> float:
        return self._buffer.analysis_progress()

    def has_minimum_data(self) -> bool:
        return self._buffer.has_minimum_data()

    def last_timestamp(self) -> Optional[float]:
        with self._lock:
            return self._buffer.last_timestamp()

    def preview_signal(self, n: int = 60) -> np.ndarray:
        """Recent detrended/normalized green samples for a waveform view."""
        with self._lock:
            green = self._buffer.channel("g")
        return preview_signal(green, n)

    # --- lifecycle --------------------------------------------------------

    def reset(self) -> None:
        """Discard buffered data; any in-flight analysis result is dropped."""
        with self._lock:
            self._reset_locked()
        logger.debug("session reset (generation %d)", self._generation)

    def stop(self) -> None:
        with self._lock:
            self._reset_locked()
            self._stopped = True
        logger.info("session stopped")

    def start(self) -> None:
        with self._lock:
            self._stopped = False
        logger.info("session started")

    def _reset_locked(self) -> None:
        self._buffer.reset()
        self._generation += 1
        self._since_analysis = 0
        self._missed_frames = 0
        self._previous = None
        self.last_roi = None
        self.last_reading = None
        self.movement_detected = False

    def update_calibration(
        self,
        spectral: Optional[SpectralConfig] = None,
        thresholds: Optional[QualityThresholds] = None,
        analysis_every: Optional[int] = None,
    ) -> None:
        with self._lock:
            changes: dict = {}
            if spectral is not None:
                changes["spectral"] = spectral
            if thresholds is not None:
                changes["thresholds"] = thresholds
            if analysis_every is not None:
                changes["analysis_every"] = analysis_every
            if changes:
                self.cfg = replace(self.cfg, **changes)

    # --- per-frame entry points ------------------------------------------

    def on_frame(self, frame: Frame, face_hint: Optional[ROI] = None) -> Optional[RPPGReading]:
        """Process one video frame; returns a reading when one was produced."""
        if self._stopped:
            return None
        roi = self.locator.locate(frame, face_hint)
        if roi is None:
            self._on_missed_frame()
            return None
        return self.ingest(frame, roi)

    def ingest(self, frame: Frame, roi: ROI) -> Optional[RPPGReading]:
        """Sample ``roi`` of ``frame`` and feed the result to the buffer."""
        if self._stopped:
            return None
        rgb = sample(frame, roi, self.cfg.sampler)
        if rgb is None:
            self._on_missed_frame()
            return None
        self._missed_frames = 0
        self.last_roi = roi
        return self.add_sample(rgb, frame.timestamp)

    def _on_missed_frame(self) -> None:
        self.last_roi = None
        self._missed_frames += 1
        limit = self.cfg.reset_after_missed_frames
        if limit is not None and self._missed_frames >= limit and len(self._buffer) > 0:
            logger.debug("no ROI for %d frames, resetting", self._missed_frames)
            self.reset()

    def add_sample(self, rgb: RGBSample, timestamp: Optional[float] = None) -> Optional[RPPGReading]:
        """Append one sample; run an analysis pass when ready and due."""
        if self._stopped:
            return None
        if not rgb.is_finite():
            logger.debug("dropping non-finite sample %r", rgb)
            return None
        with self._lock:
            self.lighting = assess_lighting(rgb, self.cfg.sampler)
            if self._previous is not None:
                self.movement_detected = detect_movement(
                    self._previous, rgb, self.cfg.sampler.movement_threshold
                )
            self._previous = rgb
            was = self.state
            self._buffer.add_reading(rgb, timestamp)
            if was is not SessionState.READY and self.state is SessionState.READY:
                logger.debug("buffer ready with %d samples", len(self._buffer))
            if not self._buffer.has_minimum_data():
                return None
            self._since_analysis += 1
            # first pass as soon as ready, then every ``analysis_every`` samples
            if self.last_reading is not None and self._since_analysis < self.cfg.analysis_every:
                return None
        return self.analyze_now(timestamp)

    def analyze_now(self, timestamp: Optional[float] = None) -> Optional[RPPGReading]:
        """Run a pass over the current buffer regardless of ``analysis_every``.

        Returns None while buffering, when another pass is in flight, or
        when the session was reset or stopped before the pass finished.
        """
        with self._lock:
            if self._stopped or not self._buffer.has_minimum_data():
                return None
            if not self._analysis_lock.acquire(blocking=False):
                # a pass is already running; the new sample stays buffered only
                return None
            self._since_analysis = 0
            generation = self._generation
            window = self._buffer.channel(self.cfg.channel)
            fs = self._sample_rate()
            cfg = self.cfg
        try:
            reading = self._analyze(window, fs, cfg, timestamp)
        finally:
            self._analysis_lock.release()
        with self._lock:
            if generation != self._generation or self._stopped:
                return None
            self.last_reading = reading
        return reading

    def _sample_rate(self) -> float:
        if not self.cfg.estimate_sample_rate:
            return self.cfg.sample_rate_hz
        # diffs across an unknown timestamp would span a gap
        t = self._buffer.recent_timestamps(51)
        if t is None or t.size < 2:
            return self.cfg.sample_rate_hz
        dt = np.diff(t)
        dt = dt[dt > 0]
        if dt.size == 0:
            return self.cfg.sample_rate_hz
        return float(1.0 / np.median(dt))

    @staticmethod
    def _analyze(
        window: np.ndarray,
        fs: float,
        cfg: SessionConfig,
        timestamp: Optional[float],
    ) -> RPPGReading:
        conditioner = replace(cfg.conditioner, fs=fs)
        est = analyze(condition(window, conditioner), fs, cfg.spectral)
        quality = classify(est.snr, est.confidence, cfg.thresholds)
        ts = float(timestamp) if timestamp is not None else time.time()
        return RPPGReading(est.bpm, est.confidence, est.snr, quality, ts)
