"""ROI location for pulse extraction.

Two paths:
- face hint: a forehead band derived from an external face bounding box
  (from ``facepulse.detector`` or any other detector).
- fallback: a prioritized list of candidate strategies, each producing
  rectangles in the plausible head region, scored by luminance texture
  and a simple RGB skin-tone rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from .frame import ROI, Frame
from .sampler import opaque_pixels

CandidateGenerator = Callable[[int, int], list[ROI]]


@dataclass(frozen=True)
class CandidateStrategy:
    name: str
    generate: CandidateGenerator


@dataclass(frozen=True)
class CandidateScore:
    roi: ROI
    strategy: str
    variance: float
    skin_fraction: float
    score: float


def centered_forehead(width: int, height: int) -> list[ROI]:
    """Forehead of an assumed face centred horizontally, 20% from the top."""
    face_w = width * 0.3
    face_h = height * 0.4
    face_x = (width - face_w) / 2
    face_y = height * 0.2
    roi_w = face_w * 0.8
    roi_h = face_h * 0.3
    return [
        ROI(
            int(round(face_x + (face_w - roi_w) / 2)),
            int(round(face_y + face_h * 0.1)),
            int(round(roi_w)),
            int(round(roi_h)),
        )
    ]


def upper_center_grid(width: int, height: int) -> list[ROI]:
    """3x2 grid of small patches covering the upper-middle of the frame."""
    cell_w = width * 0.12
    cell_h = height * 0.08
    x_start = width * 0.32
    y_start = height * 0.18
    out = []
    for row in range(2):
        for col in range(3):
            out.append(
                ROI(
                    int(round(x_start + col * cell_w)),
                    int(round(y_start + row * cell_h)),
                    int(round(cell_w)),
                    int(round(cell_h)),
                )
            )
    return out


def center_patch(width: int, height: int) -> list[ROI]:
    w = width * 0.2
    h = height * 0.15
    return [ROI(int(round((width - w) / 2)), int(round(height * 0.3)), int(round(w)), int(round(h)))]


DEFAULT_STRATEGIES: tuple[CandidateStrategy, ...] = (
    CandidateStrategy("centered_forehead", centered_forehead),
    CandidateStrategy("upper_center_grid", upper_center_grid),
    CandidateStrategy("center_patch", center_patch),
)


@dataclass(frozen=True)
class RoiConfig:
    # Forehead band inside a face box
    width_frac: float = 0.65
    top_frac: float = 0.10
    height_frac: float = 0.12
    # Fallback scoring
    downscale: int = 2  # pixel stride used for scoring
    opacity_threshold: int = 128
    min_variance: float = 2.0
    variance_norm: float = 100.0
    min_skin_fraction: float = 0.3
    skin_rg_min: float = 15.0
    lum_min: float = 40.0
    lum_max: float = 230.0
    skin_weight: float = 0.7
    texture_weight: float = 0.3


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of an Nx3 RGB array."""
    return 0.299 * rgb[:, 0] + 0.587 * rgb[:, 1] + 0.114 * rgb[:, 2]


def skin_fraction(rgb: np.ndarray, cfg: RoiConfig) -> float:
    """Fraction of pixels passing a red-dominant, mid-luminance skin rule."""
    if rgb.shape[0] == 0:
        return 0.0
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    lum = luminance(rgb)
    skin = (
        (r > g)
        & (r > b)
        & ((r - g) > cfg.skin_rg_min)
        & (lum >= cfg.lum_min)
        & (lum <= cfg.lum_max)
    )
    return float(np.mean(skin))


def forehead_from_face(face: ROI, cfg: RoiConfig) -> ROI:
    w = face.width * cfg.width_frac
    return ROI(
        int(round(face.x + (face.width - w) / 2)),
        int(round(face.y + face.height * cfg.top_frac)),
        int(round(w)),
        int(round(face.height * cfg.height_frac)),
    )


class RoiLocator:
    """Derive a pulse ROI from a frame and an optional face hint.

    Stateless; ``locate`` depends only on its arguments.
    """

    def __init__(
        self,
        cfg: Optional[RoiConfig] = None,
        strategies: Sequence[CandidateStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.cfg = cfg or RoiConfig()
        self.strategies = tuple(strategies)

    def locate(self, frame: Frame, face_hint: Optional[ROI] = None) -> Optional[ROI]:
        if face_hint is not None and not face_hint.is_empty:
            roi = forehead_from_face(face_hint, self.cfg)
            return roi.clamp(frame.width, frame.height)
        best = self.best_candidate(frame)
        return best.roi if best is not None else None

    def score(self, frame: Frame, roi: ROI, strategy: str = "") -> Optional[CandidateScore]:
        """Score one candidate; None when it is out of frame or fully transparent."""
        clamped = roi.clamp(frame.width, frame.height)
        if clamped is None:
            return None
        ds = max(1, int(self.cfg.downscale))
        view = Frame(frame.pixels[::ds, ::ds])
        scaled = ROI(clamped.x // ds, clamped.y // ds, max(1, clamped.width // ds), max(1, clamped.height // ds))
        rgb = opaque_pixels(view, scaled, self.cfg.opacity_threshold)
        if rgb.shape[0] == 0:
            return None
        var = float(np.var(luminance(rgb)))
        skin = skin_fraction(rgb, self.cfg)
        texture = min(var / self.cfg.variance_norm, 1.0)
        total = self.cfg.skin_weight * skin + self.cfg.texture_weight * texture
        return CandidateScore(clamped, strategy, var, skin, total)

    def candidates(self, frame: Frame) -> list[CandidateScore]:
        """All scored candidates in strategy priority order."""
        out: list[CandidateScore] = []
        for strategy in self.strategies:
            for roi in strategy.generate(frame.width, frame.height):
                s = self.score(frame, roi, strategy.name)
                if s is not None:
                    out.append(s)
        return out

    def best_candidate(self, frame: Frame) -> Optional[CandidateScore]:
        best: Optional[CandidateScore] = None
        for cand in self.candidates(frame):
            if cand.variance < self.cfg.min_variance:
                continue
            if cand.skin_fraction < self.cfg.min_skin_fraction:
                continue
            # strict comparison keeps the earlier strategy on ties
            if best is None or cand.score > best.score:
                best = cand
        return best
