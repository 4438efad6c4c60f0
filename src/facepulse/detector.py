"""OpenCV Haar-cascade face box provider.

Supplies the optional face hint consumed by ``RoiLocator``. Face detection
itself is not part of the pulse pipeline; any detector returning an
``ROI`` in full-resolution pixel coordinates can be used instead.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .frame import ROI


def largest_face(
    faces: "np.ndarray | list",
    scale: int,
    width: int,
    height: int,
) -> Optional[ROI]:
    """Pick the largest (x, y, w, h) box, rescale it and clamp to the frame."""
    if len(faces) == 0:
        return None
    x, y, bw, bh = max(faces, key=lambda r: r[2] * r[3])
    box = ROI(int(x) * scale, int(y) * scale, int(bw) * scale, int(bh) * scale)
    return box.clamp(width, height)


class CascadeFaceDetector:
    """Frontal-face Haar cascade bundled with OpenCV."""

    def __init__(self, downscale: int = 2, min_neighbors: int = 5) -> None:
        import cv2

        self.downscale = max(1, int(downscale))
        self.min_neighbors = int(min_neighbors)
        cascade_path = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        self._clf = cv2.CascadeClassifier(cascade_path)

    def detect(self, frame_rgb: np.ndarray) -> Optional[ROI]:
        import cv2

        h, w = frame_rgb.shape[:2]
        ds = self.downscale
        small = np.ascontiguousarray(frame_rgb[::ds, ::ds, :3])
        gray = cv2.cvtColor(small, cv2.COLOR_RGB2GRAY)
        faces = self._clf.detectMultiScale(
            gray,
            scaleFactor=1.1,
            minNeighbors=self.min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE,
        )
        return largest_face(faces, ds, w, h)
