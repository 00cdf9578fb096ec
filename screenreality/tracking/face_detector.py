import logging
import os
from typing import List, Optional

import cv2
import numpy as np

from screenreality.core.errors import ConfigurationError
from screenreality.core.models import DetectionRect

log = logging.getLogger(__name__)

DEFAULT_CASCADE = os.path.join(cv2.data.haarcascades, "haarcascade_frontalface_alt.xml")


def pick_largest(rects: List[DetectionRect]) -> Optional[DetectionRect]:
    if not rects:
        return None
    return max(rects, key=lambda r: r.area)


class FaceDetector:
    """
    Wrapper for an OpenCV Haar cascade.
    Only the biggest face of a frame is returned.
    """

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        min_face_size: int = 80,
        scale_factor: float = 1.1,
        min_neighbors: int = 2,
    ):
        self.cascade_path = cascade_path or DEFAULT_CASCADE
        self.min_face_size = int(min_face_size)
        self.scale_factor = float(scale_factor)
        self.min_neighbors = int(min_neighbors)

        self._cascade = cv2.CascadeClassifier()
        if not os.path.isfile(self.cascade_path) or not self._cascade.load(self.cascade_path):
            raise ConfigurationError(f"Could not load face cascade '{self.cascade_path}'")

        log.info(f"FaceDetector ready ({os.path.basename(self.cascade_path)}, min size={self.min_face_size}px)")

    @staticmethod
    def preprocess(frame_bgr: np.ndarray) -> np.ndarray:
        if frame_bgr.ndim == 3:
            gray = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2GRAY)
        else:
            gray = frame_bgr
        return cv2.equalizeHist(gray)

    def detect_all(self, frame_bgr: np.ndarray) -> List[DetectionRect]:
        gray = self.preprocess(frame_bgr)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE | cv2.CASCADE_FIND_BIGGEST_OBJECT,
            minSize=(self.min_face_size, self.min_face_size),
        )
        return [DetectionRect(float(x), float(y), float(w), float(h)) for (x, y, w, h) in faces]

    def detect(self, frame_bgr: np.ndarray) -> Optional[DetectionRect]:
        """Biggest face in the frame, or None."""
        return pick_largest(self.detect_all(frame_bgr))
