import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from screenreality.core.errors import ConfigurationError

log = logging.getLogger(__name__)


class Camera:
    """
    OpenCV webcam wrapper. Frames are BGR.
    """

    def __init__(self, index: int = 0, resolution: Optional[Tuple[int, int]] = None):
        self.index = index
        self._cap = cv2.VideoCapture(index)
        self.ready = bool(self._cap is not None and self._cap.isOpened())

        if not self.ready:
            self._cap.release()
            raise ConfigurationError(f"Could not start video capture on device {index}")

        if resolution:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(resolution[0]))
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(resolution[1]))

        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        log.info(f"Camera {index} opened at {self.width}x{self.height}")

    def read(self) -> Optional[np.ndarray]:
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            self.ready = False
