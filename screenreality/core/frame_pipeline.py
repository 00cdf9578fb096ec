import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from screenreality.core.app_state import AppState
from screenreality.core.errors import ScreenRealityError
from screenreality.core.models import DetectionRect, EyePosition3D, ProjectionResult

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    w: int
    h: int
    detection: Optional[DetectionRect]
    pose_updated: bool
    eye: EyePosition3D
    projection: Optional[ProjectionResult]
    error: Optional[ScreenRealityError] = None  # why the pose was not updated

    @property
    def status_text(self) -> str:
        return self.eye.status_text()


class FramePipeline:
    """
    Pure per-frame math:
    - biggest face rectangle
    - smoothed eye position
    - projection + view matrices
    No UI. Per-frame failures keep the previous pose/projection.
    """

    def __init__(self, *, face_detector, head_pose_estimator, projector):
        self.face_detector = face_detector
        self.head_pose_estimator = head_pose_estimator
        self.projector = projector

    def process(self, frame: np.ndarray, state: Optional[AppState] = None) -> FrameResult:
        h, w = frame.shape[:2]

        rect = self.face_detector.detect(frame)
        updated = self.head_pose_estimator.update(rect, w, h)
        eye = self.head_pose_estimator.position

        projection = self.projector.compute_frustum(eye)

        log.debug(eye.status_text())

        result = FrameResult(
            w=w,
            h=h,
            detection=rect,
            pose_updated=updated,
            eye=eye,
            projection=projection,
            error=self.head_pose_estimator.last_error,
        )

        if state is not None:
            state.eye = eye
            state.detection = rect
            state.projection = projection
            state.camera_frame = frame

        return result
