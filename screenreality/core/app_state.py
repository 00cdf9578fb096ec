from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from screenreality.config.settings import CAMERA_RATIO_MAX, CAMERA_RATIO_MIN, DisplayConfig
from screenreality.core.models import DetectionRect, EyePosition3D, ProjectionResult

log = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Everything the loop, the pipeline and the renderer share for one frame.
    Owned by the driver loop and passed explicitly to each stage.
    """
    eye: EyePosition3D
    show_camera: bool = True
    show_detection: bool = True
    polygon_mode: bool = False
    fullscreen: bool = False
    camera_ratio: float = 0.3
    angle_rot_x: float = 0.0
    angle_rot_y: float = 0.0
    running: bool = True

    # Last frame outputs
    detection: Optional[DetectionRect] = None
    projection: Optional[ProjectionResult] = None
    camera_frame: Optional[np.ndarray] = field(default=None, repr=False)

    @classmethod
    def from_config(cls, display: DisplayConfig, eye: EyePosition3D) -> "AppState":
        return cls(
            eye=eye,
            show_camera=display.show_camera,
            show_detection=display.show_detection,
            polygon_mode=display.polygon_mode,
            fullscreen=display.fullscreen,
            camera_ratio=display.camera_ratio,
        )

    def snapshot_eye(self) -> EyePosition3D:
        # EyePosition3D is immutable: handing out the reference is a consistent copy.
        return self.eye

    def adjust_camera_ratio(self, delta: float) -> float:
        self.camera_ratio = round(min(CAMERA_RATIO_MAX, max(CAMERA_RATIO_MIN, self.camera_ratio + delta)), 2)
        return self.camera_ratio

    def rotate_scene(self, dx: float = 0.0, dy: float = 0.0) -> None:
        self.angle_rot_x += dx
        self.angle_rot_y += dy
