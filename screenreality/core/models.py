from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

# Fractional eye offsets inside a face rectangle.
LEFT_EYE_X = 0.30
RIGHT_EYE_X = 0.70
CENTER_X = 0.50
EYES_Y = 0.37


@dataclass(frozen=True)
class DetectionRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def point_at(self, fx: float, fy: float) -> "EyePoint":
        return EyePoint(self.x + self.width * fx, self.y + self.height * fy)

    @property
    def left_eye(self) -> "EyePoint":
        return self.point_at(LEFT_EYE_X, EYES_Y)

    @property
    def right_eye(self) -> "EyePoint":
        return self.point_at(RIGHT_EYE_X, EYES_Y)

    @property
    def eyes_center(self) -> "EyePoint":
        return self.point_at(CENTER_X, EYES_Y)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        return (int(self.x), int(self.y), int(self.width), int(self.height))


@dataclass(frozen=True)
class EyePoint:
    x: float
    y: float

    def as_int_tuple(self) -> Tuple[int, int]:
        return (int(self.x), int(self.y))


@dataclass(frozen=True)
class CameraIntrinsics:
    """
    Webcam calibration used to invert the pinhole model.

    focal_length: focal length in pixels.
    eyes_gap: physical distance between the eyes (cm).
    principal_point: optical axis in pixels, None for the image centre.
    """
    focal_length: float = 500.0
    eyes_gap: float = 6.5
    principal_point: Optional[Tuple[float, float]] = None

    def center_for(self, img_w: int, img_h: int) -> Tuple[float, float]:
        if self.principal_point is not None:
            return self.principal_point
        return (img_w / 2.0, img_h / 2.0)


@dataclass(frozen=True)
class EyePosition3D:
    """Midpoint between the viewer's eyes in scene units (cm)."""
    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def blend(self, other: "EyePosition3D", alpha: float) -> "EyePosition3D":
        """alpha * self + (1 - alpha) * other"""
        a = float(alpha)
        return EyePosition3D(
            a * self.x + (1.0 - a) * other.x,
            a * self.y + (1.0 - a) * other.y,
            a * self.z + (1.0 - a) * other.z,
        )

    def status_text(self) -> str:
        return f"(x,y,z) = ({int(self.x)},{int(self.y)},{int(self.z)})"


@dataclass(frozen=True, eq=False)
class Frustum:
    left: float
    right: float
    bottom: float
    top: float
    near: float
    far: float
    # Rows are Vr, Vu, Vn (world -> screen basis).
    rotation: np.ndarray
    translation: np.ndarray


@dataclass(frozen=True, eq=False)
class ProjectionResult:
    projection: np.ndarray
    view: np.ndarray
    frustum: Optional[Frustum] = None
    eye_distance: Optional[float] = None

    @property
    def combined(self) -> np.ndarray:
        return self.projection @ self.view
