import logging
import math
from typing import Optional

from screenreality.core.errors import DegenerateGeometry, NoDetection, ScreenRealityError
from screenreality.core.models import CameraIntrinsics, DetectionRect, EyePosition3D

log = logging.getLogger(__name__)


def compute_eye_position(
    rect: DetectionRect,
    intrinsics: CameraIntrinsics,
    img_w: int,
    img_h: int,
    min_depth: float = 1e-6,
    max_depth: float = math.inf,
    min_face_width: float = 0.0,
) -> EyePosition3D:
    """
    Invert the pinhole model for one face rectangle.

    The known physical eye gap and its projected (normalised) width give the
    depth; the eyes centre, scaled by that depth, gives x and y. Image rows
    grow downwards, scene y grows upwards.

    Raises DegenerateGeometry when the rectangle is narrower than
    min_face_width (or empty), the eyes are inverted, or the depth falls
    outside [min_depth, max_depth].
    """
    if not (rect.width > 0 and rect.height > 0) or rect.width < min_face_width:
        raise DegenerateGeometry(f"Degenerate face rectangle {rect}")

    f = float(intrinsics.focal_length)
    if not f > 0:
        raise DegenerateGeometry(f"Non-positive focal length {f}")
    cx, cy = intrinsics.center_for(img_w, img_h)

    left, right, center = rect.left_eye, rect.right_eye, rect.eyes_center

    norm_left = (left.x - cx) / f
    norm_right = (right.x - cx) / f
    norm_center_x = (center.x - cx) / f
    norm_center_y = (center.y - cy) / f

    denom = norm_right - norm_left
    if not denom > 0:
        raise DegenerateGeometry(f"Eye separation {denom:.6f} is not positive")

    z = intrinsics.eyes_gap / denom
    if not math.isfinite(z) or not min_depth <= z <= max_depth:
        raise DegenerateGeometry(f"Depth {z} out of range [{min_depth}, {max_depth}]")

    return EyePosition3D(norm_center_x * z, -norm_center_y * z, z)


def estimate(
    rect: DetectionRect,
    intrinsics: CameraIntrinsics,
    previous: Optional[EyePosition3D],
    img_w: int,
    img_h: int,
    alpha: float = 0.5,
    min_depth: float = 1e-6,
    max_depth: float = math.inf,
    min_face_width: float = 0.0,
) -> EyePosition3D:
    """One smoothed pose step: alpha * previous + (1 - alpha) * measured."""
    measured = compute_eye_position(
        rect, intrinsics, img_w, img_h,
        min_depth=min_depth, max_depth=max_depth, min_face_width=min_face_width,
    )
    if previous is None or alpha <= 0.0:
        return measured
    return previous.blend(measured, alpha)


class HeadPoseEstimator:
    """
    Tracks the viewer's eye position across frames.

    Holds the last good pose. Frames without a detection or with degenerate
    geometry leave it untouched.
    """

    def __init__(
        self,
        intrinsics: CameraIntrinsics,
        smoothing_alpha: float = 0.5,
        min_depth: float = 1.0,
        max_depth: float = 1000.0,
        min_face_width: float = 1.0,
        initial_position: Optional[EyePosition3D] = None,
    ):
        if not 0.0 <= smoothing_alpha < 1.0:
            raise ValueError(f"smoothing_alpha must be in [0, 1), got {smoothing_alpha}")

        self.intrinsics = intrinsics
        self.ALPHA = float(smoothing_alpha)
        self.min_depth = float(min_depth)
        self.max_depth = float(max_depth)
        self.min_face_width = float(min_face_width)

        # --- SMOOTHING STATE ---
        self.initial_position = initial_position or EyePosition3D(0.0, 0.0, 50.0)
        self.position = self.initial_position
        self.first_frame = True
        self.rejected_frames = 0
        self.last_error: Optional[ScreenRealityError] = None

        log.info(
            f"HeadPoseEstimator initialized (f={intrinsics.focal_length:.1f}px, "
            f"eyes_gap={intrinsics.eyes_gap:.2f}cm, alpha={self.ALPHA:.2f})"
        )

    def update(self, rect: Optional[DetectionRect], img_w: int, img_h: int) -> bool:
        """
        Feed one frame's detection. Returns True when the pose was updated.
        """
        if rect is None:
            self.last_error = NoDetection("No face in frame")
            return False

        try:
            # The start-up pose is a placeholder, not a measurement: seed directly.
            previous = None if self.first_frame else self.position
            self.position = estimate(
                rect, self.intrinsics, previous, img_w, img_h,
                alpha=self.ALPHA, min_depth=self.min_depth,
                max_depth=self.max_depth, min_face_width=self.min_face_width,
            )
        except DegenerateGeometry as e:
            self.rejected_frames += 1
            self.last_error = e
            log.debug(f"Frame rejected, keeping pose {self.position.status_text()}: {e}")
            return False

        self.first_frame = False
        self.last_error = None
        return True

    def reset(self, position: Optional[EyePosition3D] = None) -> None:
        self.position = position or self.initial_position
        self.first_frame = True
