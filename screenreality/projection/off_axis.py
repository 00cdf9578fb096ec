import logging
import math
from typing import Optional

import numpy as np

from screenreality.core.errors import DegenerateGeometry
from screenreality.core.models import EyePosition3D, Frustum, ProjectionResult
from screenreality.projection import matrices
from screenreality.projection.screen import ScreenRect

log = logging.getLogger(__name__)

MODE_OFF_AXIS = "off_axis"
MODE_LOOK_AT = "look_at"
PROJECTION_MODES = (MODE_OFF_AXIS, MODE_LOOK_AT)

FAR_FIXED = "fixed"
FAR_EYE_DISTANCE = "eye_distance"
FAR_STRATEGIES = (FAR_FIXED, FAR_EYE_DISTANCE)


def far_plane(far: float, eye_distance: float, strategy: str = FAR_FIXED) -> float:
    if strategy == FAR_EYE_DISTANCE:
        return far + eye_distance
    return far


def compute_off_axis(
    eye: EyePosition3D,
    screen: ScreenRect,
    near: float,
    far: float,
    far_strategy: str = FAR_FIXED,
) -> ProjectionResult:
    """
    Generalized perspective projection (Kooima, 2008).

    Builds a frustum whose apex is the eye and whose near-plane window is the
    screen rectangle seen from there. The projection is the perpendicular
    frustum; the view rotates world axes into the screen basis and moves the
    eye to the origin.

    Raises DegenerateGeometry when the eye is not in front of the screen.
    """
    vr, vu, vn = screen.basis()
    pa, pb, pc = screen.corners()
    pe = eye.as_array()

    va = pa - pe
    vb = pb - pe
    vc = pc - pe

    d = -float(np.dot(va, vn))
    if not (math.isfinite(d) and d > 0.0):
        raise DegenerateGeometry(f"Eye is not in front of the screen (d={d:.4f})")

    scale = near / d
    left = float(np.dot(vr, va)) * scale
    right = float(np.dot(vr, vb)) * scale
    bottom = float(np.dot(vu, va)) * scale
    top = float(np.dot(vu, vc)) * scale
    far_eff = far_plane(far, d, far_strategy)

    rotation = matrices.basis_rotation(vr, vu, vn)
    translation = matrices.translation(-pe[0], -pe[1], -pe[2])

    return ProjectionResult(
        projection=matrices.frustum(left, right, bottom, top, near, far_eff),
        view=rotation @ translation,
        frustum=Frustum(
            left=left, right=right, bottom=bottom, top=top,
            near=near, far=far_eff,
            rotation=rotation[:3, :3].copy(),
            translation=-pe,
        ),
        eye_distance=d,
    )


def compute_look_at(
    eye: EyePosition3D,
    aspect: float,
    fovy_deg: float = 60.0,
    near: float = 1.0,
    far: float = 250.0,
) -> ProjectionResult:
    """Symmetric perspective from the eye towards the world origin."""
    try:
        view = matrices.look_at(eye.as_array(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    except ValueError as e:
        raise DegenerateGeometry(str(e)) from e
    return ProjectionResult(
        projection=matrices.perspective(fovy_deg, aspect, near, far),
        view=view,
    )


class OffAxisProjector:
    """
    Turns the tracked eye position into projection and view matrices.

    Keeps the last good result: a degenerate eye position (behind or on the
    screen plane) returns it unchanged instead of a broken matrix.
    """

    def __init__(
        self,
        screen: ScreenRect,
        near: float = 0.5,
        far: float = 200.0,
        far_strategy: str = FAR_FIXED,
        mode: str = MODE_OFF_AXIS,
        look_at_fovy_deg: float = 60.0,
        look_at_near: float = 1.0,
        look_at_far: float = 250.0,
    ):
        if not 0.0 < near < far:
            raise ValueError(f"Clip planes must satisfy 0 < near < far (near={near}, far={far})")
        if far_strategy not in FAR_STRATEGIES:
            raise ValueError(f"Unknown far strategy '{far_strategy}'")
        if mode not in PROJECTION_MODES:
            raise ValueError(f"Unknown projection mode '{mode}'")

        self.screen = screen
        self.near = float(near)
        self.far = float(far)
        self.far_strategy = far_strategy
        self.mode = mode
        self.look_at_fovy_deg = float(look_at_fovy_deg)
        self.look_at_near = float(look_at_near)
        self.look_at_far = float(look_at_far)

        self.last_result: Optional[ProjectionResult] = None

        log.info(
            f"OffAxisProjector ready (mode={mode}, near={near}, far={far}, far_strategy={far_strategy})"
        )

    @property
    def aspect(self) -> float:
        pa, pb, pc = self.screen.corners()
        return float(np.linalg.norm(pb - pa) / np.linalg.norm(pc - pa))

    def set_screen(self, screen: ScreenRect) -> None:
        self.screen = screen

    def toggle_mode(self) -> str:
        self.mode = MODE_LOOK_AT if self.mode == MODE_OFF_AXIS else MODE_OFF_AXIS
        # a fallback from the other mode would draw with the wrong camera
        self.last_result = None
        log.info(f"Projection mode: {self.mode}")
        return self.mode

    def compute_frustum(
        self,
        eye: EyePosition3D,
        screen: Optional[ScreenRect] = None,
        near: Optional[float] = None,
        far: Optional[float] = None,
    ) -> Optional[ProjectionResult]:
        """
        Projection for the current eye position, or the previous one when the
        geometry is degenerate. None only if no frame has succeeded yet.
        """
        try:
            if self.mode == MODE_LOOK_AT:
                result = compute_look_at(
                    eye, self.aspect, self.look_at_fovy_deg, self.look_at_near, self.look_at_far
                )
            else:
                result = compute_off_axis(
                    eye,
                    screen or self.screen,
                    self.near if near is None else near,
                    self.far if far is None else far,
                    self.far_strategy,
                )
        except DegenerateGeometry as e:
            log.debug(f"Reusing previous projection: {e}")
            return self.last_result

        self.last_result = result
        return result
