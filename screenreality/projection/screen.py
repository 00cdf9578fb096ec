from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from screenreality.core.errors import ConfigurationError

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class ScreenRect:
    """
    The display as a plane in scene space (cm), given by three corners:
    pa bottom-left, pb bottom-right, pc top-left.
    """
    pa: Vec3
    pb: Vec3
    pc: Vec3

    def __post_init__(self):
        right = np.subtract(self.pb, self.pa)
        up = np.subtract(self.pc, self.pa)
        if np.linalg.norm(np.cross(right, up)) < 1e-9:
            raise ConfigurationError(f"Screen corners are collinear: {self.pa}, {self.pb}, {self.pc}")

    @classmethod
    def from_window(cls, width_px: int, height_px: int, pixels_per_cm: float) -> "ScreenRect":
        """
        Screen centred on the world origin in the z=0 plane.
        Corners sit at (+/-width/ppcm, +/-height/ppcm).
        """
        if pixels_per_cm <= 0 or width_px <= 0 or height_px <= 0:
            raise ConfigurationError(
                f"Invalid screen size {width_px}x{height_px} px at {pixels_per_cm} px/cm"
            )
        cx = float(width_px) / pixels_per_cm
        cy = float(height_px) / pixels_per_cm
        return cls(pa=(-cx, -cy, 0.0), pb=(cx, -cy, 0.0), pc=(-cx, cy, 0.0))

    @property
    def pd(self) -> Vec3:
        """Top-right corner, completing the parallelogram."""
        return tuple(np.add(self.pb, np.subtract(self.pc, self.pa)).tolist())

    def corners(self) -> np.ndarray:
        return np.array([self.pa, self.pb, self.pc], dtype=np.float64)

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Orthonormal (right, up, normal) basis of the screen."""
        pa, pb, pc = self.corners()
        vr = pb - pa
        vr /= np.linalg.norm(vr)
        vu = pc - pa
        vu /= np.linalg.norm(vu)
        vn = np.cross(vr, vu)
        vn /= np.linalg.norm(vn)
        return vr, vu, vn

    def outline(self) -> np.ndarray:
        """Four corners in drawing order."""
        return np.array([self.pa, self.pb, self.pd, self.pc], dtype=np.float64)
