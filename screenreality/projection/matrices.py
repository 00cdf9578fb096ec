"""
4x4 matrix builders with the classic fixed-function GL conventions
(right-handed eye space looking down -Z, column vectors, row-major arrays).
"""
import math

import numpy as np


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def frustum(left: float, right: float, bottom: float, top: float, near: float, far: float) -> np.ndarray:
    """Same matrix as glFrustum."""
    if right == left or top == bottom or far == near:
        raise ValueError("Frustum has zero extent")
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = 2.0 * near / (right - left)
    m[0, 2] = (right + left) / (right - left)
    m[1, 1] = 2.0 * near / (top - bottom)
    m[1, 2] = (top + bottom) / (top - bottom)
    m[2, 2] = -(far + near) / (far - near)
    m[2, 3] = -2.0 * far * near / (far - near)
    m[3, 2] = -1.0
    return m


def perspective(fovy_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Same matrix as gluPerspective."""
    f = 1.0 / math.tan(math.radians(fovy_deg) / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2.0 * far * near / (near - far)
    m[3, 2] = -1.0
    return m


def translation(tx: float, ty: float, tz: float) -> np.ndarray:
    m = identity()
    m[:3, 3] = (tx, ty, tz)
    return m


def basis_rotation(vr: np.ndarray, vu: np.ndarray, vn: np.ndarray) -> np.ndarray:
    """Rows vr, vu, vn: maps world coordinates into the given basis."""
    m = identity()
    m[0, :3] = vr
    m[1, :3] = vu
    m[2, :3] = vn
    return m


def axis_rotation(angle_deg: float, axis) -> np.ndarray:
    """Same matrix as glRotate."""
    a = np.asarray(axis, dtype=np.float64)
    n = np.linalg.norm(a)
    if n == 0:
        return identity()
    x, y, z = a / n
    c = math.cos(math.radians(angle_deg))
    s = math.sin(math.radians(angle_deg))
    t = 1.0 - c
    m = identity()
    m[:3, :3] = [
        [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
        [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
        [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
    ]
    return m


def look_at(eye, center, up) -> np.ndarray:
    """Same matrix as gluLookAt."""
    eye = np.asarray(eye, dtype=np.float64)
    fwd = np.asarray(center, dtype=np.float64) - eye
    fwd_n = np.linalg.norm(fwd)
    if fwd_n == 0:
        raise ValueError("look_at: eye and center coincide")
    fwd /= fwd_n

    side = np.cross(fwd, np.asarray(up, dtype=np.float64))
    side_n = np.linalg.norm(side)
    if side_n == 0:
        raise ValueError("look_at: up vector is parallel to the view direction")
    side /= side_n
    true_up = np.cross(side, fwd)

    rot = basis_rotation(side, true_up, -fwd)
    return rot @ translation(-eye[0], -eye[1], -eye[2])
