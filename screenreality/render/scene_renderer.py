import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from screenreality.core.app_state import AppState
from screenreality.core.models import DetectionRect, ProjectionResult
from screenreality.projection import matrices
from screenreality.projection.screen import ScreenRect

log = logging.getLogger(__name__)

# Unit cube, faces as vertex indices (counter-clockwise seen from outside).
CUBE_VERTICES = np.array([
    (-1, -1, -1), (1, -1, -1), (1, 1, -1), (-1, 1, -1),
    (-1, -1, 1), (1, -1, 1), (1, 1, 1), (-1, 1, 1),
], dtype=np.float64)

CUBE_FACES = (
    ((4, 5, 6, 7), (0.0, 0.0, 1.0)),   # front
    ((1, 2, 6, 5), (1.0, 0.0, 0.0)),   # right
    ((0, 3, 2, 1), (0.0, 0.0, -1.0)),  # back
    ((0, 4, 7, 3), (-1.0, 0.0, 0.0)),  # left
    ((3, 7, 6, 2), (0.0, 1.0, 0.0)),   # top
    ((0, 1, 5, 4), (0.0, -1.0, 0.0)),  # bottom
)

CUBE_EDGES = (
    (0, 1), (1, 2), (2, 3), (3, 0),
    (4, 5), (5, 6), (6, 7), (7, 4),
    (0, 4), (1, 5), (2, 6), (3, 7),
)

AMBIENT = 0.2
LIGHT_DIR = np.array([4.0, 0.0, 8.0]) / np.linalg.norm([4.0, 0.0, 8.0])


def to_clip(points: np.ndarray, mvp: np.ndarray) -> np.ndarray:
    """(N, 3) world points -> (N, 4) clip coordinates."""
    pts = np.asarray(points, dtype=np.float64)
    homo = np.hstack([pts, np.ones((pts.shape[0], 1))])
    return homo @ mvp.T


def clip_to_pixels(clip: np.ndarray, width: int, height: int) -> np.ndarray:
    """Perspective divide + viewport. Rows must be in front of the near plane."""
    ndc = clip[:, :3] / clip[:, 3:4]
    px = (ndc[:, 0] + 1.0) * 0.5 * width
    py = (1.0 - ndc[:, 1]) * 0.5 * height
    return np.stack([px, py], axis=1)


def _near_distance(c: np.ndarray) -> float:
    # >= 0 inside the near plane (z_clip >= -w_clip)
    return float(c[2] + c[3])


def clip_segment(c0: np.ndarray, c1: np.ndarray) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Clip a clip-space segment against the near plane. None if fully behind."""
    d0, d1 = _near_distance(c0), _near_distance(c1)
    if d0 < 0 and d1 < 0:
        return None
    if d0 >= 0 and d1 >= 0:
        return c0, c1
    t = d0 / (d0 - d1)
    mid = c0 + t * (c1 - c0)
    return (c0, mid) if d0 >= 0 else (mid, c1)


def cube_model(center: Sequence[float], half_size: float, angle_deg: float) -> np.ndarray:
    m = matrices.translation(*center) @ matrices.axis_rotation(angle_deg, (0.0, 1.0, 0.0))
    scale = np.diag([half_size, half_size, half_size, 1.0])
    return m @ scale


class SceneRenderer:
    """
    Draws the 3D scene with OpenCV primitives from projection/view matrices,
    plus the webcam inset and the tracking HUD.
    """

    def __init__(self, cubes: Iterable = (), screen: Optional[ScreenRect] = None):
        self.cubes = list(cubes)
        self.screen = screen
        self.FONT = cv2.FONT_HERSHEY_SIMPLEX

        self.COLOR_WHITE = (255, 255, 255)
        self.COLOR_BLACK = (0, 0, 0)
        self.COLOR_RED = (0, 0, 255)
        self.COLOR_GREEN = (0, 255, 0)
        self.COLOR_BLUE = (255, 0, 0)

    # --- scene -----------------------------------------------------------------

    def scene_model(self, state: AppState) -> np.ndarray:
        return (matrices.axis_rotation(state.angle_rot_x, (1.0, 0.0, 0.0))
                @ matrices.axis_rotation(state.angle_rot_y, (0.0, 1.0, 0.0)))

    def render(self, canvas: np.ndarray, state: AppState, fps: Optional[float] = None,
               look_at_mode: bool = False) -> np.ndarray:
        canvas[:] = 0
        projection = state.projection
        if projection is not None:
            self.draw_scene(canvas, projection, state, look_at_mode)
        if state.show_camera and state.camera_frame is not None:
            self.draw_camera_inset(canvas, state)
        if fps is not None:
            self.draw_fps(canvas, fps)
        return canvas

    def draw_scene(self, canvas: np.ndarray, projection: ProjectionResult, state: AppState,
                   look_at_mode: bool = False) -> None:
        vp = projection.combined
        model = self.scene_model(state)

        if state.polygon_mode:
            self.draw_axes(canvas, vp, 10.0)
        if look_at_mode and self.screen is not None:
            self.draw_polyline(canvas, vp, self.screen.outline(), self.COLOR_RED, closed=True)

        faces = []
        for cube in self.cubes:
            m = model @ cube_model(cube.center, cube.half_size, cube.angle_deg)
            if state.polygon_mode:
                self.draw_wire_cube(canvas, vp @ m, cube.color)
            else:
                faces.extend(self._cube_faces(canvas, vp @ m, m, cube.color))

        # Painter's order: farthest first.
        for depth, poly, color in sorted(faces, key=lambda f: f[0], reverse=True):
            cv2.fillConvexPoly(canvas, poly, color, cv2.LINE_AA)

    def _cube_faces(self, canvas: np.ndarray, mvp: np.ndarray, model: np.ndarray, color) -> List:
        h, w = canvas.shape[:2]
        clip = to_clip(CUBE_VERTICES, mvp)
        out = []
        for idx, normal in CUBE_FACES:
            c = clip[list(idx)]
            if np.any(c[:, 2] + c[:, 3] < 0):
                continue
            px = clip_to_pixels(c, w, h)
            # Back-face culling: screen space y points down, so front faces are clockwise.
            area = 0.0
            for i in range(4):
                x0, y0 = px[i]
                x1, y1 = px[(i + 1) % 4]
                area += x0 * y1 - x1 * y0
            if area >= 0:
                continue
            n_world = model[:3, :3] @ np.asarray(normal)
            n_world /= np.linalg.norm(n_world)
            shade = AMBIENT + (1.0 - AMBIENT) * max(0.0, float(np.dot(n_world, LIGHT_DIR)))
            shaded = tuple(int(min(255.0, ch * shade)) for ch in color)
            depth = float(np.mean(c[:, 2] / c[:, 3]))
            out.append((depth, np.round(px).astype(np.int32), shaded))
        return out

    def draw_wire_cube(self, canvas: np.ndarray, mvp: np.ndarray, color) -> None:
        clip = to_clip(CUBE_VERTICES, mvp)
        col = tuple(int(c) for c in color)
        for i, j in CUBE_EDGES:
            self._draw_clipped_line(canvas, clip[i], clip[j], col)

    def draw_axes(self, canvas: np.ndarray, mvp: np.ndarray, length: float) -> None:
        clip = to_clip(np.array([(0, 0, 0), (length, 0, 0), (0, length, 0), (0, 0, length)]), mvp)
        self._draw_clipped_line(canvas, clip[0], clip[1], self.COLOR_RED)
        self._draw_clipped_line(canvas, clip[0], clip[2], self.COLOR_GREEN)
        self._draw_clipped_line(canvas, clip[0], clip[3], self.COLOR_BLUE)

    def draw_polyline(self, canvas: np.ndarray, mvp: np.ndarray, points: np.ndarray, color,
                      closed: bool = False) -> None:
        clip = to_clip(points, mvp)
        n = len(clip)
        last = n if closed else n - 1
        for i in range(last):
            self._draw_clipped_line(canvas, clip[i], clip[(i + 1) % n], color)

    def _draw_clipped_line(self, canvas: np.ndarray, c0: np.ndarray, c1: np.ndarray, color) -> None:
        seg = clip_segment(c0, c1)
        if seg is None:
            return
        h, w = canvas.shape[:2]
        px = clip_to_pixels(np.vstack(seg), w, h)
        if not np.all(np.isfinite(px)):
            return
        # Keep far-off endpoints inside cv2's coordinate range.
        px = np.clip(px, -10 * max(w, h), 10 * max(w, h))
        p0 = (int(round(px[0, 0])), int(round(px[0, 1])))
        p1 = (int(round(px[1, 0])), int(round(px[1, 1])))
        cv2.line(canvas, p0, p1, color, 1, cv2.LINE_AA)

    # --- webcam inset ------------------------------------------------------------

    def draw_detection(self, image: np.ndarray, rect: DetectionRect) -> None:
        x, y, w, h = rect.as_int_tuple()
        left, right, center = rect.left_eye, rect.right_eye, rect.eyes_center

        cv2.rectangle(image, (x, y), (x + w, y + h), self.COLOR_WHITE, 1)
        eyes_y = int(left.y)
        cv2.line(image, (x, eyes_y), (x + w, eyes_y), self.COLOR_BLACK, 1)
        cv2.line(image, (int(center.x), y), (int(center.x), y + h), self.COLOR_BLACK, 1)

        radius = max(1, int(0.06 * rect.width))
        cv2.circle(image, left.as_int_tuple(), radius, self.COLOR_WHITE, 1)
        cv2.circle(image, right.as_int_tuple(), radius, self.COLOR_WHITE, 1)
        cv2.line(image, left.as_int_tuple(), right.as_int_tuple(), self.COLOR_RED, 1)
        cv2.circle(image, center.as_int_tuple(), 2, self.COLOR_RED, 3)

    def draw_camera_inset(self, canvas: np.ndarray, state: AppState) -> None:
        frame = state.camera_frame.copy()
        if state.show_detection and state.detection is not None:
            self.draw_detection(frame, state.detection)

        ch, cw = canvas.shape[:2]
        fh, fw = frame.shape[:2]
        iw = max(1, min(cw, int(fw * state.camera_ratio)))
        ih = max(1, min(ch, int(fh * state.camera_ratio)))
        inset = cv2.resize(frame, (iw, ih), interpolation=cv2.INTER_CUBIC)
        if inset.ndim == 2:
            inset = cv2.cvtColor(inset, cv2.COLOR_GRAY2BGR)
        canvas[:ih, :iw] = inset

        if state.show_detection:
            text_y = min(ch - 5, ih + 20)
            cv2.putText(canvas, state.eye.status_text(), (10, text_y), self.FONT, 0.5, self.COLOR_WHITE, 1)

    def draw_fps(self, canvas: np.ndarray, fps: float) -> None:
        w = canvas.shape[1]
        fps_text = f"FPS: {fps:.1f}"
        (text_width, _), _ = cv2.getTextSize(fps_text, self.FONT, 0.6, 1)
        cv2.putText(canvas, fps_text, (w - text_width - 10, 25), self.FONT, 0.6, self.COLOR_GREEN, 1)
