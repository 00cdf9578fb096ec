import logging

import cv2
import numpy as np

from screenreality.config.settings import AppConfig
from screenreality.core.app_state import AppState
from screenreality.core.frame_pipeline import FramePipeline
from screenreality.projection.off_axis import MODE_LOOK_AT, OffAxisProjector
from screenreality.projection.screen import ScreenRect
from screenreality.render.scene_renderer import SceneRenderer
from screenreality.tracking.face_detector import FaceDetector
from screenreality.tracking.head_pose import HeadPoseEstimator
from screenreality.utils.ui.metrics_tracker import FpsTracker

log = logging.getLogger(__name__)

WINDOW_NAME = "ScreenReality - Vision 3D"
ROTATION_STEP_DEG = 1.0
CAMERA_RATIO_STEP = 0.1
MISSED_READS_WARN = 30
MAX_MISSED_READS = 300


class TrackingLoop:
    """
    Frame-synchronous driver: capture -> detect -> pose -> projection -> render.
    One frame is fully processed and shown before the next is read.
    """

    def __init__(self, camera, config: AppConfig, face_detector=None):
        self.camera = camera
        self.config = config

        self.window_w = max(1, int(camera.width * config.display.window_scale))
        self.window_h = max(1, int(camera.height * config.display.window_scale))
        screen = ScreenRect.from_window(self.window_w, self.window_h, config.projection.pixels_per_cm)

        tracking = config.tracking
        projection = config.projection
        self.head_pose_estimator = HeadPoseEstimator(
            tracking.intrinsics,
            smoothing_alpha=tracking.smoothing_alpha,
            min_depth=tracking.min_depth_cm,
            max_depth=tracking.max_depth_cm,
            min_face_width=tracking.min_face_width_px,
            initial_position=tracking.initial_position,
        )
        self.projector = OffAxisProjector(
            screen,
            near=projection.near,
            far=projection.far,
            far_strategy=projection.far_strategy,
            mode=projection.mode,
            look_at_fovy_deg=projection.look_at_fovy_deg,
            look_at_near=projection.look_at_near,
            look_at_far=projection.look_at_far,
        )
        detector = face_detector or FaceDetector(
            config.detector.cascade_path,
            min_face_size=config.detector.min_face_size,
            scale_factor=config.detector.scale_factor,
            min_neighbors=config.detector.min_neighbors,
        )
        self.pipeline = FramePipeline(
            face_detector=detector,
            head_pose_estimator=self.head_pose_estimator,
            projector=self.projector,
        )
        self.renderer = SceneRenderer(config.cubes, screen)
        self.fps_tracker = FpsTracker()

        self.state = AppState.from_config(config.display, self.head_pose_estimator.position)
        self.canvas = np.zeros((self.window_h, self.window_w, 3), dtype=np.uint8)
        self.missed_reads = 0

    def run(self):
        log.info("Starting tracking loop...")
        log.info("Shortcuts: Q=Quit | C=Cam | D=Detection | M=Wireframe | P=Projection | F=Fullscreen "
                 "| +/- = Cam size | I/K/J/L = Rotate scene")
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(WINDOW_NAME, self.window_w, self.window_h)
        self._apply_fullscreen()

        try:
            while self.state.running:
                self.process_frame()
                self.handle_key(cv2.waitKey(1) & 0xFF)
        finally:
            cv2.destroyWindow(WINDOW_NAME)

    def process_frame(self):
        frame = self.camera.read()
        if frame is None:
            self._on_missed_read()
            return None
        if self.missed_reads:
            log.info(f"Camera recovered after {self.missed_reads} failed reads")
            self.missed_reads = 0

        result = self.pipeline.process(frame, self.state)
        fps = self.fps_tracker.update()
        self.renderer.render(
            self.canvas, self.state, fps,
            look_at_mode=self.projector.mode == MODE_LOOK_AT,
        )
        cv2.imshow(WINDOW_NAME, self.canvas)
        return result

    def _on_missed_read(self) -> None:
        self.missed_reads += 1
        if self.missed_reads == MISSED_READS_WARN:
            log.warning(f"No frame from camera for {self.missed_reads} consecutive reads")
        elif self.missed_reads >= MAX_MISSED_READS:
            log.error(f"Camera returned no frame {self.missed_reads} times in a row, stopping")
            self.state.running = False

    def handle_key(self, key: int) -> None:
        if key == 255:
            return
        ch = chr(key)
        lower = ch.lower()
        if key == 27:
            # Esc leaves fullscreen first, then quits.
            if self.state.fullscreen:
                self.state.fullscreen = False
                self._apply_fullscreen()
            else:
                self.state.running = False
        elif lower == "q":
            self.state.running = False
        elif lower == "f":
            self.state.fullscreen = not self.state.fullscreen
            self._apply_fullscreen()
        elif lower == "c":
            self.state.show_camera = not self.state.show_camera
        elif lower == "d":
            self.state.show_detection = not self.state.show_detection
        elif lower == "m":
            self.state.polygon_mode = not self.state.polygon_mode
        elif lower == "p":
            self.projector.toggle_mode()
        elif ch in ("+", "="):
            self.state.adjust_camera_ratio(CAMERA_RATIO_STEP)
        elif ch in ("-", "_"):
            self.state.adjust_camera_ratio(-CAMERA_RATIO_STEP)
        elif lower == "i":
            self.state.rotate_scene(dx=-ROTATION_STEP_DEG)
        elif lower == "k":
            self.state.rotate_scene(dx=ROTATION_STEP_DEG)
        elif lower == "j":
            self.state.rotate_scene(dy=-ROTATION_STEP_DEG)
        elif lower == "l":
            self.state.rotate_scene(dy=ROTATION_STEP_DEG)

    def _apply_fullscreen(self):
        try:
            flag = cv2.WINDOW_FULLSCREEN if self.state.fullscreen else cv2.WINDOW_NORMAL
            cv2.setWindowProperty(WINDOW_NAME, cv2.WND_PROP_FULLSCREEN, flag)
        except cv2.error as e:
            log.warning(f"Fullscreen toggle unavailable: {e}")
