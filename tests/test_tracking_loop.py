import logging
import sys
from pathlib import Path

import numpy as np
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from screenreality.config.settings import AppConfig  # noqa: E402
from screenreality.core.models import DetectionRect  # noqa: E402
from screenreality.core import tracking_loop  # noqa: E402
from screenreality.core.tracking_loop import MAX_MISSED_READS, MISSED_READS_WARN, TrackingLoop  # noqa: E402
from screenreality.projection.off_axis import MODE_LOOK_AT, MODE_OFF_AXIS  # noqa: E402


class FakeCamera:
    width = 640
    height = 480

    def read(self):
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)


class DeadCamera(FakeCamera):
    def read(self):
        return None


class FixedDetector:
    def detect(self, frame):
        return DetectionRect(220, 140, 200, 200)


def _loop():
    return TrackingLoop(FakeCamera(), AppConfig(), face_detector=FixedDetector())


def test_window_and_screen_follow_camera_scale():
    loop = _loop()
    assert (loop.window_w, loop.window_h) == (960, 720)
    assert loop.projector.screen.pb == (24.0, -18.0, 0.0)
    assert loop.canvas.shape == (720, 960, 3)


@pytest.mark.parametrize("key,attr", [("c", "show_camera"), ("d", "show_detection"), ("m", "polygon_mode")])
def test_toggle_keys(key, attr):
    loop = _loop()
    before = getattr(loop.state, attr)
    loop.handle_key(ord(key))
    assert getattr(loop.state, attr) is (not before)
    loop.handle_key(ord(key.upper()))
    assert getattr(loop.state, attr) is before


def test_projection_mode_key():
    loop = _loop()
    loop.handle_key(ord("p"))
    assert loop.projector.mode == MODE_LOOK_AT
    loop.handle_key(ord("P"))
    assert loop.projector.mode == MODE_OFF_AXIS


def test_camera_ratio_keys_are_bounded():
    loop = _loop()
    loop.handle_key(ord("+"))
    assert loop.state.camera_ratio == pytest.approx(0.4)
    for _ in range(30):
        loop.handle_key(ord("-"))
    assert loop.state.camera_ratio == pytest.approx(0.2)


def test_rotation_keys():
    loop = _loop()
    loop.handle_key(ord("l"))
    loop.handle_key(ord("k"))
    assert (loop.state.angle_rot_x, loop.state.angle_rot_y) == (1.0, 1.0)


@pytest.mark.parametrize("key", [ord("q"), ord("Q"), 27])
def test_quit_keys(key):
    loop = _loop()
    loop.handle_key(key)
    assert loop.state.running is False


def test_no_key_is_ignored():
    loop = _loop()
    loop.handle_key(255)
    assert loop.state.running


def test_pipeline_updates_loop_state():
    loop = _loop()
    loop.pipeline.process(loop.camera.read(), loop.state)
    assert loop.state.eye.z == pytest.approx(40.625)
    assert loop.state.eye.x == pytest.approx(0.0)
    assert loop.state.projection is not None


def test_failed_reads_warn_once_then_stop(caplog):
    loop = TrackingLoop(DeadCamera(), AppConfig(), face_detector=FixedDetector())
    with caplog.at_level(logging.WARNING, logger=tracking_loop.__name__):
        for _ in range(MAX_MISSED_READS - 1):
            assert loop.process_frame() is None
        assert loop.state.running
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1

        loop.process_frame()
    assert loop.state.running is False
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_good_frame_resets_missed_reads(monkeypatch):
    monkeypatch.setattr(tracking_loop.cv2, "imshow", lambda *args: None)
    loop = _loop()
    loop.missed_reads = MISSED_READS_WARN + 5
    assert loop.process_frame() is not None
    assert loop.missed_reads == 0
    assert loop.state.running
