import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from screenreality.core.errors import DegenerateGeometry  # noqa: E402
from screenreality.core.models import CameraIntrinsics, DetectionRect, EyePosition3D  # noqa: E402
from screenreality.tracking.head_pose import (  # noqa: E402
    HeadPoseEstimator,
    compute_eye_position,
    estimate,
)

IMG_W, IMG_H = 640, 480
INTRINSICS = CameraIntrinsics(focal_length=500.0, eyes_gap=6.5)
RECT = DetectionRect(100, 80, 200, 200)


def test_eye_points_use_fixed_fractions():
    assert RECT.left_eye.x == pytest.approx(160)
    assert RECT.left_eye.y == pytest.approx(154)
    assert RECT.right_eye.x == pytest.approx(240)
    assert RECT.right_eye.y == pytest.approx(154)
    assert RECT.eyes_center.x == pytest.approx(200)
    assert RECT.eyes_center.y == pytest.approx(154)


def test_reference_face_gives_expected_position():
    pos = compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H)
    assert pos.z == pytest.approx(40.625)
    assert pos.x == pytest.approx(-9.75)
    # eyes centre row 154 is above the image centre (240): positive y
    assert pos.y == pytest.approx(0.172 * 40.625)


@pytest.mark.parametrize("rect", [
    DetectionRect(0, 0, 40, 40),
    DetectionRect(500, 400, 80, 80),
    DetectionRect(-50, -50, 600, 600),
    DetectionRect(320, 240, 150, 120),
])
def test_depth_is_positive_for_valid_rects(rect):
    assert compute_eye_position(rect, INTRINSICS, IMG_W, IMG_H).z > 0


def test_bigger_face_is_closer():
    near = compute_eye_position(DetectionRect(200, 100, 300, 300), INTRINSICS, IMG_W, IMG_H)
    far = compute_eye_position(DetectionRect(270, 170, 100, 100), INTRINSICS, IMG_W, IMG_H)
    assert near.z < far.z


@pytest.mark.parametrize("rect", [
    DetectionRect(100, 80, 0, 200),
    DetectionRect(100, 80, -20, 200),
    DetectionRect(100, 80, 200, 0),
])
def test_degenerate_rect_is_rejected(rect):
    with pytest.raises(DegenerateGeometry):
        compute_eye_position(rect, INTRINSICS, IMG_W, IMG_H)


def test_depth_below_minimum_is_rejected():
    with pytest.raises(DegenerateGeometry):
        compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H, min_depth=100.0)


def test_depth_beyond_maximum_is_rejected():
    with pytest.raises(DegenerateGeometry):
        compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H, max_depth=30.0)


def test_face_narrower_than_minimum_width_is_rejected():
    with pytest.raises(DegenerateGeometry):
        compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H, min_face_width=201.0)
    assert compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H, min_face_width=200.0).z > 0


def test_principal_point_overrides_image_center():
    centered = CameraIntrinsics(focal_length=500.0, eyes_gap=6.5, principal_point=(200.0, 154.0))
    pos = compute_eye_position(RECT, centered, IMG_W, IMG_H)
    assert pos.x == pytest.approx(0.0)
    assert pos.y == pytest.approx(0.0)
    assert pos.z == pytest.approx(40.625)


def test_smoothing_converges_to_measurement():
    target = compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H)
    pos = EyePosition3D(0.0, 0.0, 50.0)
    for _ in range(20):
        pos = estimate(RECT, INTRINSICS, pos, IMG_W, IMG_H, alpha=0.5)
    assert pos.x == pytest.approx(target.x, abs=1e-3)
    assert pos.y == pytest.approx(target.y, abs=1e-3)
    assert pos.z == pytest.approx(target.z, abs=1e-3)


def test_single_smoothing_step_is_halfway():
    target = compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H)
    prev = EyePosition3D(0.0, 0.0, 50.0)
    pos = estimate(RECT, INTRINSICS, prev, IMG_W, IMG_H, alpha=0.5)
    assert pos.z == pytest.approx((50.0 + target.z) / 2)
    assert pos.x == pytest.approx(target.x / 2)


def test_zero_alpha_disables_smoothing():
    target = compute_eye_position(RECT, INTRINSICS, IMG_W, IMG_H)
    pos = estimate(RECT, INTRINSICS, EyePosition3D(30.0, 30.0, 90.0), IMG_W, IMG_H, alpha=0.0)
    assert pos == target


def test_estimator_seeds_on_first_detection():
    est = HeadPoseEstimator(INTRINSICS, smoothing_alpha=0.5, initial_position=EyePosition3D(0, 0, 80))
    assert est.update(RECT, IMG_W, IMG_H)
    assert est.position.z == pytest.approx(40.625)


def test_estimator_blends_after_first_detection():
    est = HeadPoseEstimator(INTRINSICS, smoothing_alpha=0.5)
    est.update(RECT, IMG_W, IMG_H)
    first = est.position
    other = DetectionRect(270, 170, 100, 100)
    est.update(other, IMG_W, IMG_H)
    measured = compute_eye_position(other, INTRINSICS, IMG_W, IMG_H)
    assert est.position.z == pytest.approx(0.5 * first.z + 0.5 * measured.z)


def test_no_detection_freezes_pose():
    est = HeadPoseEstimator(INTRINSICS)
    est.update(RECT, IMG_W, IMG_H)
    before = est.position
    assert est.update(None, IMG_W, IMG_H) is False
    assert est.position == before


def test_degenerate_detection_keeps_previous_pose():
    est = HeadPoseEstimator(INTRINSICS)
    est.update(RECT, IMG_W, IMG_H)
    before = est.position
    assert est.update(DetectionRect(10, 10, 0, 0), IMG_W, IMG_H) is False
    assert est.position == before
    assert est.rejected_frames == 1


def test_sliver_detection_keeps_previous_pose():
    est = HeadPoseEstimator(INTRINSICS, min_face_width=80.0)
    est.update(RECT, IMG_W, IMG_H)
    before = est.position
    assert est.update(DetectionRect(100, 80, 1e-4, 200), IMG_W, IMG_H) is False
    assert est.position == before
    assert isinstance(est.last_error, DegenerateGeometry)


def test_implausibly_far_detection_keeps_previous_pose():
    # 0.01 px wide passes the width guard but puts the eyes ~8 km away
    est = HeadPoseEstimator(INTRINSICS, min_face_width=0.0, max_depth=1000.0)
    est.update(RECT, IMG_W, IMG_H)
    before = est.position
    assert est.update(DetectionRect(100, 80, 0.01, 200), IMG_W, IMG_H) is False
    assert est.position == before
    assert est.rejected_frames == 1


def test_reset_returns_to_initial_position():
    start = EyePosition3D(1.0, 2.0, 60.0)
    est = HeadPoseEstimator(INTRINSICS, initial_position=start)
    est.update(RECT, IMG_W, IMG_H)
    est.reset()
    assert est.position == start
    assert est.first_frame


@pytest.mark.parametrize("alpha", [-0.1, 1.0, 1.5])
def test_invalid_alpha_is_refused(alpha):
    with pytest.raises(ValueError):
        HeadPoseEstimator(INTRINSICS, smoothing_alpha=alpha)


def test_status_text_truncates_to_integers():
    assert EyePosition3D(-9.75, 6.98, 40.625).status_text() == "(x,y,z) = (-9,6,40)"
