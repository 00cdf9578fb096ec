import math
import sys
from pathlib import Path

import numpy as np
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from screenreality.core.errors import ConfigurationError  # noqa: E402
from screenreality.projection import matrices  # noqa: E402
from screenreality.projection.screen import ScreenRect  # noqa: E402


def test_symmetric_frustum_matches_perspective():
    near, far = 1.0, 100.0
    # tan(45 deg) * near = 1 -> top = 1, aspect 2 -> right = 2
    f = matrices.frustum(-2.0, 2.0, -1.0, 1.0, near, far)
    p = matrices.perspective(90.0, 2.0, near, far)
    assert np.allclose(f, p)


def test_frustum_maps_near_plane_to_minus_one():
    m = matrices.frustum(-1.0, 1.0, -1.0, 1.0, 0.5, 10.0)
    clip = m @ np.array([0.0, 0.0, -0.5, 1.0])
    assert clip[2] / clip[3] == pytest.approx(-1.0)
    clip = m @ np.array([0.0, 0.0, -10.0, 1.0])
    assert clip[2] / clip[3] == pytest.approx(1.0)


def test_frustum_rejects_zero_extent():
    with pytest.raises(ValueError):
        matrices.frustum(1.0, 1.0, -1.0, 1.0, 0.5, 10.0)


def test_look_at_down_negative_z_is_a_translation():
    m = matrices.look_at((0.0, 0.0, 5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert np.allclose(m, matrices.translation(0.0, 0.0, -5.0))


def test_look_at_rejects_parallel_up():
    with pytest.raises(ValueError):
        matrices.look_at((0.0, 5.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))


def test_axis_rotation_quarter_turn_about_z():
    m = matrices.axis_rotation(90.0, (0.0, 0.0, 1.0))
    assert np.allclose(m @ [1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 1.0])


def test_axis_rotation_is_orthonormal():
    r = matrices.axis_rotation(37.0, (1.0, 2.0, 3.0))[:3, :3]
    assert np.allclose(r @ r.T, np.eye(3))
    assert np.linalg.det(r) == pytest.approx(1.0)


def test_screen_from_window_corners():
    s = ScreenRect.from_window(1280, 800, 40.0)
    assert s.pa == (-32.0, -20.0, 0.0)
    assert s.pb == (32.0, -20.0, 0.0)
    assert s.pc == (-32.0, 20.0, 0.0)
    assert s.pd == pytest.approx((32.0, 20.0, 0.0))


def test_screen_basis_is_orthonormal():
    s = ScreenRect((0.0, 0.0, 0.0), (3.0, 0.0, 4.0), (0.0, 2.0, 0.0))
    vr, vu, vn = s.basis()
    for v in (vr, vu, vn):
        assert np.linalg.norm(v) == pytest.approx(1.0)
    assert np.dot(vr, vu) == pytest.approx(0.0)
    assert np.allclose(vn, np.cross(vr, vu))
    assert not math.isclose(vn[2], 1.0)


def test_collinear_screen_is_refused():
    with pytest.raises(ConfigurationError):
        ScreenRect((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0))


@pytest.mark.parametrize("args", [(0, 100, 40.0), (100, 100, 0.0), (100, -5, 40.0)])
def test_invalid_window_is_refused(args):
    with pytest.raises(ConfigurationError):
        ScreenRect.from_window(*args)
