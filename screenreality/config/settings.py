from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from screenreality.core.models import CameraIntrinsics, EyePosition3D
from screenreality.projection.off_axis import (
    FAR_FIXED,
    FAR_STRATEGIES,
    MODE_OFF_AXIS,
    PROJECTION_MODES,
)
from screenreality.utils.config_utils import (
    as_bool,
    as_choice,
    as_float,
    as_int,
    as_point2,
    as_vec3,
    get_section,
)
from screenreality.utils.load_config import load_yaml_document

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "screenreality.yaml")
CAMERA_RATIO_MIN = 0.2
CAMERA_RATIO_MAX = 1.8


@dataclass(frozen=True)
class CameraConfig:
    index: int = 0
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class DetectorConfig:
    cascade_path: Optional[str] = None  # None: OpenCV's bundled frontal-face cascade
    min_face_size: int = 80  # px; smaller lets the viewer step further back
    scale_factor: float = 1.1
    min_neighbors: int = 2


@dataclass(frozen=True)
class TrackingConfig:
    intrinsics: CameraIntrinsics = field(default_factory=CameraIntrinsics)
    smoothing_alpha: float = 0.5  # 0 disables smoothing
    min_depth_cm: float = 1.0
    max_depth_cm: float = 1000.0
    min_face_width_px: float = 80.0  # narrower rects are rejected; follows detector.min_face_size
    initial_position: EyePosition3D = EyePosition3D(0.0, 0.0, 50.0)


@dataclass(frozen=True)
class ProjectionConfig:
    mode: str = MODE_OFF_AXIS
    near: float = 0.5
    far: float = 200.0
    far_strategy: str = FAR_FIXED
    pixels_per_cm: float = 40.0
    look_at_fovy_deg: float = 60.0
    look_at_near: float = 1.0
    look_at_far: float = 250.0


@dataclass(frozen=True)
class DisplayConfig:
    window_scale: float = 1.5  # window size relative to the camera image
    fullscreen: bool = False
    show_camera: bool = True
    show_detection: bool = True
    polygon_mode: bool = False
    camera_ratio: float = 0.3


@dataclass(frozen=True)
class CubeSpec:
    center: Tuple[float, float, float]
    half_size: float
    angle_deg: float = 0.0
    color: Tuple[float, float, float] = (255.0, 255.0, 255.0)  # BGR


DEFAULT_CUBES: Tuple[CubeSpec, ...] = (
    CubeSpec((0.0, 0.0, 0.0), 5.0, 30.0, (255.0, 255.0, 255.0)),
    CubeSpec((-20.0, 0.0, -40.0), 3.0, 70.0, (255.0, 0.0, 255.0)),
    CubeSpec((5.0, 5.0, 10.0), 3.0, 10.0, (255.0, 255.0, 0.0)),
)


@dataclass(frozen=True)
class AppConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    cubes: Tuple[CubeSpec, ...] = DEFAULT_CUBES


def resolve_config_path(cli_path: Optional[str] = None) -> str:
    return cli_path or os.getenv("SR_CONFIG_PATH") or DEFAULT_CONFIG_PATH


def _optional_int(x: Any) -> Optional[int]:
    if x is None:
        return None
    v = as_int(x, 0)
    return v if v > 0 else None


def _checked_choice(section: str, value: Any, choices, default: str) -> str:
    choice = as_choice(value, choices, default)
    if value is not None and choice != str(value).strip().lower():
        log.warning(f"Unknown {section} '{value}', using '{default}'")
    return choice


def _parse_cubes(raw: Any) -> Tuple[CubeSpec, ...]:
    if not isinstance(raw, list):
        return DEFAULT_CUBES
    cubes: List[CubeSpec] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        half = as_float(item.get("half_size"), 0.0)
        if half <= 0:
            log.warning(f"Skipping cube with invalid half_size: {item}")
            continue
        cubes.append(CubeSpec(
            center=as_vec3(item.get("center"), (0.0, 0.0, 0.0)),
            half_size=half,
            angle_deg=as_float(item.get("angle_deg"), 0.0),
            color=as_vec3(item.get("color"), (255.0, 255.0, 255.0)),
        ))
    return tuple(cubes)


def config_from_dict(root: Dict[str, Any]) -> AppConfig:
    camera = get_section(root, "camera")
    detector = get_section(root, "detector")
    tracking = get_section(root, "tracking")
    intrinsics = get_section(root, "tracking.intrinsics")
    projection = get_section(root, "projection")
    look_at = get_section(root, "projection.look_at")
    display = get_section(root, "display")
    scene = get_section(root, "scene")

    alpha = as_float(tracking.get("smoothing_alpha"), 0.5)
    if not 0.0 <= alpha < 1.0:
        log.warning(f"smoothing_alpha {alpha} outside [0, 1), using 0.5")
        alpha = 0.5

    near = as_float(projection.get("near"), 0.5)
    far = as_float(projection.get("far"), 200.0)
    if not 0.0 < near < far:
        log.warning(f"Invalid clip planes near={near} far={far}, using 0.5/200")
        near, far = 0.5, 200.0

    ratio = as_float(display.get("camera_ratio"), 0.3)
    ratio = min(CAMERA_RATIO_MAX, max(CAMERA_RATIO_MIN, ratio))

    initial = as_vec3(tracking.get("initial_position"), (0.0, 0.0, 50.0))

    min_face_size = as_int(detector.get("min_face_size"), 80)
    min_depth = as_float(tracking.get("min_depth_cm"), 1.0)
    max_depth = as_float(tracking.get("max_depth_cm"), 1000.0)
    if not 0.0 < min_depth < max_depth:
        log.warning(f"Invalid depth range [{min_depth}, {max_depth}], using [1, 1000]")
        min_depth, max_depth = 1.0, 1000.0

    return AppConfig(
        camera=CameraConfig(
            index=as_int(camera.get("index"), 0),
            width=_optional_int(camera.get("width")),
            height=_optional_int(camera.get("height")),
        ),
        detector=DetectorConfig(
            cascade_path=detector.get("cascade_path") or None,
            min_face_size=min_face_size,
            scale_factor=as_float(detector.get("scale_factor"), 1.1),
            min_neighbors=as_int(detector.get("min_neighbors"), 2),
        ),
        tracking=TrackingConfig(
            intrinsics=CameraIntrinsics(
                focal_length=as_float(intrinsics.get("focal_length"), 500.0),
                eyes_gap=as_float(intrinsics.get("eyes_gap_cm"), 6.5),
                principal_point=as_point2(intrinsics.get("principal_point")),
            ),
            smoothing_alpha=alpha,
            min_depth_cm=min_depth,
            max_depth_cm=max_depth,
            min_face_width_px=as_float(tracking.get("min_face_width_px"), min_face_size),
            initial_position=EyePosition3D(*initial),
        ),
        projection=ProjectionConfig(
            mode=_checked_choice("projection mode", projection.get("mode"), PROJECTION_MODES, MODE_OFF_AXIS),
            near=near,
            far=far,
            far_strategy=_checked_choice("far strategy", projection.get("far_strategy"), FAR_STRATEGIES, FAR_FIXED),
            pixels_per_cm=as_float(projection.get("pixels_per_cm"), 40.0),
            look_at_fovy_deg=as_float(look_at.get("fovy_deg"), 60.0),
            look_at_near=as_float(look_at.get("near"), 1.0),
            look_at_far=as_float(look_at.get("far"), 250.0),
        ),
        display=DisplayConfig(
            window_scale=as_float(display.get("window_scale"), 1.5),
            fullscreen=as_bool(display.get("fullscreen"), False),
            show_camera=as_bool(display.get("show_camera"), True),
            show_detection=as_bool(display.get("show_detection"), True),
            polygon_mode=as_bool(display.get("polygon_mode"), False),
            camera_ratio=ratio,
        ),
        cubes=_parse_cubes(scene.get("cubes")),
    )


def load_app_config(path: Optional[str] = None) -> AppConfig:
    path = resolve_config_path(path)
    root = load_yaml_document(path)
    if root:
        log.info(f"Loaded configuration from {path}")
    return config_from_dict(root)
