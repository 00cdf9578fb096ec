import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from screenreality.config.settings import AppConfig, load_app_config
from screenreality.core.errors import ConfigurationError
from screenreality.projection.off_axis import FAR_STRATEGIES, PROJECTION_MODES

log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Head-tracked off-axis 3D view through the screen.")
    parser.add_argument("--config", default=None, help="Path to YAML settings (default: $SR_CONFIG_PATH or config/screenreality.yaml).")
    parser.add_argument("--camera", type=int, default=None, help="Capture device index.")
    parser.add_argument("--cascade", default=None, help="Haar cascade XML for face detection.")
    parser.add_argument("--mode", choices=PROJECTION_MODES, default=None, help="Projection mode.")
    parser.add_argument("--far-strategy", choices=FAR_STRATEGIES, default=None, help="Far clip plane strategy.")
    parser.add_argument("--no-smoothing", action="store_true", help="Use raw per-frame eye positions.")
    parser.add_argument("--fullscreen", action="store_true", help="Start fullscreen.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging (per-frame pose).")
    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.camera is not None:
        config = dataclasses.replace(config, camera=dataclasses.replace(config.camera, index=args.camera))
    if args.cascade:
        config = dataclasses.replace(config, detector=dataclasses.replace(config.detector, cascade_path=args.cascade))
    if args.mode:
        config = dataclasses.replace(config, projection=dataclasses.replace(config.projection, mode=args.mode))
    if args.far_strategy:
        config = dataclasses.replace(
            config, projection=dataclasses.replace(config.projection, far_strategy=args.far_strategy)
        )
    if args.no_smoothing:
        config = dataclasses.replace(config, tracking=dataclasses.replace(config.tracking, smoothing_alpha=0.0))
    if args.fullscreen:
        config = dataclasses.replace(config, display=dataclasses.replace(config.display, fullscreen=True))
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    config = apply_overrides(load_app_config(args.config), args)

    # Imported here so --help works without a display or camera stack.
    from screenreality.core.tracking_loop import TrackingLoop
    from screenreality.infrastructure.hardware.camera import Camera

    camera = None
    try:
        resolution = None
        if config.camera.width and config.camera.height:
            resolution = (config.camera.width, config.camera.height)
        camera = Camera(config.camera.index, resolution)
        TrackingLoop(camera, config).run()
    except ConfigurationError as e:
        log.critical(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted.")
    finally:
        if camera is not None:
            camera.close()
    return 0
