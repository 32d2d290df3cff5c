"""
Frame Motion Monitor.

Reads frames from a video file or camera, runs an object detector on each
frame and classifies every box as stable, moving or new relative to the
previous frame. Classified overlays go to rendering sinks: the log, an
optional recording and an optional live web preview.

Usage:
    python src/main.py --config config/config.yaml --source clip.mp4 --web

Arguments:
    --config: Path to configuration file
    --source: Override source.path (file path or camera index)
    --record: Record annotated video to output/video
    --web: Serve the live preview (overrides web.enabled)
    --max-frames: Stop after this many frames

Exit codes:
    0: source completed (or run cancelled)
    1: configuration error, detector unavailable or mid-stream failure
    2: the source could not be opened
"""

import os
import sys
import argparse
import logging
import threading
import time
import yaml
from typing import Dict, Any, List, Optional, Tuple

from models.config import Config, WebConfig
from models.errors import DetectorUnavailableError
from models.status import RunReport, RunStatus
from inference.factory import BACKENDS, build_detector
from observation import create_source_from_config
from pipeline.engine import create_engine_from_config
from pipeline.stages.annotate import AnnotateStage, LoggingSink, VideoRecorder
from ops.logging import setup_logging
from web.state import state as web_state

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_SOURCE_ERROR = 2

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)

    Raises:
        ValueError / OSError / yaml.YAMLError on unreadable files.
    """
    config_dir = os.path.dirname(config_path)
    base_path = os.path.join(config_dir, "default.yaml")
    local_overrides_path = os.path.join(config_dir, "config.yaml")

    merged: Dict[str, Any] = {}
    if os.path.exists(base_path):
        merged = _read_yaml(base_path)
    if os.path.exists(local_overrides_path):
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

    # Explicit path last, unless it is one of the files already applied
    explicit = os.path.abspath(config_path)
    if os.path.exists(config_path) and explicit not in (
        os.path.abspath(base_path),
        os.path.abspath(local_overrides_path),
    ):
        merged = _deep_merge(merged, _read_yaml(config_path))

    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['source', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Source
    source = config.get('source') or {}
    if 'path' not in source:
        return False, "Missing source.path"
    path = source['path']
    if isinstance(path, bool) or not isinstance(path, (int, str)):
        return False, "source.path must be a file path or a camera index"
    if isinstance(path, int) and path < 0:
        return False, "source.path camera index must be non-negative"
    if isinstance(path, str) and not path:
        return False, "source.path must not be empty"
    if 'max_consecutive_failures' in source:
        mcf = source['max_consecutive_failures']
        if not isinstance(mcf, int) or isinstance(mcf, bool) or mcf <= 0:
            return False, "source.max_consecutive_failures must be a positive integer"
    if source.get('rotate', 0) not in (0, 90, 180, 270):
        return False, "source.rotate must be one of: 0, 90, 180, 270"

    # Detection
    detection = config.get('detection') or {}
    backend = detection.get('backend', 'yolo')
    if backend not in BACKENDS:
        return False, f"detection.backend must be one of: {', '.join(BACKENDS)}"
    if backend == 'yolo':
        yolo_cfg = detection.get('yolo') or {}
        if not isinstance(yolo_cfg.get('model'), str) or not yolo_cfg.get('model'):
            return False, "detection.yolo.model is required when detection.backend is 'yolo'"
        for key in ('conf_threshold', 'iou_threshold'):
            if key in yolo_cfg:
                value = yolo_cfg[key]
                if not _is_number(value) or not (0 <= value <= 1):
                    return False, f"detection.yolo.{key} must be a number between 0 and 1"
    else:
        bgsub_cfg = detection.get('bgsub') or {}
        if 'min_contour_area' in bgsub_cfg:
            mca = bgsub_cfg['min_contour_area']
            if not isinstance(mca, int) or isinstance(mca, bool) or mca <= 0:
                return False, "detection.bgsub.min_contour_area must be a positive integer"

    # Tracking (optional)
    tracking = config.get('tracking') or {}
    if 'movement_threshold_px' in tracking:
        threshold = tracking['movement_threshold_px']
        if not _is_number(threshold) or threshold < 0:
            return False, "tracking.movement_threshold_px must be a non-negative number"
    if 'swap_axes' in tracking and not isinstance(tracking['swap_axes'], bool):
        return False, "tracking.swap_axes must be a boolean"

    # Display (optional)
    display = config.get('display') or {}
    width, height = display.get('width'), display.get('height')
    if (width is None) != (height is None):
        return False, "display.width and display.height must be set together"
    for key, value in (('width', width), ('height', height)):
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
            return False, f"display.{key} must be a positive integer"

    # Summary (optional)
    summary = config.get('summary') or {}
    if 'min_confidence' in summary:
        mc = summary['min_confidence']
        if not _is_number(mc) or not (0 <= mc <= 1):
            return False, "summary.min_confidence must be between 0 and 1"

    # Web (optional)
    web = config.get('web') or {}
    if 'port' in web:
        port = web['port']
        if not isinstance(port, int) or isinstance(port, bool) or not (0 < port < 65536):
            return False, "web.port must be an integer between 1 and 65535"

    # Log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"
    if not isinstance(config['log_path'], str):
        return False, "log_path must be a string"

    return True, None


def apply_cli_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply --source and --web on top of the loaded config."""
    if args.source is not None:
        source = config.setdefault('source', {})
        # Digits mean a camera index
        source['path'] = int(args.source) if args.source.isdigit() else args.source
    if args.web:
        config.setdefault('web', {})['enabled'] = True
    return config


def exit_code_for(report: Optional[RunReport]) -> int:
    """Map a finished run to the process exit status."""
    if report is None:
        return EXIT_FAILURE
    if report.status is RunStatus.SOURCE_ERROR:
        return EXIT_SOURCE_ERROR
    if report.status is RunStatus.FAILED:
        return EXIT_FAILURE
    return EXIT_OK


def start_web_server(web_cfg: WebConfig) -> threading.Thread:
    """Serve the preview app with uvicorn on a daemon thread."""
    import uvicorn
    from web.app import create_app

    host = web_cfg.host
    port = int(web_cfg.port)

    def run_web_app():
        uvicorn.run(
            create_app(),
            host=host,
            port=port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, name="web", daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on {host}:{port}")
    return web_thread


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Frame Motion Monitor')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--source', type=str, default=None,
                        help='Video file path or camera index (overrides source.path)')
    parser.add_argument('--record', action='store_true',
                        help='Record annotated video output')
    parser.add_argument('--web', action='store_true',
                        help='Serve the live preview (overrides web.enabled)')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        return EXIT_FAILURE
    config = apply_cli_overrides(config, args)

    # Validate configuration
    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return EXIT_FAILURE

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Frame Motion Monitor")

    # The detector is the only fatal collaborator
    try:
        detector = build_detector(config['detection'])
    except DetectorUnavailableError as e:
        logging.error(f"Detector unavailable: {e}")
        return EXIT_FAILURE

    source = create_source_from_config(config['source'], source_id="main-video")
    engine = create_engine_from_config(config, detector, source=source, max_frames=args.max_frames)
    engine.add_sink(LoggingSink())

    settings = Config.from_dict(config)
    web_cfg = settings.web
    annotate = AnnotateStage(swap_axes=settings.tracking.swap_axes)
    recorder = None
    if web_cfg.enabled:
        web_state.reset()
        web_state.update_system_stats({"start_time": time.time()})
        annotate.add_consumer(web_state.publish)
        start_web_server(web_cfg)
    if args.record:
        recorder = VideoRecorder(output_dir='output/video', fps=30.0)
        annotate.add_consumer(recorder.write)
    if web_cfg.enabled or recorder is not None:
        engine.add_callback(annotate)

    web_state.set_running(True)
    try:
        worker = engine.start()
        while worker.is_alive():
            engine.wait(timeout=0.5)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        engine.stop()
        engine.wait(timeout=5.0)
    finally:
        if recorder is not None:
            recorder.close()

    report = engine.report
    web_state.set_running(False, report)
    if report is not None:
        logging.info(f"Run report: {report.to_dict()}")
    logging.info("Frame Motion Monitor stopped")
    return exit_code_for(report)


if __name__ == "__main__":
    sys.exit(main())
