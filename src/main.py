"""
TruePath: spoken object, distance and direction announcements from a camera.

Opens the camera, detects objects on each frame, and announces what is in
front of the user ("person detected, center, 3.4 meters away") without
repeating itself or talking over itself.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the overlay window (double tap / space to start)
    --no-gate: Start announcing immediately without the double tap
"""

import os
import sys
import argparse
import logging
import yaml
from typing import Any, Dict, Optional, Tuple

from inference.backend import InferenceBackend
from inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from speech.serializer import SpeechSerializer
from speech.synthesizer import create_synthesizer


SHUTDOWN_SPEECH_TIMEOUT = 5.0


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


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
    required_sections = ['camera', 'detection', 'speech', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera', {})
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution values must be positive integers"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"

    # Detection
    detection = config.get('detection', {})
    backend = detection.get('backend', 'yolo')
    if backend not in ('yolo', 'none'):
        return False, "detection.backend must be one of: yolo, none"
    if backend == 'yolo':
        if not isinstance(detection.get('model'), str) or not detection.get('model'):
            return False, "detection.model is required when detection.backend is 'yolo'"
    for key in ('min_confidence', 'conf_threshold', 'iou_threshold'):
        if key in detection:
            value = detection[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"detection.{key} must be a number between 0 and 1"

    # Spatial estimation
    spatial = config.get('spatial', {}) or {}
    for key in ('focal_constant', 'min_distance', 'max_distance', 'default_height'):
        if key in spatial and (not _is_number(spatial[key]) or spatial[key] <= 0):
            return False, f"spatial.{key} must be a positive number"
    if spatial.get('min_distance', 0.5) >= spatial.get('max_distance', 10.0):
        return False, "spatial.min_distance must be less than spatial.max_distance"
    left = spatial.get('left_threshold', 0.35)
    right = spatial.get('right_threshold', 0.65)
    if not _is_number(left) or not _is_number(right) or not (0 <= left <= right <= 1):
        return False, "spatial thresholds must satisfy 0 <= left_threshold <= right_threshold <= 1"
    heights = spatial.get('known_heights', {}) or {}
    if not isinstance(heights, dict):
        return False, "spatial.known_heights must be a mapping of label to height"
    for label, height in heights.items():
        if not isinstance(label, str) or label != label.lower():
            return False, f"spatial.known_heights label must be lowercase: {label}"
        if not _is_number(height) or height <= 0:
            return False, f"spatial.known_heights[{label}] must be a positive number"

    # Announcement cooldown
    announcement = config.get('announcement', {}) or {}
    if 'min_interval_ms' in announcement:
        interval = announcement['min_interval_ms']
        if not _is_number(interval) or interval < 0:
            return False, "announcement.min_interval_ms must be a non-negative number"

    # Speech
    speech = config.get('speech', {})
    if speech.get('backend', 'pyttsx3') not in ('pyttsx3', 'log'):
        return False, "speech.backend must be one of: pyttsx3, log"
    if 'rate' in speech and (not isinstance(speech['rate'], int) or speech['rate'] <= 0):
        return False, "speech.rate must be a positive integer"
    if 'volume' in speech and (not _is_number(speech['volume']) or not (0 <= speech['volume'] <= 1)):
        return False, "speech.volume must be between 0 and 1"

    # Activation gate
    activation = config.get('activation', {}) or {}
    if 'timeout_ms' in activation:
        timeout = activation['timeout_ms']
        if not _is_number(timeout) or timeout <= 0:
            return False, "activation.timeout_ms must be a positive number"

    # Log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def create_detector(detection_cfg: Dict[str, Any]) -> Optional[InferenceBackend]:
    """
    Build the detector backend.

    Returns None (and logs) if the model cannot be loaded; the app keeps
    running and tells the user instead of exiting.
    """
    if detection_cfg.get('backend', 'yolo') == 'none':
        return None
    try:
        detector = UltralyticsCpuBackend(CpuYoloConfig.from_detection_config(detection_cfg))
        logging.info(f"Detection model loaded: {detection_cfg.get('model')}")
        return detector
    except Exception as e:
        logging.error(f"Error loading model: {e}")
        return None


def shutdown_speech(serializer: SpeechSerializer, timeout: float = SHUTDOWN_SPEECH_TIMEOUT) -> bool:
    """
    Let the last prompt (e.g. the camera error) finish, then release the audio device.

    Returns:
        False if speech was still playing when the timeout expired.
    """
    finished = serializer.wait_until_idle(timeout)
    if not finished:
        logging.warning(f"Speech still playing after {timeout:.1f}s, cutting it off")
    serializer.close()
    return finished


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='TruePath - spoken object announcements')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the overlay window')
    parser.add_argument('--no-gate', action='store_true',
                        help='Start announcing without waiting for a double tap')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting TruePath")

    serializer = None
    try:
        serializer = SpeechSerializer(create_synthesizer(config['speech']))
        detector = create_detector(config['detection'])

        engine = create_engine_from_config(
            config=config,
            detector=detector,
            serializer=serializer,
            display=args.display,
            use_gate=not args.no_gate,
        )
        engine.run()
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except Exception as e:
        logging.error(f"Error in main loop: {e}")
        import traceback
        traceback.print_exc()
    finally:
        if serializer is not None:
            shutdown_speech(serializer)
        logging.info("TruePath stopped")


if __name__ == "__main__":
    main()
