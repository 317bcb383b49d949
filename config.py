"""Configuration settings for cellguard application."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# Application version
VERSION = "1.0.0"


def _get_env(key: str, default: str) -> str:
    """Get environment variable with default."""
    return os.environ.get(f'CELLGUARD_{key}', default)


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer with default."""
    try:
        return int(os.environ.get(f'CELLGUARD_{key}', str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float with default."""
    try:
        return float(os.environ.get(f'CELLGUARD_{key}', str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean with default."""
    val = os.environ.get(f'CELLGUARD_{key}', '').lower()
    if val in ('true', '1', 'yes', 'on'):
        return True
    if val in ('false', '0', 'no', 'off'):
        return False
    return default


# Logging configuration
_log_level_str = _get_env('LOG_LEVEL', 'WARNING').upper()
LOG_LEVEL = getattr(logging, _log_level_str, logging.WARNING)
LOG_FORMAT = _get_env('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Server settings
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 5060)
DEBUG = _get_env_bool('DEBUG', False)

# Storage: base data directory supplied by the platform, database inside it
DATA_DIR = Path(_get_env('DATA_DIR', str(Path(__file__).parent / 'instance')))
DB_PATH = Path(_get_env('DB_PATH', str(DATA_DIR / 'cellguard.db')))

# Bulk import settling delay before completion is signaled (seconds)
IMPORT_SETTLE_SECONDS = _get_env_float('IMPORT_SETTLE_SECONDS', 1.0)

# Detection event writer threads
EVENT_WORKERS = _get_env_int('EVENT_WORKERS', 1)

# Notification preferences (vibration flag and minimum severity ordinal)
NOTIFY_VIBRATE = _get_env_bool('NOTIFY_VIBRATE', True)
NOTIFY_MIN_LEVEL = _get_env_int('NOTIFY_MIN_LEVEL', 2)


def configure_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        stream=sys.stderr
    )
    # Keep the Flask development server in line with our level
    logging.getLogger('werkzeug').setLevel(LOG_LEVEL)
