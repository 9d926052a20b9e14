"""
Core Configuration Definitions.

This module defines the default structure and values for the application's
configuration system using `yacs`. It serves as the single source of truth
for all configurable parameters.

Configuration is organized into sections:
- SYSTEM: Global paths and environment settings.
- RUNNER: Batch runner scheduling and registry retention.
- PROCESS: Subprocess handling shared by action executors.
"""

import os
import platform
from pathlib import Path
from yacs.config import CfgNode as CN  # type: ignore[import-untyped]


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_local_base_dir() -> Path:
    system = platform.system().lower()
    if system == "windows":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / "Clevert"
        return Path.home() / "AppData" / "Local" / "Clevert"
    if system == "darwin":
        return Path.home() / "Library" / "Application Support" / "Clevert"
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "clevert"
    return Path.home() / ".local" / "share" / "clevert"


_C = CN()

# -----------------------------------------------------------------------------
# System Configuration
# -----------------------------------------------------------------------------
_C.SYSTEM = CN()
# Root directory of the project
_C.SYSTEM.ROOT = str(Path(__file__).parent.parent)

# Data directory for logs and other runtime state
_C.SYSTEM.DATA_DIR = os.environ.get("CLEVERT_DATA_DIR", str(_default_local_base_dir()))

# Installed extensions, one `<id>_<version>` directory each
_C.SYSTEM.EXTENSIONS_DIR = os.environ.get(
    "CLEVERT_EXTENSIONS_DIR",
    os.path.join(_C.SYSTEM.DATA_DIR, "extensions"),
)

# -----------------------------------------------------------------------------
# Runner Configuration
# -----------------------------------------------------------------------------
_C.RUNNER = CN()
# Worker pool size of every runner (process wide, not per job)
_C.RUNNER.PARALLEL = max(1, _env_int("CLEVERT_PARALLEL", 2))

# Minutes a terminal runner stays pollable (0 keeps runners forever)
_C.RUNNER.RETENTION_MINUTES = _env_int("CLEVERT_RUNNER_RETENTION_MINUTES", 60)

# Registry eviction scheduler interval in minutes (0 disables the scheduler)
_C.RUNNER.CLEANUP_INTERVAL_MINUTES = _env_int("CLEVERT_RUNNER_CLEANUP_INTERVAL_MINUTES", 10)

# Interval between progress frames of the status event stream
_C.RUNNER.STATUS_POLL_INTERVAL_SEC = _env_float("CLEVERT_STATUS_POLL_INTERVAL_SEC", 1.0)

# -----------------------------------------------------------------------------
# Process Configuration
# -----------------------------------------------------------------------------
_C.PROCESS = CN()
# Seconds to wait after SIGTERM before escalating to SIGKILL
_C.PROCESS.TERMINATE_GRACE_SEC = _env_float("CLEVERT_TERMINATE_GRACE_SEC", 5.0)

# Trailing stderr bytes kept for failure reports
_C.PROCESS.STDERR_TAIL_BYTES = _env_int("CLEVERT_STDERR_TAIL_BYTES", 4096)


def get_cfg_defaults():
    """
    Get a yacs CfgNode object with default values.
    Returns a clone to ensure thread-safety during initialization.
    """
    return _C.clone()
