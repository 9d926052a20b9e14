"""
Configuration Loader.

This module initializes the global configuration object (`config`) used throughout
the application. It leverages `yacs` to provide a hierarchical, dot-accessible
configuration structure defined in `clevert.core_config`.

Usage:
    from clevert.config import config
    print(config.RUNNER.PARALLEL)
"""

import logging
import os

from clevert.core_config import get_cfg_defaults

# Load default configuration
config = get_cfg_defaults()

# Optional user overrides
_user_config_path = os.environ.get("CLEVERT_CONFIG_FILE")
if _user_config_path and os.path.exists(_user_config_path):
    config.merge_from_file(_user_config_path)

# Freeze config to prevent accidental changes during runtime.
config.freeze()

logger = logging.getLogger(__name__)
