import os
from typing import Optional

from services.common.core.logging_config import setup_logging as common_setup_logging


def setup_logging(config_path: Optional[str] = None):
    """
    Load the YAML config and initialize logging for the gate.
    """
    if config_path is None:
        config_path = os.getenv("LOG_CONFIG_PATH", "config/authgate_log.yaml")
    common_setup_logging(config_path)
