import logging
import logging.config
from pathlib import Path
from typing import Optional

import yaml

from ..config.settings import settings


def setup_logging(config_path: Optional[Path] = None) -> None:
    """
    Set up logging configuration from a YAML file.

    Args:
        config_path (Path): Path to the logging configuration YAML file.
            Defaults to ``settings.LOGGING_CONFIG_PATH``.
    """
    path = Path(config_path) if config_path is not None else Path(settings.LOGGING_CONFIG_PATH)
    if path.exists():
        try:
            with open(path, "rt") as f:
                log_config = yaml.safe_load(f.read())
            logging.config.dictConfig(log_config)
            logging.info(f"Logging configured successfully from {path}")
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logging.basicConfig(level=logging.INFO)
            logging.error(f"Error loading logging configuration from {path}: {e}. Using basicConfig.")
    else:
        logging.basicConfig(level=logging.INFO)
        logging.warning(f"Logging configuration file not found at {path}. Using basicConfig.")
