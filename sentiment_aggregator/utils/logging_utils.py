import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..config.settings import settings

DEFAULT_LOGGING_CONFIG_PATH = Path(settings.LOGGING_CONFIG_PATH)
FALLBACK_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _prepare_file_handlers(log_config: Dict[str, Any]) -> None:
    """Create the directories of file handlers so dictConfig can open them."""
    for handler in (log_config.get("handlers") or {}).values():
        filename = handler.get("filename")
        if filename:
            Path(filename).parent.mkdir(parents=True, exist_ok=True)


def setup_logging(config_path: Union[str, Path] = DEFAULT_LOGGING_CONFIG_PATH, log_level: Optional[str] = None) -> None:
    """
    Set up logging configuration from a YAML file.

    Args:
        config_path (Path): Path to the logging configuration YAML file.
        log_level (str): Level for the root logger, applied after the file is
                         loaded. Defaults to LOG_LEVEL.
    """
    config_path = Path(config_path)
    level = (log_level or settings.LOG_LEVEL).upper()

    if not config_path.exists():
        logging.basicConfig(level=level, format=FALLBACK_FORMAT)
        logging.warning(f"Logging configuration file not found at {config_path}. Using basicConfig.")
        return

    try:
        with open(config_path, "rt", encoding="utf-8") as f:
            log_config = yaml.safe_load(f)
        _prepare_file_handlers(log_config)
        logging.config.dictConfig(log_config)
    except (OSError, ValueError, TypeError, AttributeError, yaml.YAMLError) as e:
        logging.basicConfig(level=level, format=FALLBACK_FORMAT)
        logging.error(f"Error loading logging configuration from {config_path}: {e}. Using basicConfig.")
        return

    logging.getLogger().setLevel(level)
    logging.getLogger(__name__).debug(f"Logging configured from {config_path} at {level}")
