import logging.config
from typing import Optional

from config.config import Config
from contracts.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_logging_config(level: str, log_file: Optional[str] = None) -> dict:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "default",
            "level": level,
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": LOG_FORMAT,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
    }


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """
    Configure the root logger.

    Raises:
        ConfigurationError: If the level is unknown or the log file cannot be opened.
    """
    level = (level or Config.LOG_LEVEL).upper()
    log_file = log_file or Config.LOG_FILE
    try:
        logging.config.dictConfig(build_logging_config(level, log_file))
    except (ValueError, OSError) as e:
        raise ConfigurationError(f"Invalid logging settings: {e}") from e
