"""
Logging setup.

Every module gets its logger through setup_logger(__name__) so that all
output shares one handler and format under the "justcall" root logger.
"""

import logging
import sys

from justcall.core.config import get_config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "justcall"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(get_config().LOG_LEVEL.upper())
    return root


def set_log_level(level: str) -> None:
    """Change the level of every justcall logger, e.g. after the config is reloaded."""
    _configure_root().setLevel(level.upper())


def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes through the shared justcall handler.

    Args:
        name: Logger name, usually the module's __name__

    Returns:
        Configured logger
    """
    _configure_root()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logger = setup_logger(ROOT_LOGGER_NAME)
