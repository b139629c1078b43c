import logging
import sys

from h2_registry.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def set_logger_and_children_level(logger_instance: logging.Logger, level: int):
    """Set the level of a logger and every logger registered beneath it."""
    logger_instance.setLevel(level)
    for handler in logger_instance.handlers:
        handler.setLevel(level)

    prefix = f"{logger_instance.name}."
    for name, child in logging.Logger.manager.loggerDict.items():
        if isinstance(child, logging.Logger) and name.startswith(prefix):
            child.setLevel(level)


def get_logger(name: str = "h2_registry") -> logging.Logger:
    _logger = logging.getLogger(name)

    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)

    _logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    _logger.propagate = False

    return _logger


logger = get_logger()
