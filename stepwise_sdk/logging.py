import logging

from core.settings import get_app_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger.

    The level is taken from ``WORKFLOW_LOG_LEVEL`` (default ``INFO``).
    Handlers are attached once per logger name.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(LOG_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(get_app_settings().workflow.log_level.upper())
    return logger
