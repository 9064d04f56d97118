"""Logging setup shared by the snapsolve entry points."""
import os
import logging

from .path_config import get_logs_dir

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level="INFO", log_format=DEFAULT_FORMAT, log_file="snapsolve.log", console=True):
    """Configure the package logger with a file handler and an optional console handler."""
    logger = logging.getLogger("snapsolve")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not logger.handlers:
        formatter = logging.Formatter(log_format)

        handler = logging.FileHandler(os.path.join(get_logs_dir(), log_file))
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if console:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)

    return logger
