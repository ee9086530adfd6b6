"""Logging utilities for TorchQI.

Every module obtains its logger through `get_logger(__name__)`; all loggers live
under the ``torchqi`` namespace and share a single stderr handler configuration.
"""

import logging
import sys
from typing import Dict, Optional, Union

_DEFAULT_LEVEL = logging.WARNING
_FORMAT = '[%(levelname)s] %(name)s: %(message)s'

_loggers: Dict[str, logging.Logger] = {}


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create a logger for the given module name.

    Args:
        name (Optional[str]): Logger name, typically ``__name__`` of the calling
            module. Names outside the ``torchqi`` namespace are prefixed with it.
            If None, the package logger is returned.

    Returns:
        logging.Logger: The cached, configured logger.
    """
    if name is None:
        name = "torchqi"
    logger_name = name if name == "torchqi" or name.startswith("torchqi.") else f"torchqi.{name}"

    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(_DEFAULT_LEVEL)
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_DEFAULT_LEVEL)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Set the logging level for all TorchQI loggers.

    Args:
        level (Union[int, str]): A `logging` level constant or its name
            ('DEBUG', 'INFO', 'WARNING', ...).

    Raises:
        ValueError: If `level` is a name `logging` does not define.
    """
    global _DEFAULT_LEVEL
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level name: {name}")

    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    _DEFAULT_LEVEL = level
