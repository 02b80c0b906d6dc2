"""Logging setup.

The MCP protocol owns stdout, so all log output goes to stderr.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stderr handler to the ``gmcp`` logger.

    Safe to call more than once; the handler is replaced, not duplicated.

    Args:
        level: Logging level name.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("gmcp")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    return logger
