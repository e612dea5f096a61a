"""Console logging for the ``kiln`` logger tree."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_NAME = "kiln-console"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install one stream handler on ``kiln``, replacing a previous one.

    The handler binds to the current ``sys.stderr``, so calling this again
    (e.g. once per CLI invocation) re-targets it.
    """
    logger = logging.getLogger("kiln")
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
