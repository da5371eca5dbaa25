"""
Logging configuration for the companion server.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
HANDLER_NAME = "companion-stderr"


def configure_logging(level: str = "INFO") -> None:
    """Send ``companion.*`` records to stderr at *level*.

    Safe to call more than once; the handler is only added the first time.
    """
    logger = logging.getLogger("companion")
    logger.setLevel(level.upper())

    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
