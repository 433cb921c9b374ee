"""Process-wide logging setup for the short-URL service.

Both entry points (the HTTP server and the garbage collector) call
``configure_logging`` once at startup. Library modules only ever ask for
``logging.getLogger(__name__)``; everything under ``shorturl.*`` propagates to
the handler installed here.
"""

import logging
import sys

__all__ = ["LOG_FORMAT", "configure_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("shorturl")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logger
