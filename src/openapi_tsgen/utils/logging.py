"""Logging setup for the command line."""

import logging
import sys
import time
from contextlib import contextmanager

logger = logging.getLogger("openapi_tsgen")


def configure_logging(level: str = "WARNING") -> None:
    """Install one stderr handler on the package logger, replacing earlier ones."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    logger.setLevel(log_level)
    logger.addHandler(handler)


@contextmanager
def timed_log_debug(message: str, **extra):
    """Time a block and log its duration at debug level.

    Usage:
        with timed_log_debug("generate", document="api.yaml"):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = int((time.perf_counter() - start) * 1000)
        fields = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
        logger.debug("%s duration_ms=%d %s", message, duration_ms, fields)
