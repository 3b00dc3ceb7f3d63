from __future__ import annotations

import logging
import sys

_PACKAGE_LOGGER = "task_api"


def setup_logging(level: str = "INFO") -> None:
    """
    Attach a single stderr handler to the package logger.

    Safe to call more than once: existing handlers are replaced, not duplicated.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
