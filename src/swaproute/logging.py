import logging

"""
The package logger. Records are written to stderr and are not propagated to the root logger.
"""

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)
logger.propagate = False
logger.setLevel(logging.INFO)

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter(LOG_FORMAT))
logger.addHandler(_handler)


def set_level(level: int | str) -> None:
    logger.setLevel(level)
