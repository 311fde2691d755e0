"""
Default logging setup applied when the package is imported.
"""

import logging
from typing import Optional

from tmtquant.core.logger import ROOT_LOGGER


def initialize_logging(level: Optional[int] = None) -> None:
    """
    Install a NullHandler on the package logger.

    Library users see nothing unless they configure logging themselves; the
    CLI sets up handlers with ``logging.basicConfig``.

    Parameters
    ----------
    level : int, optional
        Level of the package logger. Left unset (inherit from root) by default.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    if level is not None:
        logger.setLevel(level)
