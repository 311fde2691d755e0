"""
Logging helpers for the tmtquant package.

Modules obtain their logger through :func:`get_logger` so that every logger
lives under the ``tmtquant`` hierarchy.
"""

import functools
import logging
import time
from typing import Callable

DEFAULT_FORMAT = "%(asctime)s [%(funcName)s] - %(message)s"
ROOT_LOGGER = "tmtquant"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, placing it under the package hierarchy.

    Parameters
    ----------
    name : str
        Logger name, e.g. ``"tmtquant.aggregation"``.

    Returns
    -------
    logging.Logger
        The logger.
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_execution_time(logger: logging.Logger, level: int = logging.INFO) -> Callable:
    """
    Decorator logging how long the wrapped function took.

    Parameters
    ----------
    logger : logging.Logger
        Logger used for the timing message.
    level : int, optional
        Level of the timing message.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            result = fn(*args, **kwargs)
            logger.log(level, "%s finished in %.2f seconds", fn.__name__, time.time() - start_time)
            return result

        return wrapper

    return decorator
