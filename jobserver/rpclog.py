"""Request logging for job service handlers."""

from functools import wraps
import time

import jobserver.logging

LOG = jobserver.logging.getLogger(__name__)


def logged(func):
    """
    Decorator logging each call with its arguments, its result or error,
    and the elapsed time.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        name = f"{self.__class__.__name__}.{func.__name__}"
        start = time.perf_counter()
        try:
            response = func(self, *args, **kwargs)
        except Exception as error:
            LOG.error("%s%r => %s: %s (%.1fms)", name, args,
                      type(error).__name__, error,
                      (time.perf_counter() - start) * 1000)
            raise
        LOG.debug("%s%r => %r (%.1fms)", name, args, response,
                  (time.perf_counter() - start) * 1000)
        return response

    return wrapper
