import functools
import inspect
import logging
import time

logger = logging.getLogger(__name__)


class Profiler:
    """
    Provides a decorator that times synchronous and asynchronous methods and
    logs the elapsed time at DEBUG level, whether the call returned or raised.
    """

    @staticmethod
    def profile(func):
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                outcome = "failed"
                try:
                    result = await func(*args, **kwargs)
                    outcome = "ok"
                    return result
                finally:
                    elapsed = time.perf_counter() - start
                    logger.debug(
                        f"[Profiler] {func.__qualname__} {outcome} in {elapsed:.4f}s"
                    )

            return async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                start = time.perf_counter()
                outcome = "failed"
                try:
                    result = func(*args, **kwargs)
                    outcome = "ok"
                    return result
                finally:
                    elapsed = time.perf_counter() - start
                    logger.debug(
                        f"[Profiler] {func.__qualname__} {outcome} in {elapsed:.4f}s"
                    )

            return sync_wrapper
