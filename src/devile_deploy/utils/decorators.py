"""Decorators shared by deployment steps."""
import time
import inspect
import logging
import functools
from typing import Any, Callable, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def _host_count(signature: inspect.Signature, args, kwargs) -> int:
    bound = signature.bind_partial(*args, **kwargs)
    connections = bound.arguments.get('connections')
    return len(connections) if connections is not None else 0


def log_deploy_step(func: F) -> F:
    """Log a deployment step with the number of hosts it ran on.

    The step must take its connections as a ``connections`` argument. The
    elapsed time is logged on success and, before re-raising, on failure.
    """
    signature = inspect.signature(func)
    step = func.__qualname__

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        hosts = _host_count(signature, args, kwargs)
        logger.debug(f"{step} starting on {hosts} host(s)")
        started = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{step} failed on {hosts} host(s) after {time.monotonic() - started:.2f}s: {e}")
            raise
        logger.info(f"{step} finished on {hosts} host(s) in {time.monotonic() - started:.2f}s")
        return result
    return cast(F, wrapper)
