"""Retry helpers with exponential backoff.

The discovery engine never retries internally; callers that want retries
wrap `discover_all`/`refresh_device` with these helpers (the CLI's
`--retries` option does exactly that).
"""
import functools
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from diskprobe.core.command import ProbeContext
from diskprobe.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry(
    max_attempts: int = 3,
    delay: float = 2.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ctx: Optional[ProbeContext] = None,
):
    """Retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay in seconds between retries
        backoff: Backoff multiplier for each retry
        exceptions: Tuple of exception types to catch and retry
        ctx: When given, no further attempt starts once it is cancelled or
            past its deadline, and waits never outlast the deadline

    Example:
        @retry(max_attempts=3, delay=5, exceptions=(DiscoveryError,))
        def scan():
            return discovery.discover_all()
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts or _stopped(ctx):
                        logger.error(f"{func.__name__} gave up after {attempt} attempt(s): {e}")
                        raise
                    logger.warning(f"{func.__name__} failed (attempt {attempt}/{max_attempts}): {e}")

                pause = _bounded(wait, ctx)
                logger.info(f"Retrying in {pause:.1f}s...")
                time.sleep(pause)
                wait *= backoff
                attempt += 1

        return wrapper

    return decorator


def call_with_retry(
    func: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ctx: Optional[ProbeContext] = None,
) -> T:
    """Call a zero-argument function under `retry` without decorating it."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return retry(max_attempts=max_attempts, delay=delay, exceptions=exceptions, ctx=ctx)(func)()


def _stopped(ctx: Optional[ProbeContext]) -> bool:
    return ctx is not None and (ctx.cancelled or ctx.expired)


def _bounded(wait: float, ctx: Optional[ProbeContext]) -> float:
    remaining = ctx.remaining() if ctx is not None else None
    if remaining is None:
        return wait
    return max(0.0, min(wait, remaining))
