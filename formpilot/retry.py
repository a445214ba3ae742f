"""Clock, bounded polling and a retry decorator with exponential backoff."""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


class Clock:
    """Wall clock. Every wait in the flow goes through one of these so tests can fake it."""

    def now(self) -> float:
        return time.time()

    def sleep(self, ms: int | float) -> None:
        if ms > 0:
            time.sleep(ms / 1000.0)


SYSTEM_CLOCK = Clock()


def poll_until(
    predicate: Callable[[], bool],
    *,
    timeout_ms: int,
    interval_ms: int,
    clock: Clock | None = None,
) -> bool:
    """Call ``predicate`` until it returns True or ``timeout_ms`` elapses.

    The number of attempts is bounded by ``timeout_ms // interval_ms + 1``
    regardless of how long each attempt takes.
    """
    clock = clock or SYSTEM_CLOCK
    attempts = max(1, timeout_ms // max(1, interval_ms) + 1)
    for attempt in range(1, attempts + 1):
        if predicate():
            return True
        if attempt < attempts:
            clock.sleep(interval_ms)
    logger.debug("poll_until gave up after %d attempts (%d ms)", attempts, timeout_ms)
    return False


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    clock: Clock | None = None,
) -> Callable:
    """Decorator: retries the wrapped function with exponential backoff."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exc: BaseException | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt == max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__,
                            max_attempts,
                            exc,
                        )
                        raise
                    delay = min(
                        base_delay * (backoff_factor ** (attempt - 1)), max_delay
                    )
                    if jitter:
                        delay *= 0.5 + random.random()
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__,
                        attempt,
                        max_attempts,
                        exc,
                        delay,
                    )
                    (clock or SYSTEM_CLOCK).sleep(delay * 1000)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator
