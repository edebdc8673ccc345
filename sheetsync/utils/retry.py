"""Retry utilities with exponential backoff."""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Type, TypeVar

import structlog

log = structlog.stdlib.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait between attempts."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based failed attempt."""
        return min(self.base_delay * (2**attempt), self.max_delay)


def retry_call(
    func: Callable[..., T],
    *args: Any,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: threading.Event | None = None,
    **kwargs: Any,
) -> T:
    """
    Call func, retrying on policy.exceptions with exponential backoff.

    Used where the retry budget comes from runtime configuration, e.g. the
    Sheets gateway whose max_retries is set in the config file.

    Args:
        func: Callable to invoke
        *args: Positional arguments for func
        policy: Retry policy to apply
        sleep: Sleep function, replaceable in tests
        cancel_event: Optional event; once set, no further attempt is made and
            the backoff wait ends early
        **kwargs: Keyword arguments for func

    Returns:
        Whatever func returns on its first successful attempt

    Raises:
        The last exception raised by func once retries are exhausted or
        cancel_event is set
    """
    name = getattr(func, "__name__", repr(func))

    for attempt in range(policy.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except policy.exceptions as e:
            if attempt == policy.max_retries:
                log.error(
                    "max_retries_reached",
                    function=name,
                    max_retries=policy.max_retries,
                    error=str(e),
                )
                raise
            if cancel_event is not None and cancel_event.is_set():
                log.warning("retry_abandoned_cancelled", function=name, attempt=attempt + 1)
                raise

            delay = policy.delay_for(attempt)
            log.warning(
                "retrying_after_error",
                function=name,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_seconds=delay,
                error=str(e),
            )
            if cancel_event is None:
                sleep(delay)
            elif cancel_event.wait(delay):
                log.warning("retry_abandoned_cancelled", function=name, attempt=attempt + 1)
                raise

    raise AssertionError("unreachable")