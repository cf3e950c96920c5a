"""Polling helper for waiting on remote resources."""

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def wait_for(
    poll_fn: Callable[[], T],
    ready_check: Callable[[T], bool],
    *,
    timeout: Optional[float] = None,
    interval: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_wait: Optional[Callable[[T], None]] = None,
    description: str = "resource",
) -> T:
    """Poll until ``ready_check`` accepts the result of ``poll_fn``.

    Errors raised by ``poll_fn`` are not retried; they end the wait.

    Args:
        poll_fn: Fetches the current resource.
        ready_check: Returns True when the resource is ready.
        timeout: Seconds before giving up; None or 0 waits forever.
        interval: Seconds between polls.
        sleep: Sleep function (injectable for tests).
        clock: Monotonic clock (injectable for tests).
        on_wait: Called with each not-ready result before sleeping.
        description: Description for the timeout message.

    Returns:
        The first ready result.

    Raises:
        TimeoutError: If the deadline passes first.
    """
    deadline = clock() + timeout if timeout else None

    while True:
        result = poll_fn()
        if ready_check(result):
            return result

        if on_wait is not None:
            on_wait(result)

        if deadline is not None and clock() >= deadline:
            raise TimeoutError(
                f"Timeout waiting for {description} after {timeout:.1f}s"
            )

        sleep(interval)
