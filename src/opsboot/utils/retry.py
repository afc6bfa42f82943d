# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/utils/retry.py

import functools
import time
from typing import Callable, Optional


class RetryError(RuntimeError):
    """All attempts failed; ``__cause__`` is the last exception seen."""

    def __init__(self, name: str, attempts: int):
        self.attempts = attempts
        super().__init__(f"{name} failed after {attempts} attempt(s)")


def retry(
    *,
    retries: int,
    delay: float,
    backoff: float = 1.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
):
    """
    Retry an idempotent call (SSH connect, not command execution).

    retries: total attempts
    delay: seconds before the second attempt
    backoff: multiplier applied to the delay after every failed attempt
    on_retry: callback(attempt, exception), also called for the last attempt
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, retries + 1):
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    if on_retry:
                        on_retry(attempt, exc)
                    if attempt == retries:
                        raise RetryError(fn.__name__, retries) from exc
                    time.sleep(wait)
                    wait *= backoff
            raise RetryError(fn.__name__, 0)
        return wrapper
    return decorator
