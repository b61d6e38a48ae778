# launcher/utils.py
import time
import logging

log = logging.getLogger("launcher.utils")


class WaitTimeout(Exception):
    """A single wait attempt ran out of time."""


def retryable(fn, tries: int, on=(WaitTimeout,), sleep: float = 0):
    """
    Invoke fn at most `tries` times, pausing `sleep` seconds between attempts.

    Only exceptions listed in `on` are retried; anything else propagates at once.
    When every attempt fails, the last retriable exception is re-raised.
    """
    if tries < 1:
        raise ValueError("tries must be at least 1")
    for attempt in range(1, tries + 1):
        try:
            return fn()
        except on as e:
            if attempt == tries:
                raise
            log.debug(f"Attempt {attempt}/{tries} failed: {e!r}")
            if sleep:
                time.sleep(sleep)
