# launcher/metrics.py
import time
import logging
from contextlib import contextmanager

log = logging.getLogger("launcher.metrics")


@contextmanager
def timed(metrics: dict, name: str):
    """Record the wall-clock duration of the block into metrics[name] (seconds), even if it raises."""
    start = time.monotonic()
    try:
        yield
    finally:
        metrics[name] = time.monotonic() - start
        log.info("%s: %.2fs", name, metrics[name])
