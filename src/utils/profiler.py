"""Lightweight profiling: wall-clock timers for comparison stages.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink

Used to measure:
    - Size reconciliation and masking
    - Comparison algorithm (Fuzzy shrink + threshold)
    - Mask closing (cost grows with image area)
    - Artifact writes

Without a sink, timings go to this module's logger at DEBUG level.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds)
        If None, logs at DEBUG level

    Yields
    ------
    None

    Examples
    --------
    >>> timings = {}
    >>> with timer("close_mask", sink=timings.__setitem__):
    ...     mask = close_mask(mask)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug("%s: %.3f s", name, elapsed)
