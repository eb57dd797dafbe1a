"""Threading utilities: worker sizing and cancellation tokens."""

import os
import sys
import threading
from typing import Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled (3.13+ with the GIL disabled)."""
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    return is_gil_enabled is not None and not is_gil_enabled()


def get_optimal_worker_count(user_specified: Optional[int] = None) -> int:
    """Calculate the worker count for parallel git probes.

    Args:
        user_specified: User-specified worker count, if provided

    Returns:
        Number of workers for the probe thread pool
    """
    if user_specified is not None and user_specified > 0:
        return user_specified

    cpu_count = os.cpu_count() or 1

    if is_free_threading_enabled():
        return min(64, cpu_count * 2)

    # git probes are I/O-bound subprocess waits
    return min(32, cpu_count + 4)


class CancellationToken:
    """Cooperative cancellation handle passed explicitly through git calls and loops.

    A token starts un-cancelled and can only move to cancelled. Long-running
    work checks ``is_cancelled`` at its suspension points.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
