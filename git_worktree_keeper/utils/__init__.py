"""Utility functions for git-worktree-keeper.

This package provides utility modules:
- logging: Logging configuration and logger creation
- threading: Worker sizing and cancellation tokens
- paths: Path normalization for worktree comparisons
"""

from .logging import setup_logging, get_logger, ColoredFormatter
from .threading import (
    CancellationToken,
    is_free_threading_enabled,
    get_optimal_worker_count,
)
from .paths import normalize_path, paths_equal, is_non_empty_dir

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "ColoredFormatter",
    # Threading
    "CancellationToken",
    "is_free_threading_enabled",
    "get_optimal_worker_count",
    # Paths
    "normalize_path",
    "paths_equal",
    "is_non_empty_dir",
]
