"""Path helpers for comparing worktree locations."""

import os
from typing import Optional


def normalize_path(path: str) -> str:
    """Return a canonical form of path for equality checks.

    Resolves symlinks (e.g. macOS /var -> /private/var) and case-folds on
    case-insensitive platforms.
    """
    return os.path.normcase(os.path.realpath(os.path.abspath(os.path.expanduser(path))))


def paths_equal(first: Optional[str], second: Optional[str]) -> bool:
    """Check whether two paths point at the same location."""
    if not first or not second:
        return False
    return normalize_path(first) == normalize_path(second)


def is_non_empty_dir(path: str) -> bool:
    """True if path is a directory containing at least one entry."""
    try:
        with os.scandir(path) as entries:
            return any(True for _ in entries)
    except (FileNotFoundError, NotADirectoryError):
        return False
