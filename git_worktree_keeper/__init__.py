"""
git-worktree-keeper - Reconcile, provision and safely remove Git worktrees
"""

import os

# GitPython refuses to import when git is not on PATH; let the runner
# report ExecutableNotFound instead
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from .__version__ import __version__  # noqa: E402
from .core import WorktreeKeeper  # noqa: E402
from .cli.main import main  # noqa: E402

__all__ = ["WorktreeKeeper", "main", "__version__"]
