"""Formatting utilities for git-worktree-keeper.

This package provides formatting functions for displaying worktree information:
- worktree: Change counts, branch labels, flags and row styles
"""

from .worktree import (
    format_branch,
    format_changes,
    format_flags,
    format_provisioning_errors,
    get_worktree_style_type,
)

__all__ = [
    "format_branch",
    "format_changes",
    "format_flags",
    "format_provisioning_errors",
    "get_worktree_style_type",
]
