"""Worktree data models."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class WorktreeStatus:
    """Working tree change counts for a worktree."""

    clean: bool = True
    staged_count: int = 0
    unstaged_count: int = 0
    untracked_count: int = 0

    @classmethod
    def unknown(cls) -> "WorktreeStatus":
        """Conservative status used when a worktree could not be inspected."""
        return cls(clean=False)

    @property
    def is_unknown(self) -> bool:
        return not self.clean and self.change_count == 0

    @property
    def change_count(self) -> int:
        return self.staged_count + self.unstaged_count + self.untracked_count


@dataclass
class WorktreeRecord:
    """Information about a git worktree.

    Records are rebuilt on every refresh; callers must re-resolve them by
    ``path`` rather than hold on to an instance.
    """

    path: str
    head_commit: str = ""
    branch: Optional[str] = None  # None when detached
    bare: bool = False
    detached: bool = False
    locked: bool = False
    prunable: bool = False
    status: WorktreeStatus = field(default_factory=WorktreeStatus)
    is_active: bool = False  # The caller's current context
    is_main: bool = False  # The main repository checkout
    is_synthetic: bool = False  # Built from probes rather than the worktree listing

    @property
    def display_name(self) -> str:
        return os.path.basename(os.path.normpath(self.path))

    @property
    def short_head(self) -> str:
        return self.head_commit[:7]

    def __str__(self) -> str:
        """String representation of worktree."""
        branch = self.branch or f"(detached {self.short_head})"
        markers = []
        if self.is_main:
            markers.append("main")
        if self.is_active:
            markers.append("active")
        if self.locked:
            markers.append("locked")
        if self.prunable:
            markers.append("prunable")
        suffix = f" [{', '.join(markers)}]" if markers else ""
        return f"{branch} @ {self.path}{suffix}"
