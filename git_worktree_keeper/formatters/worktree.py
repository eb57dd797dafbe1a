"""Worktree status and flag formatting utilities."""

from typing import List

from git_worktree_keeper.constants import (
    SYMBOL_ACTIVE,
    SYMBOL_LOCKED,
    SYMBOL_MAIN,
    SYMBOL_PRUNABLE,
    SYMBOL_UNKNOWN,
    WorktreeStyleType,
)
from git_worktree_keeper.models.operations import ProvisioningOutcome
from git_worktree_keeper.models.worktree import WorktreeRecord, WorktreeStatus


def format_changes(status: WorktreeStatus) -> str:
    """
    Format working tree change counts.

    Args:
        status: Worktree status

    Returns:
        "✓" when clean, "⚠" when the status could not be read, otherwise
        counts such as "S2 M1 U3"
    """
    if status.clean:
        return "✓"
    if status.is_unknown:
        return SYMBOL_UNKNOWN

    parts = []
    if status.staged_count:
        parts.append(f"S{status.staged_count}")
    if status.unstaged_count:
        parts.append(f"M{status.unstaged_count}")
    if status.untracked_count:
        parts.append(f"U{status.untracked_count}")
    return " ".join(parts)


def format_branch(record: WorktreeRecord) -> str:
    """Format the branch column; detached worktrees show their short HEAD."""
    if record.bare:
        return "(bare)"
    if record.branch:
        return record.branch
    return f"(detached {record.short_head})" if record.head_commit else "(detached)"


def format_flags(record: WorktreeRecord) -> str:
    """
    Format worktree flags as symbols.

    Example:
        "@*" for the main repository when it is the current worktree
    """
    flags = ""
    if record.is_active:
        flags += SYMBOL_ACTIVE
    if record.is_main:
        flags += SYMBOL_MAIN
    if record.locked:
        flags += SYMBOL_LOCKED
    if record.prunable:
        flags += SYMBOL_PRUNABLE
    return flags


def get_worktree_style_type(record: WorktreeRecord) -> str:
    """Determine the row style for a worktree."""
    if record.prunable:
        return WorktreeStyleType.STALE
    if record.is_active:
        return WorktreeStyleType.ACTIVE
    if record.is_main:
        return WorktreeStyleType.MAIN
    if not record.status.clean:
        return WorktreeStyleType.DIRTY
    return WorktreeStyleType.CLEAN


def format_provisioning_errors(outcome: ProvisioningOutcome) -> List[str]:
    """One line per failed branch: "  • branch: message"."""
    return [f"  • {error.branch}: {error.message}" for error in outcome.errors]
