"""Git services for git-worktree-keeper.

This package provides the git-facing layer:
- runner: Executes git with timeouts, cancellation and failure classification
- parsing: Parses porcelain worktree, branch and status output
- repository: Repository discovery and main worktree resolution
- worktrees: Worktree subcommands (add, remove, prune, status)
- branch_queries: Branch listing and remote discovery
"""

from .runner import GitRunner
from .parsing import parse_branch_list, parse_status, parse_worktree_list
from .repository import RepositoryLocator
from .worktrees import WorktreeOperations
from .branch_queries import BranchQueries

__all__ = [
    "GitRunner",
    "parse_branch_list",
    "parse_status",
    "parse_worktree_list",
    "RepositoryLocator",
    "WorktreeOperations",
    "BranchQueries",
]
