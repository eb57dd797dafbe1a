"""Branch model and related enums"""
from enum import Enum
from dataclasses import dataclass, field
from typing import List

from git_worktree_keeper.constants import DEFAULT_REMOTE


class BranchType(Enum):
    """Which branch provenance reconciliation considers."""
    LOCAL = "local"
    REMOTE = "remote"
    BOTH = "both"


def remote_prefix(remote_name: str = DEFAULT_REMOTE) -> str:
    return f"{remote_name}/"


def is_remote_branch(branch: str, remote_name: str = DEFAULT_REMOTE) -> bool:
    """Check if a branch ref carries the remote prefix (e.g. ``origin/feature``)."""
    return branch.startswith(remote_prefix(remote_name))


def strip_remote_prefix(branch: str, remote_name: str = DEFAULT_REMOTE) -> str:
    """Strip a single leading remote prefix, giving the logical branch name."""
    prefix = remote_prefix(remote_name)
    if branch.startswith(prefix):
        return branch[len(prefix):]
    return branch


def same_branch(first: str, second: str, remote_name: str = DEFAULT_REMOTE) -> bool:
    """Two refs denote the same logical branch if equal after prefix stripping."""
    return strip_remote_prefix(first, remote_name) == strip_remote_prefix(second, remote_name)


@dataclass
class ReconciliationResult:
    """Branches that have no worktree yet, for one branch type filter."""
    branch_type: BranchType
    branches_without_worktrees: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.branches_without_worktrees)

    def __iter__(self):
        return iter(self.branches_without_worktrees)
