"""Data models for git-worktree-keeper."""

from .worktree import WorktreeRecord, WorktreeStatus
from .branch import (
    BranchType,
    ReconciliationResult,
    is_remote_branch,
    same_branch,
    strip_remote_prefix,
)
from .operations import (
    BulkOperationResult,
    CreateMode,
    CreateOptions,
    ProvisioningError,
    ProvisioningOutcome,
)

__all__ = [
    "WorktreeRecord",
    "WorktreeStatus",
    "BranchType",
    "ReconciliationResult",
    "is_remote_branch",
    "same_branch",
    "strip_remote_prefix",
    "BulkOperationResult",
    "CreateMode",
    "CreateOptions",
    "ProvisioningError",
    "ProvisioningOutcome",
]
