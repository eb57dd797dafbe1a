"""Reconciliation of branches against existing worktrees."""

import fnmatch
import os
from typing import Dict, List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.models.branch import (
    BranchType,
    ReconciliationResult,
    is_remote_branch,
    strip_remote_prefix,
)
from git_worktree_keeper.services.git.branch_queries import BranchQueries
from git_worktree_keeper.services.git.worktrees import WorktreeOperations
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)


class ReconciliationService:
    """Computes which branches have no worktree yet."""

    def __init__(self, worktrees: WorktreeOperations, branches: BranchQueries, config: Config):
        """Initialize the reconciliation service.

        Args:
            worktrees: Worktree operations (listing and pruning)
            branches: Branch queries (listing)
            config: Configuration (remote name, exclude patterns)
        """
        self.worktrees = worktrees
        self.branches = branches
        self.config = config

    def is_excluded(self, branch: str) -> bool:
        """Check if a branch matches one of the configured exclude patterns.

        Patterns are matched against both the raw ref and the logical name,
        so "release/*" also excludes "origin/release/1.0".
        """
        name = strip_remote_prefix(branch, self.config.remote_name)
        for pattern in self.config.exclude_branches:
            if fnmatch.fnmatchcase(branch, pattern) or fnmatch.fnmatchcase(name, pattern):
                return True
        return False

    def branches_without_worktrees(
        self,
        branch_type: Union[BranchType, str] = BranchType.BOTH,
        cancel: Optional[CancellationToken] = None,
    ) -> ReconciliationResult:
        """Get branches that have no worktree.

        Stale registrations are pruned first so a worktree whose directory
        was deleted by hand does not hide its branch. When a branch exists
        both locally and on the remote, only the local one is reported.

        Args:
            branch_type: Which branches to consider (local, remote or both)
            cancel: Cancellation token

        Returns:
            Local branches in listing order, then remote branches in listing order
        """
        branch_type = BranchType(branch_type)
        remote = self.config.remote_name

        self.worktrees.prune_worktrees(cancel=cancel)

        all_branches = self.branches.list_branches(cancel=cancel)
        records = self.worktrees.list_worktrees(cancel=cancel)

        live_records = [record for record in records if os.path.exists(record.path)]
        if len(live_records) != len(records):
            logger.debug(f"Ignoring {len(records) - len(live_records)} worktrees with missing directories")
        used = {record.branch for record in live_records if record.branch}

        candidates = [branch for branch in all_branches if not self.is_excluded(branch)]
        if len(candidates) != len(all_branches):
            logger.debug(f"Excluded {len(all_branches) - len(candidates)} branches by pattern")

        local_branches = [branch for branch in candidates if not is_remote_branch(branch, remote)]
        remote_branches = [branch for branch in candidates if is_remote_branch(branch, remote)]

        # Logical name -> ref; a remote only fills a name no local branch has
        by_name: Dict[str, str] = {}
        for branch in local_branches:
            by_name.setdefault(branch, branch)
        for branch in remote_branches:
            by_name.setdefault(strip_remote_prefix(branch, remote), branch)
        deduplicated = set(by_name.values())

        selected: List[str] = []
        if branch_type in (BranchType.LOCAL, BranchType.BOTH):
            selected.extend(branch for branch in local_branches if branch in deduplicated)
        if branch_type in (BranchType.REMOTE, BranchType.BOTH):
            selected.extend(branch for branch in remote_branches if branch in deduplicated)

        result = [
            branch
            for branch in selected
            if branch not in used and strip_remote_prefix(branch, remote) not in used
        ]

        logger.debug(f"{len(result)} {branch_type.value} branches without worktrees")
        return ReconciliationResult(branch_type=branch_type, branches_without_worktrees=result)
