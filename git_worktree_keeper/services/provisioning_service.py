"""Creation of single worktrees and bulk provisioning for all branches."""

import os
from typing import Callable, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.constants import INSTALL_GIT_MESSAGE
from git_worktree_keeper.exceptions import (
    CommandCancelled,
    ErrorKind,
    PathAlreadyExists,
    StaleRegistration,
    WorktreeKeeperError,
)
from git_worktree_keeper.models.branch import BranchType, is_remote_branch, strip_remote_prefix
from git_worktree_keeper.models.operations import (
    CreateMode,
    CreateOptions,
    ProvisioningError,
    ProvisioningOutcome,
)
from git_worktree_keeper.services.git.worktrees import WorktreeOperations
from git_worktree_keeper.services.reconciliation_service import ReconciliationService
from git_worktree_keeper.services.state_cache import StateCache
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.paths import is_non_empty_dir
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]


def sanitize_error(error: WorktreeKeeperError) -> str:
    """Turn an engine error into a message fit for display."""
    if error.kind is ErrorKind.EXECUTABLE_NOT_FOUND or "ENOENT" in (error.detail or ""):
        return INSTALL_GIT_MESSAGE
    return error.summary


class ProvisioningService:
    """Creates worktrees, one at a time or for every branch without one."""

    def __init__(
        self,
        repo_root: str,
        worktrees: WorktreeOperations,
        reconciliation: ReconciliationService,
        state_cache: StateCache,
        config: Config,
    ):
        """Initialize the provisioning service.

        Args:
            repo_root: Main repository root (worktree locations are relative to it)
            worktrees: Worktree operations used for creation
            reconciliation: Source of branches without worktrees
            state_cache: Refreshed after every creation
            config: Naming pattern, location and remote settings
        """
        self.repo_root = repo_root
        self.worktrees = worktrees
        self.reconciliation = reconciliation
        self.state_cache = state_cache
        self.config = config

    def _checkout_name(self, branch: str, options: CreateOptions) -> str:
        # git creates a local tracking branch when given the bare name of a remote branch
        if options.mode is CreateMode.EXISTING and is_remote_branch(branch, self.config.remote_name):
            return strip_remote_prefix(branch, self.config.remote_name)
        return branch

    def target_path(self, branch: str) -> str:
        """Destination directory for a branch's worktree."""
        name = self.config.generate_worktree_name(strip_remote_prefix(branch, self.config.remote_name))
        return os.path.join(self.config.worktree_location(self.repo_root), name)

    def create_worktree(
        self,
        branch: str,
        target_path: str,
        options: CreateOptions = CreateOptions(),
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Create one worktree and refresh the snapshot.

        Args:
            branch: Branch to check out, or the new branch name
            target_path: Directory to create the worktree in
            options: Creation mode and force flag
            cancel: Cancellation token

        Raises:
            PathAlreadyExists: target_path is a non-empty directory
            GitRunnerError: git failed
        """
        if is_non_empty_dir(target_path):
            raise PathAlreadyExists(target_path)

        try:
            self.worktrees.add_worktree(self._checkout_name(branch, options), target_path, options, cancel=cancel)
        finally:
            self.state_cache.refresh()

    def create_for_all_branches(
        self,
        branch_type: Union[BranchType, str] = BranchType.BOTH,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ProvisioningOutcome:
        """Create a worktree for every branch that has none.

        Existing destination directories are never overwritten; those branches
        are skipped. Cancellation is checked between branches, so a creation
        already under way finishes. The snapshot is refreshed once at the end.

        Args:
            branch_type: Which branches to provision
            on_progress: Called as (index, total, branch) before each branch, index from 1
            cancel: Cancellation token

        Returns:
            Created, skipped and failed branches
        """
        outcome = ProvisioningOutcome()
        options = CreateOptions(mode=CreateMode.EXISTING)

        try:
            branches = self.reconciliation.branches_without_worktrees(branch_type, cancel=cancel).branches_without_worktrees
            total = len(branches)
            logger.info(f"Provisioning worktrees for {total} branches")

            for index, branch in enumerate(branches, start=1):
                if cancel is not None and cancel.is_cancelled:
                    logger.info(f"Provisioning cancelled after {index - 1} of {total} branches")
                    outcome.cancelled = True
                    break

                if on_progress:
                    on_progress(index, total, branch)

                target = self.target_path(branch)
                if os.path.exists(target):
                    logger.info(f"Skipping {branch}: {target} already exists")
                    outcome.skipped.append(branch)
                    continue

                try:
                    self._create_with_retry(branch, target, options)
                except WorktreeKeeperError as e:
                    logger.error(f"Failed to create worktree for {branch}: {e.summary}")
                    outcome.errors.append(ProvisioningError(branch, e.kind, sanitize_error(e), e.detail))
                    continue

                outcome.created.append(branch)
        except CommandCancelled:
            logger.info("Provisioning cancelled before any branch was started")
            outcome.cancelled = True
        finally:
            self.state_cache.refresh()

        logger.info(f"Provisioning finished: {outcome.summary()}")
        return outcome

    def _create_with_retry(
        self,
        branch: str,
        target: str,
        options: CreateOptions,
    ) -> None:
        """Create a worktree, retrying once with --force on a stale registration.

        Runs without a cancellation token so that git is never killed halfway
        through registering a worktree.
        """
        name = self._checkout_name(branch, options)
        try:
            self.worktrees.add_worktree(name, target, options, suppress_expected=True)
        except StaleRegistration as e:
            logger.info(f"Stale registration for {branch}, retrying with --force")
            logger.debug(f"Stale registration detail: {e.detail}")
            self.worktrees.add_worktree(name, target, options.with_force(), suppress_expected=True)
