"""Core functionality for git-worktree-keeper"""

import os
from threading import Lock
from typing import Callable, Dict, List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.models.branch import BranchType
from git_worktree_keeper.models.operations import (
    BulkOperationResult,
    CreateOptions,
    ProvisioningOutcome,
)
from git_worktree_keeper.models.worktree import WorktreeRecord
from git_worktree_keeper.services.git import (
    BranchQueries,
    GitRunner,
    RepositoryLocator,
    WorktreeOperations,
)
from git_worktree_keeper.services.maintenance_service import MaintenanceService
from git_worktree_keeper.services.provisioning_service import ProgressCallback, ProvisioningService
from git_worktree_keeper.services.reconciliation_service import ReconciliationService
from git_worktree_keeper.services.removal_service import RemovalService, SwitchContext
from git_worktree_keeper.services.state_cache import Listener, StateCache
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)


class WorktreeKeeper:
    """Main class for managing the worktrees of one repository.

    Mutating operations (create, remove, bulk maintenance) are serialized;
    refresh is single-flight and may be called from anywhere.
    """

    def __init__(
        self,
        repo_path: str,
        config: Optional[Union[Config, dict]] = None,
        runner: Optional[GitRunner] = None,
        context_path: Optional[str] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            repo_path: Any path inside the repository or one of its worktrees
            config: Configuration dict or Config object (defaults apply when None)
            runner: Git runner (one is created from the config when None)
            context_path: Caller's current worktree (defaults to the checkout containing repo_path)
            sleep: Replacement for time.sleep during the removal settle delay

        Raises:
            NotARepository: repo_path is not inside a git repository
        """
        # Convert dict to Config if needed
        if config is None:
            self.config = Config()
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config

        self.runner = runner or GitRunner(timeout=self.config.git_timeout)
        self.locator = RepositoryLocator(self.runner)

        self.repo_root = self.locator.main_repository_root(repo_path)
        if context_path is None:
            context_path = self.locator.repository_root(repo_path)
        logger.debug(f"Repository root: {self.repo_root}, context: {context_path}")

        remote = self.config.remote_name
        self.worktree_ops = WorktreeOperations(self.repo_root, self.runner)
        self.branch_queries = BranchQueries(self.repo_root, self.runner, remote)
        self.state_cache = StateCache(self.repo_root, self.worktree_ops, context_path, self.config.workers)
        self.reconciliation = ReconciliationService(self.worktree_ops, self.branch_queries, self.config)
        self.provisioning = ProvisioningService(
            self.repo_root, self.worktree_ops, self.reconciliation, self.state_cache, self.config
        )
        removal_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.removal = RemovalService(
            self.repo_root, self.worktree_ops, self.locator, self.state_cache, self.config, **removal_kwargs
        )
        self.maintenance = MaintenanceService(self.worktree_ops, self.state_cache)

        self._operation_lock = Lock()

    @property
    def context_path(self) -> Optional[str]:
        return self.state_cache.context_path

    def set_context(self, path: Optional[str]) -> None:
        self.state_cache.set_context(path)

    def refresh(self) -> bool:
        """Reload the worktree snapshot; see StateCache.refresh.

        Skipped while a create, remove or maintenance operation holds the
        operation lock, since that operation refreshes when it finishes.
        """
        if not self._operation_lock.acquire(blocking=False):
            logger.debug("Worktree operation in progress, skipping refresh")
            return False
        try:
            return self.state_cache.refresh()
        finally:
            self._operation_lock.release()

    def on_change(self, listener: Listener) -> Callable[[], None]:
        return self.state_cache.on_change(listener)

    def list_worktrees(self) -> List[WorktreeRecord]:
        """Get the current worktree snapshot, refreshing first if it is empty."""
        records = self.state_cache.snapshot()
        if not records:
            self.refresh()
            records = self.state_cache.snapshot()
        return records

    def list_branches(self, cancel: Optional[CancellationToken] = None) -> List[str]:
        return self.branch_queries.list_branches(cancel=cancel)

    def branches_without_worktrees(
        self,
        branch_type: Union[BranchType, str] = BranchType.BOTH,
        cancel: Optional[CancellationToken] = None,
    ) -> List[str]:
        """Get branches that have no worktree yet.

        Args:
            branch_type: BranchType or "local" / "remote" / "both"

        Returns:
            Branch refs, local ones first
        """
        return self.reconciliation.branches_without_worktrees(branch_type, cancel).branches_without_worktrees

    def default_worktree_location(self) -> str:
        """Directory new worktrees are created in."""
        return self.config.worktree_location(self.repo_root)

    def worktree_path_for(self, branch: str) -> str:
        """Default worktree directory for a branch (from the naming pattern)."""
        return self.provisioning.target_path(branch)

    def create_worktree(
        self,
        branch: str,
        path: Optional[str] = None,
        options: CreateOptions = CreateOptions(),
        cancel: Optional[CancellationToken] = None,
    ) -> str:
        """Create a worktree.

        Args:
            branch: Branch to check out or create
            path: Target directory (defaults to the configured location and pattern)
            options: Creation mode and force flag
            cancel: Cancellation token

        Returns:
            The worktree path
        """
        path = os.path.abspath(os.path.expanduser(path)) if path else self.worktree_path_for(branch)
        with self._operation_lock:
            self.provisioning.create_worktree(branch, path, options, cancel)
        return path

    def create_for_all_branches(
        self,
        branch_type: Union[BranchType, str] = BranchType.BOTH,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ProvisioningOutcome:
        with self._operation_lock:
            return self.provisioning.create_for_all_branches(branch_type, on_progress, cancel)

    def remove_worktree(
        self,
        path: str,
        force: bool = False,
        switch_context: Optional[SwitchContext] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Remove a worktree; see RemovalService.remove for the switch-away protocol."""
        with self._operation_lock:
            self.removal.remove(os.path.abspath(os.path.expanduser(path)), force, switch_context, cancel)

    def resolve_main_worktree(self, cancel: Optional[CancellationToken] = None) -> WorktreeRecord:
        """Get the main repository record (synthesized when not in the snapshot)."""
        return self.locator.resolve_main_worktree(
            self.repo_root, self.state_cache.snapshot(), self.state_cache.context_path, cancel
        )

    def discover_remote_branches(
        self,
        remote: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[str]:
        return self.branch_queries.discover_remote_branches(remote, cancel)

    def discard_changes(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        with self._operation_lock:
            try:
                self.maintenance.discard_changes(path, cancel)
            finally:
                self.state_cache.refresh()

    def clean_worktree(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        with self._operation_lock:
            try:
                self.maintenance.clean_worktree(path, cancel)
            finally:
                self.state_cache.refresh()

    def discard_all_changes(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkOperationResult:
        with self._operation_lock:
            return self.maintenance.discard_all_changes(on_progress, cancel)

    def clean_all(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkOperationResult:
        with self._operation_lock:
            return self.maintenance.clean_all(on_progress, cancel)

    def status_summary(self) -> Dict[str, int]:
        return self.maintenance.status_summary()

    def prune_worktrees(self) -> bool:
        """Prune stale worktree registrations and refresh."""
        with self._operation_lock:
            pruned = self.worktree_ops.prune_worktrees()
            self.state_cache.refresh()
        return pruned

    def git_version(self) -> str:
        return self.runner.git_version()

    def dispose(self) -> None:
        """Cancel in-flight work and drop listeners."""
        logger.debug("Disposing WorktreeKeeper")
        self.state_cache.dispose()

    def __enter__(self) -> "WorktreeKeeper":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()
