"""Discard and clean operations across worktrees."""

from typing import Callable, Dict, List, Optional

from git_worktree_keeper.exceptions import CommandCancelled, WorktreeKeeperError
from git_worktree_keeper.models.operations import BulkOperationResult
from git_worktree_keeper.models.worktree import WorktreeRecord
from git_worktree_keeper.services.git.worktrees import WorktreeOperations
from git_worktree_keeper.services.state_cache import StateCache
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class MaintenanceService:
    """Resets and cleans worktrees, one at a time or in bulk."""

    def __init__(self, worktrees: WorktreeOperations, state_cache: StateCache):
        self.worktrees = worktrees
        self.state_cache = state_cache

    def discard_changes(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        """Discard all changes in a worktree (reset --hard, then clean -fd).

        Raises:
            GitRunnerError: git failed
        """
        self.worktrees.reset_hard(path, cancel=cancel)
        self.worktrees.clean(path, cancel=cancel)
        logger.info(f"Discarded changes in {path}")

    def clean_worktree(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        """Remove untracked files and directories from a worktree."""
        self.worktrees.clean(path, cancel=cancel)
        logger.info(f"Cleaned {path}")

    def discard_all_changes(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkOperationResult:
        """Discard changes in every dirty worktree of the snapshot."""
        targets = [record for record in self.state_cache.snapshot() if not record.status.clean and not record.bare]
        return self._run_bulk("discard", targets, self.discard_changes, on_progress, cancel)

    def clean_all(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkOperationResult:
        """Clean untracked files in every worktree of the snapshot."""
        targets = [record for record in self.state_cache.snapshot() if not record.bare]
        return self._run_bulk("clean", targets, self.clean_worktree, on_progress, cancel)

    def _run_bulk(
        self,
        label: str,
        targets: List[WorktreeRecord],
        operation: Callable[[str, Optional[CancellationToken]], None],
        on_progress: Optional[ProgressCallback],
        cancel: Optional[CancellationToken],
    ) -> BulkOperationResult:
        """Apply operation to each target, continuing past failures.

        Cancellation is checked between worktrees. The snapshot is refreshed
        once at the end.
        """
        result = BulkOperationResult()
        total = len(targets)

        try:
            for index, record in enumerate(targets, start=1):
                if cancel is not None and cancel.is_cancelled:
                    result.cancelled = True
                    break
                if on_progress:
                    on_progress(index, total, record.display_name)

                try:
                    operation(record.path, cancel)
                except CommandCancelled:
                    result.cancelled = True
                    break
                except WorktreeKeeperError as e:
                    logger.error(f"Failed to {label} {record.display_name}: {e.summary}")
                    result.failed.append((record.path, e.summary))
                    continue
                result.completed.append(record.path)
        finally:
            self.state_cache.refresh()

        logger.info(f"Bulk {label}: {len(result.completed)} done, {len(result.failed)} failed")
        return result

    def status_summary(self) -> Dict[str, int]:
        """Count clean, dirty, locked and prunable worktrees in the snapshot."""
        records = self.state_cache.snapshot()
        return {
            "total": len(records),
            "clean": sum(1 for record in records if record.status.clean),
            "dirty": sum(1 for record in records if not record.status.clean),
            "locked": sum(1 for record in records if record.locked),
            "prunable": sum(1 for record in records if record.prunable),
        }
