"""Worktree state cache with single-flight refresh and change notification."""

import copy
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Callable, List, Optional

from git_worktree_keeper.exceptions import CommandCancelled, WorktreeKeeperError
from git_worktree_keeper.models.worktree import WorktreeRecord, WorktreeStatus
from git_worktree_keeper.services.git.worktrees import WorktreeOperations
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.paths import paths_equal
from git_worktree_keeper.utils.threading import CancellationToken, get_optimal_worker_count

logger = get_logger(__name__)

Listener = Callable[[List[WorktreeRecord]], None]


class StateCache:
    """Holds the current worktree snapshot for one repository.

    The snapshot is only ever replaced as a whole, and callers receive
    copies, so a record held by a caller never changes underneath it.
    """

    def __init__(
        self,
        main_root: str,
        worktrees: WorktreeOperations,
        context_path: Optional[str] = None,
        workers: Optional[int] = None,
    ):
        """Initialize the state cache.

        Args:
            main_root: Main repository root, used to flag the main record
            worktrees: Worktree operations used to list and inspect worktrees
            context_path: The caller's current working context
            workers: Enrichment thread count (None = auto-detect)
        """
        self.main_root = main_root
        self.worktrees = worktrees
        self.workers = workers

        self._context_path = context_path
        self._snapshot: List[WorktreeRecord] = []
        self._snapshot_lock = Lock()
        self._refresh_lock = Lock()
        self._token: Optional[CancellationToken] = None
        self._listeners: List[Listener] = []
        self._listeners_lock = Lock()
        self._disposed = False

    @property
    def context_path(self) -> Optional[str]:
        return self._context_path

    def set_context(self, path: Optional[str]) -> None:
        """Update the caller's current context; applied on the next refresh."""
        logger.debug(f"Context changed to {path}")
        self._context_path = path

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_lock.locked()

    def snapshot(self) -> List[WorktreeRecord]:
        """Get a copy of the current worktree records."""
        with self._snapshot_lock:
            return copy.deepcopy(self._snapshot)

    def find(self, path: str) -> Optional[WorktreeRecord]:
        """Get a copy of the snapshot record for path, if any."""
        for record in self.snapshot():
            if paths_equal(record.path, path):
                return record
        return None

    def on_change(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the snapshot after each refresh.

        Returns:
            A callable that unregisters the listener
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> bool:
        """Rebuild the snapshot from git.

        A refresh requested while another is running returns immediately
        without queueing or notifying. A failed refresh keeps the previous
        snapshot and notifies listeners with it; a cancelled one returns
        silently.

        Returns:
            True if the snapshot was replaced
        """
        if self._disposed:
            logger.debug("Refresh requested after dispose, ignoring")
            return False

        if not self._refresh_lock.acquire(blocking=False):
            logger.debug("Refresh already in progress, skipping")
            return False

        try:
            if self._token is not None:
                self._token.cancel()
            token = CancellationToken()
            self._token = token

            try:
                records = self.worktrees.list_worktrees(cancel=token)
                self._enrich(records, token)
            except CommandCancelled:
                logger.debug("Refresh cancelled")
                return False
            except WorktreeKeeperError as e:
                logger.error(f"Failed to refresh worktrees: {e.summary}")
                logger.debug(f"Refresh failure detail: {e.detail}")
                self._notify(self.snapshot())
                return False

            self._mark(records)
            with self._snapshot_lock:
                self._snapshot = records
            logger.debug(f"Snapshot replaced with {len(records)} worktrees")

            self._notify(self.snapshot())
            return True
        finally:
            self._refresh_lock.release()

    def _enrich(self, records: List[WorktreeRecord], token: CancellationToken) -> None:
        """Fill in status and current branch for each record concurrently."""
        targets = [record for record in records if not record.bare]
        if not targets:
            return

        max_workers = get_optimal_worker_count(self.workers)
        logger.debug(f"Enriching {len(targets)} worktrees with {max_workers} workers")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                (
                    record,
                    executor.submit(self.worktrees.get_status, record.path, token),
                    executor.submit(self.worktrees.current_branch, record.path, token),
                )
                for record in targets
            ]

            cancelled = False
            for record, status_future, branch_future in futures:
                try:
                    record.status = status_future.result()
                    branch = branch_future.result()
                except CommandCancelled:
                    cancelled = True
                    continue
                except WorktreeKeeperError as e:
                    logger.warning(f"Could not read state of worktree {record.display_name}: {e.summary}")
                    record.status = WorktreeStatus.unknown()
                    continue

                record.branch = branch
                record.detached = branch is None

        if cancelled:
            raise CommandCancelled("worktree enrichment")

    def _mark(self, records: List[WorktreeRecord]) -> None:
        """Flag the main and active records."""
        active_found = False
        for record in records:
            record.is_main = paths_equal(record.path, self.main_root)
            record.is_active = not active_found and paths_equal(record.path, self._context_path)
            active_found = active_found or record.is_active

    def _notify(self, records: List[WorktreeRecord]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(records)
            except Exception as e:
                logger.error(f"Worktree change listener failed: {e}")

    def dispose(self) -> None:
        """Cancel any in-flight refresh and drop all listeners."""
        self._disposed = True
        if self._token is not None:
            self._token.cancel()
        with self._listeners_lock:
            self._listeners.clear()
        logger.debug("State cache disposed")
