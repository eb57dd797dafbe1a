"""Removal of worktrees, including the one the caller is currently using."""

import time
from typing import Callable, Optional

from git_worktree_keeper.config import Config
from git_worktree_keeper.constants import MAIN_WORKTREE_MARKER
from git_worktree_keeper.exceptions import (
    CommandFailed,
    ContextSwitchFailed,
    InternalError,
    MainRepositoryProtected,
)
from git_worktree_keeper.models.worktree import WorktreeRecord
from git_worktree_keeper.services.git.repository import RepositoryLocator
from git_worktree_keeper.services.git.worktrees import WorktreeOperations
from git_worktree_keeper.services.state_cache import StateCache
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.paths import paths_equal
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

# switch_context(path, same_session) -> False if the switch did not happen
SwitchContext = Callable[[str, bool], Optional[bool]]


class RemovalService:
    """Removes linked worktrees and never the main repository checkout."""

    def __init__(
        self,
        main_root: str,
        worktrees: WorktreeOperations,
        locator: RepositoryLocator,
        state_cache: StateCache,
        config: Config,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the removal service.

        Args:
            main_root: Main repository root, which is never removed
            worktrees: Worktree operations used for removal
            locator: Resolves the main worktree to switch to
            state_cache: Source of the caller's context, refreshed after removal
            config: Settle delay after a context switch
            sleep: Function used to wait out the settle delay
        """
        self.main_root = main_root
        self.worktrees = worktrees
        self.locator = locator
        self.state_cache = state_cache
        self.config = config
        self.sleep = sleep

    def remove(
        self,
        worktree_path: str,
        force: bool = False,
        switch_context: Optional[SwitchContext] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Remove a worktree, switching the caller away from it first if needed.

        When the worktree is the caller's current context, switch_context is
        called with the main worktree path and ``same_session=True``, then the
        settle delay is waited out before git removes the directory.

        Args:
            worktree_path: Worktree directory to remove
            force: Remove even if the worktree is dirty or locked
            switch_context: Moves the caller to another path; return False on failure
            cancel: Cancellation token

        Raises:
            MainRepositoryProtected: worktree_path is the main repository
            ContextSwitchFailed: The caller could not be moved off the worktree
            InternalError: The main worktree resolved to the removal target
            GitRunnerError: git failed
        """
        if paths_equal(worktree_path, self.main_root):
            logger.warning(f"Refusing to remove main repository at {worktree_path}")
            raise MainRepositoryProtected(worktree_path)

        if paths_equal(worktree_path, self.state_cache.context_path):
            self._switch_away(worktree_path, switch_context, cancel)

        try:
            self.worktrees.remove_worktree(worktree_path, force=force, cancel=cancel)
        except CommandFailed as e:
            if MAIN_WORKTREE_MARKER in e.stderr:
                raise MainRepositoryProtected(worktree_path) from e
            raise

        self.state_cache.refresh()

    def _switch_away(
        self,
        worktree_path: str,
        switch_context: Optional[SwitchContext],
        cancel: Optional[CancellationToken],
    ) -> WorktreeRecord:
        """Move the caller's context to the main worktree and let it settle."""
        main = self.locator.resolve_main_worktree(
            self.main_root, self.state_cache.snapshot(), self.state_cache.context_path, cancel
        )
        if paths_equal(main.path, worktree_path):
            raise InternalError(
                f"Main worktree resolved to the removal target '{worktree_path}'",
                detail=f"main_root={self.main_root} resolved={main.path}",
            )
        if main.is_synthetic and not main.head_commit:
            logger.warning(f"Main worktree at {main.path} could not be fully inspected, switching anyway")

        if switch_context is None:
            raise ContextSwitchFailed(worktree_path, "the worktree is in use and no context switch is available")

        logger.info(f"Switching context from {worktree_path} to {main.path} before removal")
        if switch_context(main.path, True) is False:
            raise ContextSwitchFailed(worktree_path, f"switching to '{main.path}' was rejected")

        self.state_cache.set_context(main.path)
        logger.debug(f"Waiting {self.config.settle_delay:g}s for the context switch to settle")
        self.sleep(self.config.settle_delay)
        return main
