"""Repository discovery and main worktree resolution."""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from git_worktree_keeper.exceptions import CommandFailed, GitRunnerError, NotARepository
from git_worktree_keeper.models.worktree import WorktreeRecord, WorktreeStatus
from git_worktree_keeper.services.git.parsing import parse_status
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.paths import paths_equal
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

FALLBACK_BRANCH = "main"


class RepositoryLocator:
    """Finds repository roots and the main worktree record."""

    def __init__(self, runner: GitRunner):
        """Initialize the locator.

        Args:
            runner: Git runner used for all probes
        """
        self.runner = runner

    def is_repository(self, path: str) -> bool:
        """Check whether path is inside a git repository."""
        if not path or not os.path.isdir(path):
            return False
        try:
            self.runner.run(["rev-parse", "--git-dir"], cwd=path, quiet=True)
            return True
        except GitRunnerError as e:
            logger.debug(f"{path} is not a git repository: {e.summary}")
            return False

    def repository_root(self, path: str) -> str:
        """Get the top-level directory of the checkout containing path.

        For a path inside a linked worktree this is the worktree's root, not
        the main repository's.

        Raises:
            NotARepository: path is not inside a git checkout
        """
        if not path or not os.path.isdir(path):
            raise NotARepository(path or "")
        try:
            output = self.runner.run(["rev-parse", "--show-toplevel"], cwd=path, quiet=True)
        except CommandFailed as e:
            raise NotARepository(path, e.detail) from e
        root = output.strip()
        if not root:
            raise NotARepository(path, "git rev-parse --show-toplevel returned nothing")
        return os.path.normpath(root)

    def main_repository_root(self, path: str) -> str:
        """Get the main checkout root, even when path is inside a linked worktree.

        The common git dir of every worktree is the main checkout's ``.git``
        directory, so its parent is the main root. Bare repositories and
        separate git dirs fall back to ``repository_root``.

        Raises:
            NotARepository: path is not inside a git checkout
        """
        if not path or not os.path.isdir(path):
            raise NotARepository(path or "")
        try:
            output = self.runner.run(["rev-parse", "--git-common-dir"], cwd=path, quiet=True)
        except CommandFailed as e:
            raise NotARepository(path, e.detail) from e

        common_dir = output.strip()
        if common_dir:
            # Relative to the directory the command ran in
            common_dir = os.path.normpath(os.path.join(os.path.abspath(path), common_dir))
            if os.path.basename(common_dir) == ".git":
                return os.path.dirname(common_dir)

        logger.debug(f"Common git dir '{common_dir}' is not a .git directory, using show-toplevel")
        return self.repository_root(path)

    def find_repository(self, candidates: Iterable[str]) -> Optional[str]:
        """Return the main root of the first candidate folder inside a repository."""
        for candidate in candidates:
            if not self.is_repository(candidate):
                continue
            try:
                return self.main_repository_root(candidate)
            except NotARepository as e:
                logger.debug(f"Skipping candidate {candidate}: {e.summary}")
        return None

    def resolve_main_worktree(
        self,
        main_root: str,
        snapshot: List[WorktreeRecord],
        context_path: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> WorktreeRecord:
        """Return the record for the main repository checkout.

        Uses the snapshot record for main_root when there is one. Otherwise a
        synthetic record is built from three concurrent probes (current
        branch, HEAD commit, status); a failed probe falls back to branch
        "main", an empty HEAD and a clean status. Never raises.

        Args:
            main_root: Main repository root directory
            snapshot: Current worktree records
            context_path: Caller's current context, for ``is_active``
            cancel: Token passed on to the probes

        Returns:
            The main worktree record
        """
        for record in snapshot:
            if paths_equal(record.path, main_root):
                return record

        logger.debug(f"Main repository {main_root} not in worktree listing, synthesizing record")

        with ThreadPoolExecutor(max_workers=3) as executor:
            branch_future = executor.submit(self._probe_branch, main_root, cancel)
            head_future = executor.submit(self._probe_head, main_root, cancel)
            status_future = executor.submit(self._probe_status, main_root, cancel)
            branch = branch_future.result()
            head = head_future.result()
            status = status_future.result()

        return WorktreeRecord(
            path=os.path.normpath(main_root),
            head_commit=head,
            branch=branch,
            status=status,
            is_active=paths_equal(context_path, main_root),
            is_main=True,
            is_synthetic=True,
        )

    def _probe_branch(self, root: str, cancel: Optional[CancellationToken]) -> str:
        try:
            branch = self.runner.run(["branch", "--show-current"], cwd=root, cancel=cancel, quiet=True).strip()
        except GitRunnerError as e:
            logger.warning(f"Could not read current branch of {root}: {e.summary}")
            return FALLBACK_BRANCH
        return branch or FALLBACK_BRANCH

    def _probe_head(self, root: str, cancel: Optional[CancellationToken]) -> str:
        try:
            return self.runner.run(["rev-parse", "HEAD"], cwd=root, cancel=cancel, quiet=True).strip()
        except GitRunnerError as e:
            logger.warning(f"Could not read HEAD of {root}: {e.summary}")
            return ""

    def _probe_status(self, root: str, cancel: Optional[CancellationToken]) -> WorktreeStatus:
        try:
            return parse_status(self.runner.run(["status", "--porcelain"], cwd=root, cancel=cancel, quiet=True))
        except GitRunnerError as e:
            logger.warning(f"Could not read status of {root}: {e.summary}")
            return WorktreeStatus()
