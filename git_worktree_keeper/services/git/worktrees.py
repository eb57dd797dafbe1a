"""Worktree operations service for git-worktree-keeper."""

import time
from typing import List, Optional

from git_worktree_keeper.exceptions import CommandCancelled, GitRunnerError
from git_worktree_keeper.models.operations import CreateMode, CreateOptions
from git_worktree_keeper.models.worktree import WorktreeRecord, WorktreeStatus
from git_worktree_keeper.services.git.parsing import parse_status, parse_worktree_list
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)


class WorktreeOperations:
    """Service for the git worktree subcommands the engine uses."""

    def __init__(self, repo_root: str, runner: GitRunner):
        """Initialize the worktree operations service.

        Args:
            repo_root: Path to the main repository checkout
            runner: Git runner used for every invocation
        """
        self.repo_root = repo_root
        self.runner = runner

    def list_worktrees(self, cancel: Optional[CancellationToken] = None) -> List[WorktreeRecord]:
        """Get all registered worktrees (without status enrichment).

        Returns:
            WorktreeRecord objects in git's listing order
        """
        output = self.runner.run(["worktree", "list", "--porcelain"], cwd=self.repo_root, cancel=cancel)
        records = parse_worktree_list(output)

        logger.debug(f"Found {len(records)} worktrees")
        for record in records:
            logger.debug(f"  {record}")
        return records

    def add_worktree(
        self,
        branch: str,
        path: str,
        options: CreateOptions = CreateOptions(),
        cancel: Optional[CancellationToken] = None,
        suppress_expected: bool = False,
    ) -> None:
        """Create a worktree at path.

        Args:
            branch: Branch to check out (or create, for new-branch and orphan modes)
            path: Target directory
            options: Creation mode and force flag
            cancel: Cancellation token
            suppress_expected: Log stale-registration failures at debug level

        Raises:
            StaleRegistration: git refused because path or branch is still registered
            GitRunnerError: Any other failure
        """
        force = ["--force"] if options.force else []

        if options.mode is CreateMode.ORPHAN:
            self._add_orphan_worktree(branch, path, force, cancel, suppress_expected)
        elif options.mode is CreateMode.NEW_BRANCH:
            self.runner.run(
                ["worktree", "add", *force, "-b", branch, path],
                cwd=self.repo_root, cancel=cancel, suppress_expected=suppress_expected,
            )
        else:
            self.runner.run(
                ["worktree", "add", *force, path, branch],
                cwd=self.repo_root, cancel=cancel, suppress_expected=suppress_expected,
            )

        logger.info(f"Created worktree for {branch} at {path}")

    def _add_orphan_worktree(
        self,
        branch: str,
        path: str,
        force: List[str],
        cancel: Optional[CancellationToken],
        suppress_expected: bool,
    ) -> None:
        """Create a worktree on a new branch with no history and an empty tree.

        git cannot add a worktree directly on an unborn branch, so the
        worktree is created on a temporary branch first and switched to the
        orphan branch inside it.
        """
        temp_branch = f"temp-{int(time.time() * 1000)}"

        self.runner.run(
            ["worktree", "add", *force, "-b", temp_branch, path],
            cwd=self.repo_root, cancel=cancel, suppress_expected=suppress_expected,
        )
        self.runner.run(["checkout", "--orphan", branch], cwd=path, cancel=cancel)
        self.runner.run(["rm", "-rf", "."], cwd=path, cancel=cancel)
        self.runner.run(["clean", "-fd"], cwd=path, cancel=cancel)

        try:
            self.runner.run(["branch", "-D", temp_branch], cwd=self.repo_root, cancel=cancel, quiet=True)
        except GitRunnerError as e:
            logger.debug(f"Could not delete temporary branch {temp_branch}: {e.summary}")

    def remove_worktree(
        self,
        path: str,
        force: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or locked

        Raises:
            CommandFailed: git refused (e.g. "is a main working tree", dirty tree)
        """
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(path)

        self.runner.run(args, cwd=self.repo_root, cancel=cancel, suppress_expected=True)
        logger.info(f"Removed worktree at {path}")

    def prune_worktrees(self, cancel: Optional[CancellationToken] = None) -> bool:
        """Prune stale worktree registrations (best effort).

        Returns:
            True if git pruned without error
        """
        try:
            self.runner.run(["worktree", "prune"], cwd=self.repo_root, cancel=cancel, quiet=True)
        except CommandCancelled:
            raise
        except GitRunnerError as e:
            logger.debug(f"Could not prune worktrees: {e.summary}")
            return False
        logger.debug("Pruned stale worktree registrations")
        return True

    def get_status(self, path: str, cancel: Optional[CancellationToken] = None) -> WorktreeStatus:
        """Get working tree change counts for a worktree.

        Raises:
            GitRunnerError: status could not be read
        """
        return parse_status(self.runner.run(["status", "--porcelain"], cwd=path, cancel=cancel, quiet=True))

    def current_branch(self, path: str, cancel: Optional[CancellationToken] = None) -> Optional[str]:
        """Get the branch checked out in a worktree (None when detached)."""
        branch = self.runner.run(["branch", "--show-current"], cwd=path, cancel=cancel, quiet=True).strip()
        return branch or None

    def reset_hard(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        """Discard staged and unstaged changes to tracked files."""
        self.runner.run(["reset", "--hard"], cwd=path, cancel=cancel)

    def clean(self, path: str, cancel: Optional[CancellationToken] = None) -> None:
        """Remove untracked files and directories."""
        self.runner.run(["clean", "-fd"], cwd=path, cancel=cancel)
