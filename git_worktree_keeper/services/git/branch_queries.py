"""Branch query service for git-worktree-keeper."""

from typing import List, Optional

from git_worktree_keeper.constants import DEFAULT_REMOTE
from git_worktree_keeper.services.git.parsing import parse_branch_list
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

BRANCH_FORMAT = "--format=%(refname:short)"


class BranchQueries:
    """Service for querying local and remote-tracking branches."""

    def __init__(self, repo_root: str, runner: GitRunner, remote_name: str = DEFAULT_REMOTE):
        """Initialize the branch queries service.

        Args:
            repo_root: Path to the git repository
            runner: Git runner used for every invocation
            remote_name: Remote whose branches carry the ``<remote>/`` prefix
        """
        self.repo_root = repo_root
        self.runner = runner
        self.remote_name = remote_name

        logger.debug("Branch queries service initialized")

    def list_branches(self, cancel: Optional[CancellationToken] = None) -> List[str]:
        """Get local branches and remote-tracking branches.

        Returns:
            Branch refs in git's listing order; remote ones carry the remote prefix
        """
        output = self.runner.run(["branch", "-a", BRANCH_FORMAT], cwd=self.repo_root, cancel=cancel)
        branches = parse_branch_list(output, self.remote_name)
        logger.debug(f"Found {len(branches)} branches")
        return branches

    def list_remote_branches(
        self,
        remote: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[str]:
        """Get remote-tracking branches of one remote."""
        remote = remote or self.remote_name
        output = self.runner.run(["branch", "-r", BRANCH_FORMAT], cwd=self.repo_root, cancel=cancel)
        prefix = f"{remote}/"
        return [branch for branch in parse_branch_list(output, remote) if branch.startswith(prefix)]

    def fetch(self, remote: Optional[str] = None, cancel: Optional[CancellationToken] = None) -> None:
        """Fetch a remote, pruning deleted remote-tracking branches.

        Raises:
            CommandFailed: The fetch failed (e.g. unknown remote, network error)
        """
        remote = remote or self.remote_name
        self.runner.run(["fetch", "--prune", remote], cwd=self.repo_root, cancel=cancel)
        logger.info(f"Fetched {remote}")

    def discover_remote_branches(
        self,
        remote: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[str]:
        """Fetch a remote and report the remote branches that appeared.

        Args:
            remote: Remote name (defaults to the configured remote)
            cancel: Cancellation token

        Returns:
            Remote-tracking refs present after the fetch but not before it
        """
        remote = remote or self.remote_name
        before = set(self.list_remote_branches(remote, cancel))
        self.fetch(remote, cancel)
        after = self.list_remote_branches(remote, cancel)

        new_branches = [branch for branch in after if branch not in before]
        logger.info(f"Discovered {len(new_branches)} new branches on {remote}")
        return new_branches
