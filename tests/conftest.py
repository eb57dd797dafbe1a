"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import git
import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import CommandCancelled
from git_worktree_keeper.services.git import GitRunner


@dataclass
class Call:
    """One git invocation recorded by FakeRunner."""
    args: Tuple[str, ...]
    cwd: Optional[str]
    suppress_expected: bool


@dataclass
class Handler:
    prefix: Tuple[str, ...]
    stdout: str = ""
    error: Optional[Exception] = None
    side_effect: Optional[Callable] = None
    times: Optional[int] = None


class FakeRunner:
    """Stands in for GitRunner: records calls and answers from registered handlers.

    Handlers match on an argument prefix; the longest matching prefix wins
    and later registrations override earlier ones. A handler registered with
    ``times`` stops matching once used up.
    Unmatched commands succeed with empty output.
    """

    def __init__(self, log: Optional[list] = None):
        self.timeout = 30
        self.calls: List[Call] = []
        self.log = log if log is not None else []
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def on(self, *prefix, stdout="", error=None, side_effect=None, times=None) -> "FakeRunner":
        self._handlers.append(Handler(tuple(prefix), stdout, error, side_effect, times))
        return self

    def _match(self, args: Tuple[str, ...]) -> Optional[Handler]:
        candidates = [
            handler for handler in self._handlers
            if args[:len(handler.prefix)] == handler.prefix and handler.times != 0
        ]
        if not candidates:
            return None
        handler = max(reversed(candidates), key=lambda h: len(h.prefix))
        if handler.times is not None:
            handler.times -= 1
        return handler

    def run(self, args, cwd=None, timeout=None, cancel=None, suppress_expected=False, quiet=False):
        args = tuple(args)
        with self._lock:
            self.calls.append(Call(args, cwd, suppress_expected))
            self.log.append(("git",) + args)
            handler = self._match(args)

        if cancel is not None and cancel.is_cancelled:
            raise CommandCancelled("git " + " ".join(args))
        if handler is None:
            return ""
        if handler.side_effect is not None:
            result = handler.side_effect(args, cwd)
            if result is not None:
                return result
        if handler.error is not None:
            raise handler.error
        return handler.stdout

    def git_version(self, cancel=None):
        return "2.43.0"

    def commands(self, *prefix) -> List[Call]:
        """Recorded calls whose arguments start with prefix."""
        with self._lock:
            return [call for call in self.calls if call.args[:len(prefix)] == prefix]


def porcelain(*entries) -> str:
    """Build ``git worktree list --porcelain`` output.

    Each entry is (path, branch) or (path, branch, extra_lines); a branch of
    None makes the entry detached.
    """
    blocks = []
    for index, entry in enumerate(entries):
        path, branch = entry[0], entry[1]
        extra = list(entry[2]) if len(entry) > 2 else []
        lines = [f"worktree {path}", f"HEAD {index + 1:040d}"]
        lines.append(f"branch refs/heads/{branch}" if branch else "detached")
        lines.extend(extra)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Create a Git repository with local branches feature/login and bugfix/crash."""
    repo = git_repo
    repo_path = Path(repo.working_dir)

    repo.git.checkout("-b", "feature/login")
    (repo_path / "login.txt").write_text("Login\n")
    repo.index.add(["login.txt"])
    repo.index.commit("Add login")

    repo.git.checkout("main")
    repo.git.branch("bugfix/crash")

    yield repo


@pytest.fixture
def git_repo_with_remote(git_repo_with_branches, temp_dir):
    """Repository whose origin has feature/login plus remote-only feature/search."""
    repo = git_repo_with_branches
    origin_path = temp_dir / "origin.git"
    git.Repo.init(origin_path, bare=True).close()

    repo.create_remote("origin", str(origin_path))
    repo.git.branch("feature/search")
    repo.git.push("origin", "main", "feature/login", "feature/search")
    repo.git.branch("-D", "feature/search")

    yield repo


@pytest.fixture
def config():
    """Default configuration without any settle delay."""
    return Config(settle_delay=0)


@pytest.fixture
def runner():
    """Real git runner."""
    return GitRunner()


@pytest.fixture
def keeper(git_repo_with_branches, config):
    """WorktreeKeeper on a real repository."""
    sleeps = []
    with WorktreeKeeper(git_repo_with_branches.working_dir, config, sleep=sleeps.append) as instance:
        instance.sleeps = sleeps
        yield instance


@pytest.fixture
def fake_root(temp_dir):
    """A directory standing in for a repository root when git is faked."""
    root = temp_dir / "repo"
    root.mkdir()
    return str(root)


@pytest.fixture
def fake_runner(fake_root):
    """FakeRunner that answers the repository root probes for fake_root."""
    fake = FakeRunner()
    fake.on("rev-parse", "--git-common-dir", stdout=".git\n")
    fake.on("rev-parse", "--show-toplevel", stdout=fake_root + "\n")
    fake.on("worktree", "list", stdout=porcelain((fake_root, "main")))
    fake.on("branch", "--show-current", stdout="main\n")
    return fake


@pytest.fixture
def make_fake_keeper(fake_root, fake_runner):
    """Factory for a WorktreeKeeper driven by fake_runner."""
    def factory(config: Optional[Config] = None, context_path: Optional[str] = None, sleep=None):
        return WorktreeKeeper(
            fake_root,
            config or Config(settle_delay=0),
            runner=fake_runner,
            context_path=context_path,
            sleep=sleep or (lambda seconds: None),
        )
    return factory
