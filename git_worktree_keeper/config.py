"""Configuration handling for git-worktree-keeper"""

import getpass
import json
import os
import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from git_worktree_keeper.constants import (
    DEFAULT_GIT_TIMEOUT,
    DEFAULT_REMOTE,
    DEFAULT_SETTLE_DELAY,
    UNSAFE_NAME_CHARACTERS,
)
from git_worktree_keeper.exceptions import ConfigError

SORT_CHOICES = ["name", "branch", "last_modified"]


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Where new worktrees go ("" = next to the main repository)
    default_location: str = ""
    worktree_name_pattern: str = "{branchName}"  # {branchName}, {timestamp}, {username}
    exclude_branches: List[str] = field(default_factory=lambda: ["HEAD", "refs/stash"])
    remote_name: str = DEFAULT_REMOTE

    # Process runner
    git_timeout: int = DEFAULT_GIT_TIMEOUT  # seconds
    workers: Optional[int] = None  # Probe thread pool size (None = auto-detect)

    # Removal of the active worktree waits this long after switching away
    settle_delay: float = DEFAULT_SETTLE_DELAY

    # Display preferences (applied by the CLI, not the engine)
    max_worktrees: int = 20
    sort_by: str = "name"

    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_git_timeout()
        self._validate_max_worktrees()
        self._validate_settle_delay()
        self._validate_name_pattern()
        self._validate_exclude_branches()
        self._validate_remote_name()
        self._validate_sort_by()
        self._validate_workers()

    def _validate_git_timeout(self):
        """Validate git_timeout is within 5..120 seconds."""
        if not 5 <= self.git_timeout <= 120:
            raise ConfigError(f"git_timeout must be between 5 and 120 seconds, got {self.git_timeout}")

    def _validate_max_worktrees(self):
        """Validate max_worktrees is within 1..100."""
        if not 1 <= self.max_worktrees <= 100:
            raise ConfigError(f"max_worktrees must be between 1 and 100, got {self.max_worktrees}")

    def _validate_settle_delay(self):
        if self.settle_delay < 0:
            raise ConfigError(f"settle_delay cannot be negative, got {self.settle_delay}")

    def _validate_name_pattern(self):
        """Validate worktree_name_pattern is not empty."""
        if not self.worktree_name_pattern or not self.worktree_name_pattern.strip():
            raise ConfigError("worktree_name_pattern cannot be empty")
        self.worktree_name_pattern = self.worktree_name_pattern.strip()

    def _validate_exclude_branches(self):
        if not isinstance(self.exclude_branches, list):
            raise ConfigError("exclude_branches must be a list")

    def _validate_remote_name(self):
        if not self.remote_name or not self.remote_name.strip():
            raise ConfigError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()

    def _validate_sort_by(self):
        """Validate sort_by is one of allowed values."""
        if self.sort_by not in SORT_CHOICES:
            raise ConfigError(f"sort_by must be one of {SORT_CHOICES}, got '{self.sort_by}'")

    def _validate_workers(self):
        if self.workers is not None and self.workers <= 0:
            raise ConfigError(f"workers must be positive, got {self.workers}")

    def generate_worktree_name(self, branch_name: str, now: Optional[datetime] = None) -> str:
        """Generate a worktree directory name from the configured pattern.

        Args:
            branch_name: Logical branch name (remote prefix already stripped)
            now: Timestamp to use for {timestamp} (defaults to current time)

        Returns:
            Directory name safe for the filesystem

        Example:
            "{branchName}-{username}" with branch "feat/login" -> "feat-login-alice"
        """
        now = now or datetime.now()
        timestamp = now.strftime("%Y-%m-%dT%H-%M-%S")
        name = (
            self.worktree_name_pattern
            .replace("{branchName}", branch_name)
            .replace("{timestamp}", timestamp)
            .replace("{username}", _current_username())
        )
        return re.sub(UNSAFE_NAME_CHARACTERS, "-", name)

    def worktree_location(self, repo_root: str) -> str:
        """Directory new worktrees are created in."""
        if self.default_location:
            location = os.path.expanduser(self.default_location)
            if os.path.isdir(location):
                return location
        return os.path.dirname(os.path.abspath(repo_root))

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_file(cls, path: Union[str, Path], **overrides) -> "Config":
        """Load configuration from a JSON file.

        Args:
            path: Path to a JSON object of config values
            **overrides: Values that win over the file (e.g. from CLI flags)
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)


def _current_username() -> str:
    try:
        return getpass.getuser()
    except Exception:
        # getpass raises when no login name is available (e.g. some containers)
        return os.environ.get("USER") or os.environ.get("USERNAME") or "user"
