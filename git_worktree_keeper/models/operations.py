"""Models for worktree creation and bulk operation results."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from git_worktree_keeper.exceptions import ErrorKind


class CreateMode(Enum):
    """How the branch of a new worktree is obtained."""
    EXISTING = "existing"  # Check out a branch that already exists
    NEW_BRANCH = "new-branch"  # Create the branch from HEAD (-b)
    ORPHAN = "orphan"  # Create a branch with no history and no files


@dataclass(frozen=True)
class CreateOptions:
    """Options for creating a single worktree.

    Orphan creation always means a fresh branch, so new-branch and orphan are
    one ``mode`` field rather than two flags.
    """
    mode: CreateMode = CreateMode.EXISTING
    force: bool = False

    @property
    def new_branch(self) -> bool:
        return self.mode is CreateMode.NEW_BRANCH

    @property
    def orphan(self) -> bool:
        return self.mode is CreateMode.ORPHAN

    def with_force(self) -> "CreateOptions":
        return replace(self, force=True)


@dataclass
class ProvisioningError:
    """A branch that could not be provisioned."""
    branch: str
    kind: ErrorKind
    message: str  # Sanitized, for display
    detail: Optional[str] = None  # Raw, for diagnostics

    def __str__(self) -> str:
        return f"{self.branch}: {self.message}"


@dataclass
class ProvisioningOutcome:
    """Result of a bulk provisioning run.

    Every attempted branch lands in exactly one of created/skipped/errors.
    Branches never reached because of cancellation appear in none of them.
    """
    created: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[ProvisioningError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def error_branches(self) -> List[str]:
        return [error.branch for error in self.errors]

    @property
    def attempted(self) -> List[str]:
        return self.created + self.skipped + self.error_branches

    def summary(self) -> str:
        text = f"{len(self.created)} created, {len(self.skipped)} skipped, {len(self.errors)} failed"
        if self.cancelled:
            text += " (cancelled)"
        return text


@dataclass
class BulkOperationResult:
    """Result of a maintenance operation applied across worktrees."""
    completed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (path, message)
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.completed) + len(self.failed)
