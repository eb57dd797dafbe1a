"""Custom exceptions for git-worktree-keeper"""

from enum import Enum
from typing import Optional

from git_worktree_keeper.constants import (
    EXPECTED_FAILURE_MARKERS,
    INSTALL_GIT_MESSAGE,
    STALE_REGISTRATION_MARKERS,
)


class ErrorKind(Enum):
    """Classification of engine failures."""
    EXECUTABLE_NOT_FOUND = "executable-not-found"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    COMMAND_FAILED = "command-failed"
    STALE_REGISTRATION = "stale-registration"
    MAIN_REPOSITORY_PROTECTED = "main-repository-protected"
    PATH_ALREADY_EXISTS = "path-already-exists"
    NOT_A_REPOSITORY = "not-a-repository"
    CONTEXT_SWITCH_FAILED = "context-switch-failed"
    INTERNAL = "internal"
    CONFIG = "config"


def is_expected_failure(stderr: Optional[str]) -> bool:
    """Check whether stderr describes a failure callers retry or suppress."""
    return bool(stderr) and any(marker in stderr for marker in EXPECTED_FAILURE_MARKERS)


def is_stale_registration(stderr: Optional[str]) -> bool:
    """Check whether stderr describes a stale or already-claimed worktree registration."""
    return bool(stderr) and any(marker in stderr for marker in STALE_REGISTRATION_MARKERS)


class WorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors.

    Attributes:
        summary: Sanitized message suitable for showing to a user
        detail: Raw diagnostic detail (stderr, paths, exit codes)
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, summary: str, detail: Optional[str] = None):
        self.summary = summary
        self.detail = detail if detail is not None else summary
        super().__init__(summary)


class GitRunnerError(WorktreeKeeperError):
    """Exception raised when a git invocation does not complete successfully."""

    def __init__(self, command: str, summary: str, detail: Optional[str] = None):
        self.command = command
        super().__init__(summary, detail)


class ExecutableNotFound(GitRunnerError):
    """Exception raised when the git executable cannot be started."""

    kind = ErrorKind.EXECUTABLE_NOT_FOUND

    def __init__(self, command: str, detail: Optional[str] = None):
        super().__init__(command, INSTALL_GIT_MESSAGE, detail)


class CommandTimeout(GitRunnerError):
    """Exception raised when a git invocation exceeds its timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, command: str, timeout: float):
        self.timeout = timeout
        super().__init__(command, f"Git command timed out after {timeout:g}s: {command}")


class CommandCancelled(GitRunnerError):
    """Exception raised when a git invocation is cancelled through its token.

    Never shown to users; callers treat it as a silent early return.
    """

    kind = ErrorKind.CANCELLED

    def __init__(self, command: str):
        super().__init__(command, f"Git command cancelled: {command}")


class CommandFailed(GitRunnerError):
    """Exception raised when git exits with a non-zero status."""

    kind = ErrorKind.COMMAND_FAILED

    def __init__(self, command: str, stderr: str = "", exit_status: Optional[int] = None):
        self.stderr = stderr
        self.exit_status = exit_status

        if stderr:
            # First non-empty line is usually the "fatal: ..." summary
            first_line = next((line for line in stderr.splitlines() if line.strip()), stderr)
            summary = f"Git error: {first_line.strip()}"
            detail = f"{command} failed (exit {exit_status}): {stderr}"
        else:
            summary = f"Git command '{command}' failed with exit code {exit_status}"
            detail = summary

        super().__init__(command, summary, detail)

    @property
    def is_expected(self) -> bool:
        """True when this failure is one callers retry or suppress."""
        return is_expected_failure(self.stderr)


class StaleRegistration(CommandFailed):
    """Exception raised when a worktree registration is stale or already claimed (retryable)."""

    kind = ErrorKind.STALE_REGISTRATION


class MainRepositoryProtected(WorktreeKeeperError):
    """Exception raised when attempting to remove the main repository working tree."""

    kind = ErrorKind.MAIN_REPOSITORY_PROTECTED

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"'{path}' is the main repository and cannot be removed. "
            "Only linked worktrees can be removed."
        )


class PathAlreadyExists(WorktreeKeeperError):
    """Exception raised when a worktree target directory already exists."""

    kind = ErrorKind.PATH_ALREADY_EXISTS

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path already exists: {path}")


class NotARepository(WorktreeKeeperError):
    """Exception raised when a path is not inside a git repository."""

    kind = ErrorKind.NOT_A_REPOSITORY

    def __init__(self, path: str, detail: Optional[str] = None):
        self.path = path
        super().__init__(f"Not a git repository: {path}", detail)


class ContextSwitchFailed(WorktreeKeeperError):
    """Exception raised when the caller could not switch away from a worktree before removal."""

    kind = ErrorKind.CONTEXT_SWITCH_FAILED

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Could not switch away from '{path}' before removal: {reason}")


class InternalError(WorktreeKeeperError):
    """Exception raised when engine state contradicts one of its own guarantees."""

    kind = ErrorKind.INTERNAL


class ConfigError(WorktreeKeeperError, ValueError):
    """Exception raised for invalid configuration values."""

    kind = ErrorKind.CONFIG
