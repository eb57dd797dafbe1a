"""Git process runner for git-worktree-keeper.

Every git invocation made by the engine goes through ``GitRunner.run`` so that
executable lookup, timeouts, cancellation and failure classification behave
the same everywhere.
"""

import os
import re
import subprocess
import time
from threading import Lock
from typing import List, Optional, Sequence, Tuple

import git
from git.exc import GitCommandNotFound

from git_worktree_keeper.constants import (
    DEFAULT_GIT_TIMEOUT,
    EXECUTABLE_PROBE_TIMEOUT,
    GIT_EXECUTABLE_CANDIDATES,
)
from git_worktree_keeper.exceptions import (
    CommandCancelled,
    CommandFailed,
    CommandTimeout,
    ExecutableNotFound,
    GitRunnerError,
    StaleRegistration,
    is_expected_failure,
    is_stale_registration,
)
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.threading import CancellationToken

logger = get_logger(__name__)

POLL_INTERVAL = 0.05  # seconds between cancellation checks while git runs


def mask_args(args: Sequence[str]) -> List[str]:
    """Mask absolute paths down to their basename for log output."""
    return [os.path.basename(arg.rstrip("/\\")) if os.path.isabs(arg) else arg for arg in args]


class GitRunner:
    """Runs git subcommands through GitPython and classifies their failures."""

    def __init__(
        self,
        timeout: float = DEFAULT_GIT_TIMEOUT,
        candidates: Sequence[str] = GIT_EXECUTABLE_CANDIDATES,
        executable: Optional[str] = None,
    ):
        """Initialize the runner.

        Args:
            timeout: Default per-command timeout in seconds
            candidates: Executables tried in order when resolving git
            executable: Pin a specific executable and skip resolution
        """
        self.timeout = timeout
        self.candidates = tuple(candidates)
        self._executable = executable
        self._executable_lock = Lock()

    @property
    def executable(self) -> str:
        """The git executable, resolved on first use and cached afterwards."""
        with self._executable_lock:
            if self._executable is None:
                self._executable = self._find_executable()
            return self._executable

    def _find_executable(self) -> str:
        """Find the git executable with fallback locations.

        Falls back to the bare name "git" so a missing install surfaces later
        as ExecutableNotFound instead of failing here.
        """
        for candidate in self.candidates:
            try:
                self._execute([candidate, "--version"], None, EXECUTABLE_PROBE_TIMEOUT, None)
                logger.debug(f"Using git executable: {candidate}")
                return candidate
            except (GitCommandNotFound, GitRunnerError, OSError) as e:
                logger.debug(f"Git executable candidate {candidate} is not usable: {e}")

        logger.warning('Could not find Git executable, using default "git"')
        return "git"

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
        suppress_expected: bool = False,
        quiet: bool = False,
    ) -> str:
        """Run a git subcommand and return its stdout.

        Args:
            args: Arguments after the executable, e.g. ["worktree", "list"]
            cwd: Working directory for the command
            timeout: Seconds before the command is killed (defaults to runner timeout)
            cancel: Token checked before and while the command runs
            suppress_expected: Log expected failures (stale registrations,
                main working tree refusals) at debug level instead of error
            quiet: Log every failure at debug level (for probes that may fail)

        Returns:
            The command's stdout

        Raises:
            CommandCancelled: The token fired before or during the command
            CommandTimeout: The command exceeded its timeout
            ExecutableNotFound: git could not be started
            StaleRegistration: git refused because of a stale worktree registration
            CommandFailed: git exited with a non-zero status
        """
        display = "git " + " ".join(mask_args(args))
        timeout = self.timeout if timeout is None else timeout

        if cancel is not None and cancel.is_cancelled:
            logger.debug(f"Git command cancelled before start: {display}")
            raise CommandCancelled(display)

        if cwd is not None and not os.path.isdir(cwd):
            # Popen reports a missing cwd as FileNotFoundError, which would
            # otherwise read as a missing executable
            message = f"cannot change to '{cwd}': No such file or directory"
            self._log_failure(display, message, quiet)
            raise CommandFailed(display, stderr=message)

        logger.debug(f"Executing git command: {display}")

        try:
            status, stdout, stderr = self._execute([self.executable, *args], cwd, timeout, cancel, display)
        except GitCommandNotFound as e:
            logger.error(f"Git executable not found while running: {display}")
            raise ExecutableNotFound(display, detail=str(e)) from e
        except CommandCancelled:
            logger.debug(f"Git command cancelled: {display}")
            raise
        except CommandTimeout as e:
            self._log_failure(display, e.summary, quiet)
            raise

        stderr = stderr.strip()
        if status != 0:
            if quiet or (suppress_expected and is_expected_failure(stderr)):
                logger.debug(f"Git command failed (expected): {display}: {stderr}")
            else:
                self._log_failure(display, f"exit {status}: {stderr}", quiet)
            error_class = StaleRegistration if is_stale_registration(stderr) else CommandFailed
            raise error_class(display, stderr=stderr, exit_status=status)

        if stderr:
            logger.debug(f"Git command stderr: {stderr}")
        return stdout

    def git_version(self, cancel: Optional[CancellationToken] = None) -> str:
        """Get the git version, e.g. "2.43.0"."""
        output = self.run(["--version"], cancel=cancel)
        match = re.search(r"git version ([\d.]+)", output)
        return match.group(1).rstrip(".") if match else output.strip()

    @staticmethod
    def _log_failure(display: str, message: str, quiet: bool) -> None:
        if quiet:
            logger.debug(f"Git command failed: {display}: {message}")
        else:
            logger.error(f"Git command failed: {display}: {message}")

    def _execute(
        self,
        command: List[str],
        cwd: Optional[str],
        timeout: float,
        cancel: Optional[CancellationToken],
        display: Optional[str] = None,
    ) -> Tuple[int, str, str]:
        """Start git through GitPython and wait for it, honouring timeout and cancel."""
        display = display or " ".join(mask_args(command))
        handle = git.Git(cwd).execute(command, as_process=True, universal_newlines=True)
        proc = handle.proc
        deadline = time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_cancelled:
                self._kill(proc)
                raise CommandCancelled(display)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._kill(proc)
                raise CommandTimeout(display, timeout)

            try:
                stdout, stderr = proc.communicate(timeout=min(POLL_INTERVAL, remaining))
            except subprocess.TimeoutExpired:
                continue
            return proc.returncode, stdout or "", stderr or ""

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        """Kill a running git process and release its pipes."""
        try:
            proc.kill()
            proc.wait(timeout=EXECUTABLE_PROBE_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Error stopping git process {proc.pid}: {e}")
        for stream in (proc.stdout, proc.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
