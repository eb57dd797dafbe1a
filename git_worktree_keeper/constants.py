"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


# Candidate git executables, tried in order when the runner resolves one
GIT_EXECUTABLE_CANDIDATES = (
    "git",
    "/usr/bin/git",
    "/usr/local/bin/git",
    "/opt/homebrew/bin/git",  # Apple Silicon Homebrew
    "/opt/local/bin/git",  # MacPorts
)

DEFAULT_GIT_TIMEOUT = 30  # seconds
EXECUTABLE_PROBE_TIMEOUT = 5.0  # seconds
DEFAULT_SETTLE_DELAY = 2.0  # seconds
DEFAULT_REMOTE = "origin"


# stderr fragments that mean a worktree registration is stale or claimed;
# creation is retried once with --force when one of these shows up
STALE_REGISTRATION_MARKERS = (
    "already used by worktree",
    "missing but already registered",
    "already registered worktree",
)

MAIN_WORKTREE_MARKER = "is a main working tree"

# Failures callers may legitimately hit and handle themselves
EXPECTED_FAILURE_MARKERS = STALE_REGISTRATION_MARKERS + (MAIN_WORKTREE_MARKER,)


INSTALL_GIT_MESSAGE = (
    "Git is not installed or not found in PATH. "
    "Please install Git and make sure it is available in your PATH."
)


# Characters that are not allowed in worktree directory names
UNSAFE_NAME_CHARACTERS = r'[<>:"/\\|?*]'


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


WORKTREE_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("name", "Worktree", 24),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("head", "HEAD", 9),
    ColumnDefinition("changes", "Changes", 12),
    ColumnDefinition("flags", "Flags", 8),
    ColumnDefinition("path", "Path"),
]


# Symbol constants
SYMBOL_ACTIVE = "@"
SYMBOL_MAIN = "*"
SYMBOL_LOCKED = "L"
SYMBOL_PRUNABLE = "P"
SYMBOL_UNKNOWN = "⚠"


# CLI colors (Rich color names)
class WorktreeStyleType:
    """Style types for worktree rows."""

    ACTIVE = "active"
    MAIN = "main"
    DIRTY = "dirty"
    STALE = "stale"
    CLEAN = "clean"


CLI_COLORS = {
    WorktreeStyleType.ACTIVE: "green",
    WorktreeStyleType.MAIN: "cyan",
    WorktreeStyleType.DIRTY: "yellow",
    WorktreeStyleType.STALE: "red",
    WorktreeStyleType.CLEAN: None,  # Default color
}


LEGEND_TEXT = """
Legend:
@ = Current worktree      * = Main repository
L = Locked                P = Prunable (directory missing)
S = Staged files          M = Modified files
U = Untracked files       ⚠ = Status unknown
"""
