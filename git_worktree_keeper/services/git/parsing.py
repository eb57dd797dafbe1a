"""Parsers for git's machine-readable worktree, branch and status output."""

from typing import Dict, List, Optional

from git_worktree_keeper.constants import DEFAULT_REMOTE
from git_worktree_keeper.models.worktree import WorktreeRecord, WorktreeStatus

BRANCH_REF_PREFIX = "refs/heads/"


def parse_worktree_list(raw: str) -> List[WorktreeRecord]:
    """Parse ``git worktree list --porcelain`` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name
        (blank line between worktrees)

    Attribute lines that are not recognised are ignored so newer git
    versions can add fields. A path listed twice keeps its first record.

    Args:
        raw: Porcelain output

    Returns:
        Records in listing order (empty for empty input)
    """
    records: List[WorktreeRecord] = []
    seen: Dict[str, WorktreeRecord] = {}
    current: Optional[WorktreeRecord] = None

    for line in raw.splitlines():
        line = line.rstrip("\r")
        if not line.strip():
            continue

        keyword, _, value = line.partition(" ")

        if keyword == "worktree":
            path = value.strip()
            if not path:
                current = None
                continue
            if path in seen:
                # Attributes of a repeated entry must not leak into the first one
                current = None
                continue
            current = WorktreeRecord(path=path)
            seen[path] = current
            records.append(current)
            continue

        if current is None:
            continue

        if keyword == "HEAD":
            current.head_commit = value.strip()
        elif keyword == "branch":
            ref = value.strip()
            if ref.startswith(BRANCH_REF_PREFIX):
                ref = ref[len(BRANCH_REF_PREFIX):]
            current.branch = ref or None
        elif keyword == "bare":
            current.bare = True
        elif keyword == "detached":
            current.detached = True
            current.branch = None
        elif keyword == "locked":
            current.locked = True
        elif keyword == "prunable":
            current.prunable = True

    return records


def parse_branch_list(raw: str, remote_name: str = DEFAULT_REMOTE) -> List[str]:
    """Parse ``git branch -a --format=%(refname:short)`` output.

    Drops blank lines, the remote's symbolic HEAD, the bare remote name
    (how some git versions shorten ``refs/remotes/origin/HEAD``) and
    "(HEAD detached at ...)" pseudo entries. Duplicates keep their first
    position.
    """
    branches: List[str] = []
    seen = set()
    remote_head = f"{remote_name}/HEAD"

    for line in raw.splitlines():
        branch = line.strip()
        if not branch:
            continue
        if branch == remote_name or branch.startswith(remote_head) or branch.startswith("("):
            continue
        if branch in seen:
            continue
        seen.add(branch)
        branches.append(branch)

    return branches


def parse_status(raw: str) -> WorktreeStatus:
    """Parse ``git status --porcelain`` (v1) output into change counts.

    Each line is ``XY path``: X is the index status (staged changes), Y the
    working tree status. ``??`` marks an untracked file. A renamed and then
    modified file counts as both staged and unstaged.
    """
    staged = unstaged = untracked = 0
    lines = [line for line in raw.splitlines() if line.strip()]

    for line in lines:
        if len(line) < 2:
            continue
        if line.startswith("??"):
            untracked += 1
            continue

        index_status = line[0]
        worktree_status = line[1]
        if index_status not in " ?":
            staged += 1
        if worktree_status not in " ?":
            unstaged += 1

    return WorktreeStatus(
        clean=not lines,
        staged_count=staged,
        unstaged_count=unstaged,
        untracked_count=untracked,
    )
