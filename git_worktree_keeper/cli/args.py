"""Command-line argument parsing for git-worktree-keeper."""

import argparse
from typing import List, Optional

from git_worktree_keeper.__version__ import __version__
from git_worktree_keeper.config import SORT_CHOICES


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Manage git worktrees: list, create for every branch, remove safely",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument("--config", metavar="FILE", help="JSON configuration file")
    parser.add_argument(
        "-C", "--repo", metavar="PATH", default=None, help="Repository path (default: current directory)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel workers for status probes (default: auto-detect based on CPU and threading mode)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    list_parser = subparsers.add_parser("list", help="List worktrees with their status")
    list_parser.add_argument("--sort-by", choices=SORT_CHOICES, help="Sort order (default: name)")
    list_parser.add_argument("--max", type=int, dest="max_worktrees", metavar="N", help="Show at most N worktrees")
    list_parser.add_argument("--legend", action="store_true", help="Show the symbol legend")

    branches_parser = subparsers.add_parser("branches", help="List branches that have no worktree")
    branches_parser.add_argument(
        "--type", dest="branch_type", choices=["local", "remote", "both"], default="both",
        help="Branch type to consider (default: both)",
    )

    create_parser = subparsers.add_parser("create", help="Create a worktree for one branch")
    create_parser.add_argument("branch", help="Branch to check out (or create with -b/--orphan)")
    create_parser.add_argument("path", nargs="?", help="Target directory (default: from the naming pattern)")
    mode = create_parser.add_mutually_exclusive_group()
    mode.add_argument("-b", "--new-branch", action="store_true", help="Create the branch from HEAD")
    mode.add_argument("--orphan", action="store_true", help="Create a branch with no history and no files")
    create_parser.add_argument("--force", action="store_true", help="Pass --force to git worktree add")

    create_all_parser = subparsers.add_parser("create-all", help="Create worktrees for all branches without one")
    create_all_parser.add_argument(
        "--type", dest="branch_type", choices=["local", "remote", "both"], default="both",
        help="Branch type to provision (default: both)",
    )
    create_all_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    remove_parser = subparsers.add_parser("remove", help="Remove a worktree")
    remove_parser.add_argument("path", help="Worktree directory")
    remove_parser.add_argument("--force", action="store_true", help="Remove even if dirty or locked")
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    discard_parser = subparsers.add_parser("discard", help="Discard all changes (reset --hard and clean)")
    discard_parser.add_argument("path", nargs="?", help="Worktree directory (omit with --all)")
    discard_parser.add_argument("--all", action="store_true", help="Discard changes in every dirty worktree")
    discard_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    clean_parser = subparsers.add_parser("clean", help="Remove untracked files")
    clean_parser.add_argument("path", nargs="?", help="Worktree directory (omit with --all)")
    clean_parser.add_argument("--all", action="store_true", help="Clean every worktree")
    clean_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    subparsers.add_parser("prune", help="Prune stale worktree registrations")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch the remote and show new remote branches")
    fetch_parser.add_argument("remote", nargs="?", help="Remote name (default: from config)")

    subparsers.add_parser("main", help="Show the main repository worktree")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parsed = build_parser().parse_args(argv)
    if parsed.command is None:
        parsed.command = "list"
        parsed.sort_by = None
        parsed.max_worktrees = None
        parsed.legend = False
    return parsed
