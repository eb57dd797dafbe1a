"""Command-line interface for git-worktree-keeper"""

import argparse
import os
import signal
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import WorktreeKeeperError
from git_worktree_keeper.models.operations import CreateMode, CreateOptions
from git_worktree_keeper.services.display_service import DisplayService, sort_worktrees
from git_worktree_keeper.utils.logging import get_logger, setup_logging
from git_worktree_keeper.utils.threading import CancellationToken

console = Console()
logger = get_logger(__name__)


def load_config(parsed_args: argparse.Namespace) -> Config:
    """Build config from the config file (if any) and command-line flags."""
    overrides = {
        "verbose": parsed_args.verbose,
        "debug": parsed_args.debug,
        "workers": parsed_args.workers,
    }
    if parsed_args.config:
        return Config.from_file(parsed_args.config, **overrides)
    return Config(**{k: v for k, v in overrides.items() if v is not None})


def switch_context(path: str, same_session: bool) -> bool:
    """Move this process into path before the worktree it was in is removed.

    A shell cannot be moved by a child process, so the target is printed for
    the user to ``cd`` into.
    """
    os.chdir(path)
    console.print(f"[yellow]Current worktree is being removed; switched to {escape(path)}[/yellow]")
    console.print(f"[dim]Run: cd {escape(path)}[/dim]")
    return True


def confirm(message: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    response = console.input(f"{message} [y/N] ")
    return response.strip().lower() == "y"


def cmd_list(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    keeper.refresh()
    sort_by = parsed_args.sort_by or keeper.config.sort_by
    limit = parsed_args.max_worktrees or keeper.config.max_worktrees
    records = sort_worktrees(keeper.list_worktrees(), sort_by, limit)
    display.display_worktree_table(records, show_legend=parsed_args.legend)
    return 0


def cmd_branches(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    display.display_branches(keeper.branches_without_worktrees(parsed_args.branch_type))
    return 0


def cmd_create(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    if parsed_args.orphan:
        mode = CreateMode.ORPHAN
    elif parsed_args.new_branch:
        mode = CreateMode.NEW_BRANCH
    else:
        mode = CreateMode.EXISTING

    path = keeper.create_worktree(
        parsed_args.branch, parsed_args.path, CreateOptions(mode=mode, force=parsed_args.force)
    )
    console.print(f"[green]Created worktree for {escape(parsed_args.branch)} at {escape(path)}[/green]")
    return 0


def cmd_create_all(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    branches = keeper.branches_without_worktrees(parsed_args.branch_type)
    if not branches:
        console.print("[green]Every branch already has a worktree[/green]")
        return 0

    display.display_branches(branches)
    location = keeper.default_worktree_location()
    if not confirm(f"\nCreate {len(branches)} worktrees in {location}?", parsed_args.yes):
        console.print("[yellow]Cancelled[/yellow]")
        return 0

    token = CancellationToken()

    def _handle_interrupt(signum, frame):
        console.print("\n[yellow]Interrupted! Finishing the current worktree...[/yellow]")
        token.cancel()

    previous_handler = signal.signal(signal.SIGINT, _handle_interrupt)
    try:
        with Progress(console=console) as progress:
            task = progress.add_task("Creating worktrees...", total=len(branches))

            def on_progress(index: int, total: int, branch: str) -> None:
                progress.update(
                    task, total=total, completed=index - 1, description=f"Creating {escape(branch)}"
                )

            outcome = keeper.create_for_all_branches(parsed_args.branch_type, on_progress, token)
            progress.update(task, completed=len(outcome.attempted), description="Done")
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    display.display_provisioning_outcome(outcome)
    return 1 if outcome.errors else 0


def cmd_remove(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    path = os.path.abspath(parsed_args.path)
    if not confirm(f"Remove worktree {path}?", parsed_args.yes):
        console.print("[yellow]Cancelled[/yellow]")
        return 0

    keeper.refresh()
    keeper.remove_worktree(path, force=parsed_args.force, switch_context=switch_context)
    console.print(f"[green]Removed worktree {escape(path)}[/green]")
    return 0


def _cmd_maintenance(keeper: WorktreeKeeper, parsed_args, display: DisplayService, discard: bool) -> int:
    label = "Discarded changes in" if discard else "Cleaned"
    if parsed_args.all:
        prompt = (
            "Discard all changes in every dirty worktree?" if discard
            else "Remove untracked files from every worktree?"
        )
        if not confirm(prompt, parsed_args.yes):
            console.print("[yellow]Cancelled[/yellow]")
            return 0
        keeper.refresh()
        result = keeper.discard_all_changes() if discard else keeper.clean_all()
        display.display_bulk_result(label, result)
        return 1 if result.failed else 0

    if not parsed_args.path:
        console.print("[red]Error: a worktree path or --all is required[/red]")
        return 2

    path = os.path.abspath(parsed_args.path)
    action = "Discard all changes in" if discard else "Remove untracked files from"
    if not confirm(f"{action} {path}?", parsed_args.yes):
        console.print("[yellow]Cancelled[/yellow]")
        return 0

    if discard:
        keeper.discard_changes(path)
    else:
        keeper.clean_worktree(path)
    console.print(f"[green]{label} {escape(path)}[/green]")
    return 0


def cmd_discard(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    return _cmd_maintenance(keeper, parsed_args, display, discard=True)


def cmd_clean(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    return _cmd_maintenance(keeper, parsed_args, display, discard=False)


def cmd_prune(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    if keeper.prune_worktrees():
        console.print("[green]Pruned stale worktree registrations[/green]")
        return 0
    console.print("[yellow]git worktree prune reported an error (see --debug)[/yellow]")
    return 1


def cmd_fetch(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    remote = parsed_args.remote or keeper.config.remote_name
    with console.status(f"Fetching {remote}..."):
        new_branches = keeper.discover_remote_branches(remote)
    if new_branches:
        display.display_branches(new_branches, title=f"New branches on {remote}")
    else:
        console.print(f"[green]No new branches on {escape(remote)}[/green]")
    return 0


def cmd_main(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    keeper.refresh()
    display.display_worktree_table([keeper.resolve_main_worktree()])
    return 0


COMMANDS = {
    "list": cmd_list,
    "branches": cmd_branches,
    "create": cmd_create,
    "create-all": cmd_create_all,
    "remove": cmd_remove,
    "discard": cmd_discard,
    "clean": cmd_clean,
    "prune": cmd_prune,
    "fetch": cmd_fetch,
    "main": cmd_main,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        # Parse command line arguments
        parsed_args = parse_args(argv)

        # Setup logging before creating WorktreeKeeper
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        config = load_config(parsed_args)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {escape(str(value))}")

        repo_path = os.path.abspath(parsed_args.repo or os.getcwd())
        display = DisplayService(console=console, verbose=parsed_args.verbose)

        with WorktreeKeeper(repo_path, config) as keeper:
            return COMMANDS[parsed_args.command](keeper, parsed_args, display)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except WorktreeKeeperError as e:
        console.print(f"[red]Error: {escape(e.summary)}[/red]")
        logger.debug(f"Error detail: {e.detail}")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
