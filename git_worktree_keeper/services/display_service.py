"""Display and formatting service for worktree information"""
import os
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_worktree_keeper.config import SORT_CHOICES
from git_worktree_keeper.constants import CLI_COLORS, LEGEND_TEXT, WORKTREE_COLUMNS
from git_worktree_keeper.formatters import (
    format_branch,
    format_changes,
    format_flags,
    format_provisioning_errors,
    get_worktree_style_type,
)
from git_worktree_keeper.models.operations import BulkOperationResult, ProvisioningOutcome
from git_worktree_keeper.models.worktree import WorktreeRecord
from git_worktree_keeper.utils.logging import get_logger

logger = get_logger(__name__)


def _last_modified(record: WorktreeRecord) -> float:
    try:
        return os.path.getmtime(record.path)
    except OSError:
        return 0.0


def sort_worktrees(
    records: List[WorktreeRecord],
    sort_by: str = "name",
    max_worktrees: Optional[int] = None,
) -> List[WorktreeRecord]:
    """Sort worktrees for display, main repository first, and cap the list.

    Args:
        records: Worktree records
        sort_by: "name", "branch" or "last_modified" (newest first)
        max_worktrees: Keep at most this many records

    Returns:
        A new, sorted list
    """
    if sort_by not in SORT_CHOICES:
        raise ValueError(f"sort_by must be one of {SORT_CHOICES}, got '{sort_by}'")

    main = [record for record in records if record.is_main]
    others = [record for record in records if not record.is_main]

    if sort_by == "branch":
        others.sort(key=lambda record: ((record.branch or "").lower(), record.display_name.lower()))
    elif sort_by == "last_modified":
        others.sort(key=_last_modified, reverse=True)
    else:
        others.sort(key=lambda record: record.display_name.lower())

    ordered = main + others
    if max_worktrees is not None and len(ordered) > max_worktrees:
        logger.debug(f"Showing {max_worktrees} of {len(ordered)} worktrees")
        ordered = ordered[:max_worktrees]
    return ordered


class DisplayService:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def display_worktree_table(self, records: List[WorktreeRecord], show_legend: bool = False) -> None:
        """Display a table of worktree information."""
        if not records:
            self.console.print("[yellow]No worktrees found[/yellow]")
            return

        table = Table()
        for col in WORKTREE_COLUMNS:
            if col.width:
                table.add_column(col.label, max_width=col.width, overflow="fold")
            else:
                table.add_column(col.label, overflow="fold")

        for record in records:
            row_style = CLI_COLORS.get(get_worktree_style_type(record))
            # Match WORKTREE_COLUMNS order: Worktree, Branch, HEAD, Changes, Flags, Path
            table.add_row(
                escape(record.display_name),
                escape(format_branch(record)),
                record.short_head,
                format_changes(record.status),
                format_flags(record),
                escape(record.path),
                style=row_style,
            )

        self.console.print(table)

        if show_legend:
            self.console.print(LEGEND_TEXT)

    def display_branches(self, branches: List[str], title: str = "Branches without worktrees") -> None:
        """Display a list of branch names."""
        if not branches:
            self.console.print("[green]Every branch has a worktree[/green]")
            return

        self.console.print(f"[bold]{title}[/bold] ({len(branches)})")
        for branch in branches:
            self.console.print(f"  {escape(branch)}")

    def display_provisioning_outcome(self, outcome: ProvisioningOutcome) -> None:
        """Display the result of a create-all run."""
        if outcome.created:
            self.console.print(f"[green]Created {len(outcome.created)} worktrees[/green]")
            if self.verbose:
                for branch in outcome.created:
                    self.console.print(f"  {escape(branch)}")
        if outcome.skipped:
            self.console.print(
                f"[yellow]Skipped {len(outcome.skipped)} branches (directory already exists)[/yellow]"
            )
        if outcome.errors:
            self.console.print(f"[red]Failed to create {len(outcome.errors)} worktrees:[/red]")
            for line in format_provisioning_errors(outcome):
                self.console.print(line, markup=False)
        if outcome.cancelled:
            self.console.print("[yellow]Cancelled before all branches were processed[/yellow]")
        if not (outcome.created or outcome.skipped or outcome.errors or outcome.cancelled):
            self.console.print("[green]Every branch already has a worktree[/green]")

    def display_bulk_result(self, label: str, result: BulkOperationResult) -> None:
        """Display the result of a discard or clean run across worktrees."""
        self.console.print(f"[green]{label}: {len(result.completed)} worktrees[/green]")
        for path, message in result.failed:
            self.console.print(f"[red]  {escape(path)}: {escape(message)}[/red]")
        if result.cancelled:
            self.console.print("[yellow]Cancelled before all worktrees were processed[/yellow]")
