"""Rich terminal display for treeaudit."""

import os

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.tree import Tree

from treeaudit.models import AnalysisResult, Bucket, DirectoryNode, DuplicateSet, ScanWarning
from treeaudit.thresholds import format_size
from treeaudit.tree import iter_nodes

console = Console()

# Max rows shown per table; full data is in the --json export
MAX_ROWS = 20


def printable_path(path: str) -> str:
    """
    Path text safe to hand to the console.

    Bytes that are not valid UTF-8 are shown as \\xNN escapes and rich
    markup characters are escaped.
    """
    return escape(os.fsencode(path).decode("utf-8", "backslashreplace"))


def show_summary(result: AnalysisResult) -> None:
    """Display the headline numbers."""
    source = "[dim](from scan cache)[/dim]" if result.used_cache else ""
    console.print(
        Panel(
            f"[bold]Target:[/bold] {printable_path(result.target_path)} {source}\n"
            f"  Files: {result.file_count:,}\n"
            f"  Folders: {sum(1 for _ in iter_nodes(result.directory_tree)) - 1:,}\n"
            f"  Total size: {format_size(result.total_bytes)}\n"
            f"  Duplicate sets: {len(result.duplicate_sets)} "
            f"({result.duplicate_strategy.value} strategy)\n"
            f"  Wasted by duplicates: [bold]{format_size(result.wasted_bytes)}[/bold]\n"
            f"  Warnings: {len(result.warnings)}",
            title="Summary",
            border_style="blue",
        )
    )


def show_buckets(title: str, buckets: tuple[Bucket, ...], unit: str) -> None:
    """Display age or size buckets as one table."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Bucket")
    table.add_column("Threshold", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    for bucket in buckets:
        threshold = format_size(bucket.threshold) if unit == "bytes" else f"{bucket.threshold} days"
        table.add_row(
            bucket.name,
            threshold,
            str(bucket.file_count),
            format_size(bucket.total_bytes),
        )

    console.print(table)
    console.print()


def show_duplicates(sets: tuple[DuplicateSet, ...]) -> None:
    """Display the most wasteful duplicate sets."""
    if not sets:
        console.print("[green]No duplicate files found.[/green]\n")
        return

    table = Table(title="Duplicate Files", show_header=True, header_style="bold yellow")
    table.add_column("Copies", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Wasted", justify="right", style="yellow")
    table.add_column("Paths")

    for duplicate in sets[:MAX_ROWS]:
        table.add_row(
            str(duplicate.count),
            format_size(duplicate.size),
            format_size(duplicate.wasted_bytes),
            "\n".join(printable_path(m.path) for m in duplicate.members),
        )

    console.print(table)
    if len(sets) > MAX_ROWS:
        console.print(f"[dim]... and {len(sets) - MAX_ROWS} more sets[/dim]")
    console.print()


def _add_branch(branch: Tree, node: DirectoryNode, max_depth: int) -> None:
    for child in sorted(node.children, key=lambda c: c.total_size, reverse=True):
        label = (
            f"[bold]{printable_path(child.name)}[/bold] {format_size(child.total_size)} "
            f"[dim]({child.own_file_count} files, {child.own_folder_count} folders)[/dim]"
        )
        sub_branch = branch.add(label)
        if child.depth < max_depth:
            _add_branch(sub_branch, child, max_depth)


def show_directory_tree(root: DirectoryNode, max_depth: int = 2) -> None:
    """Display the directory size tree down to max_depth, largest first."""
    tree = Tree(f"[bold blue]{printable_path(root.path)}[/bold blue] {format_size(root.total_size)}")
    if max_depth > 0:
        _add_branch(tree, root, max_depth)
    console.print(tree)
    console.print()


def show_warnings(warnings: tuple[ScanWarning, ...], limit: int = MAX_ROWS) -> None:
    """Display skipped paths."""
    if not warnings:
        return

    console.print(f"[bold red]! {len(warnings)} path(s) skipped[/bold red]")
    for warning in warnings[:limit]:
        console.print(f"  [red]✗[/red] {printable_path(warning.path)}: {escape(warning.reason)}")
    if len(warnings) > limit:
        console.print(f"  [dim]... and {len(warnings) - limit} more (use --json for all)[/dim]")
    console.print()


def show_analysis(result: AnalysisResult, tree_depth: int = 2) -> None:
    """Display full analysis results."""
    show_summary(result)
    console.print()
    show_buckets("Old Files", result.age_buckets, unit="days")
    show_buckets("Large Files", result.size_buckets, unit="bytes")
    show_duplicates(result.duplicate_sets)
    show_directory_tree(result.directory_tree, max_depth=tree_depth)
    show_warnings(result.warnings)


def show_scanning_progress() -> Progress:
    """Create spinner progress display for scanning (totals are unknown upfront)."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.completed:,}"),
        TimeElapsedColumn(),
        console=console,
    )
