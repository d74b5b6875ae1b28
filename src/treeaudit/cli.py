"""CLI interface for treeaudit."""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Optional

import typer

from treeaudit import __version__
from treeaudit.analyzer import analyze as run_analysis
from treeaudit.cache import ScanCache
from treeaudit.config import AnalysisConfig, default_config_path, load_config, save_config
from treeaudit.display import console, printable_path, show_analysis, show_scanning_progress
from treeaudit.exceptions import TreeAuditError
from treeaudit.models import AnalysisResult, DuplicateStrategy
from treeaudit.progress import ProgressCallback
from treeaudit.thresholds import (
    format_size,
    get_age_thresholds,
    get_size_thresholds,
    parse_named_threshold,
)

# Create Typer app
app = typer.Typer(
    name="treeaudit",
    help="Audit a directory tree for old, large and duplicate files",
    add_completion=False,
)

STAGE_LABELS = {
    "scan": "Scanning files...",
    "tree": "Sizing folders...",
    "hash": "Hashing duplicate candidates...",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"treeaudit version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """treeaudit - find old, large and duplicate files."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_config(
    base: AnalysisConfig,
    path: str,
    exclude: Optional[list[str]],
    thorough: bool,
    rescan: bool,
    no_cache: bool,
    age: Optional[list[str]],
    size: Optional[list[str]],
    workers: Optional[int],
) -> AnalysisConfig:
    """Overlay command-line options on the loaded configuration."""
    values = base.model_dump()
    values["target_path"] = path
    values["exclude_paths"] = list(base.exclude_paths) + list(exclude or [])
    if thorough:
        values["duplicate_strategy"] = DuplicateStrategy.THOROUGH
    values["force_rescan"] = rescan
    values["use_cache"] = base.use_cache and not no_cache
    if age:
        values["age_thresholds"] = dict(parse_named_threshold(a) for a in age)
    if size:
        values["size_thresholds"] = dict(parse_named_threshold(s, size=True) for s in size)
    if workers is not None:
        values["max_workers"] = workers
    return AnalysisConfig.model_validate(values)


def _run_cancellable(config: AnalysisConfig, progress_callback: ProgressCallback) -> AnalysisResult:
    """
    Run the analysis on a worker thread so Ctrl-C can request cancellation.

    On KeyboardInterrupt the cancel event is set and the worker is allowed to
    unwind before the interrupt propagates.
    """
    cancel_event = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(
            run_analysis, config, progress_callback=progress_callback, cancel_event=cancel_event
        )
        try:
            while not future.done():
                wait([future], timeout=0.2)
        except KeyboardInterrupt:
            cancel_event.set()
            raise
        return future.result()


@app.command()
def analyze(
    path: str = typer.Argument(".", help="Directory to analyze"),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", "-e", help="Path to leave out (repeatable)"
    ),
    thorough: bool = typer.Option(
        False,
        "--thorough",
        help="Detect duplicates by content hash instead of name + size (slower)",
    ),
    rescan: bool = typer.Option(False, "--rescan", help="Ignore the cached scan for this path"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Neither read nor write the scan cache"),
    age: Optional[list[str]] = typer.Option(
        None, "--age", help="Age threshold as NAME=DAYS (repeatable, replaces defaults)"
    ),
    size: Optional[list[str]] = typer.Option(
        None, "--size", help="Size threshold as NAME=SIZE, e.g. Over2GB=2GB (repeatable)"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel workers"),
    depth: int = typer.Option(2, "--depth", "-d", min=0, help="Directory tree depth to display"),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write the full result as JSON"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Analyze a directory for old, large and duplicate files."""
    _configure_logging(verbose)

    try:
        config = _build_config(
            load_config(config_file), path, exclude, thorough, rescan, no_cache, age, size, workers
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold blue]Analyzing {printable_path(config.target_path)}...[/bold blue]\n")

    try:
        with show_scanning_progress() as progress:
            tasks = {}
            tasks_lock = threading.Lock()

            # Called from worker threads
            def update_progress(stage: str, count: int):
                with tasks_lock:
                    if stage not in tasks:
                        tasks[stage] = progress.add_task(STAGE_LABELS.get(stage, stage), total=None)
                progress.update(tasks[stage], completed=count)

            result = _run_cancellable(config, update_progress)
    except KeyboardInterrupt:
        console.print("[yellow]Cancelled - partial results discarded[/yellow]")
        raise typer.Exit(130)
    except TreeAuditError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    console.print()
    show_analysis(result, tree_depth=depth)

    if json_out:
        # ASCII escapes keep file names that are not valid UTF-8 intact
        json_out.write_text(json.dumps(result.model_dump(mode="json"), indent=2), encoding="utf-8")
        console.print(f"[dim]Full result written to {json_out}[/dim]")

    if config.duplicate_strategy == DuplicateStrategy.FAST:
        console.print(
            "[dim]Tip: Run [bold]treeaudit analyze --thorough[/bold] to compare file contents[/dim]"
        )


@app.command()
def thresholds() -> None:
    """List the default age and size thresholds."""
    console.print("[bold]Age Thresholds[/bold]")
    for name, days in sorted(get_age_thresholds().items(), key=lambda i: -i[1]):
        console.print(f"  • [bold]{name}[/bold] - older than {days} days")
    console.print()

    console.print("[bold]Size Thresholds[/bold]")
    for name, limit in sorted(get_size_thresholds().items(), key=lambda i: -i[1]):
        console.print(f"  • [bold]{name}[/bold] - larger than {format_size(limit)}")
    console.print()

    console.print("[dim]Override with [bold]--age NAME=DAYS[/bold] and [bold]--size NAME=SIZE[/bold][/dim]")


@app.command(name="cache-clear")
def cache_clear(
    path: str = typer.Argument(".", help="Directory whose cached scan should be removed"),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Scan cache directory (default: from the configuration file)"
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
) -> None:
    """Remove the cached scan for a directory."""
    if cache_dir is None:
        cache_dir = load_config(config_file).cache_dir

    if ScanCache(cache_dir).clear(path):
        console.print(f"[green]✓[/green] Removed cached scan for {printable_path(path)}")
    else:
        console.print(f"[yellow]No cached scan for {printable_path(path)}[/yellow]")


@app.command()
def config(
    config_file: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
    init: bool = typer.Option(False, "--init", help="Write a configuration file with the defaults"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file with --init"),
) -> None:
    """Show the effective configuration, or create a default file."""
    config_path = config_file or default_config_path()

    if init:
        if config_path.exists() and not force:
            console.print(f"[yellow]{config_path} already exists (use --force to overwrite)[/yellow]")
            raise typer.Exit(1)
        if not save_config(AnalysisConfig(), config_path):
            console.print(f"[red]Error: could not write {config_path}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Wrote default configuration to {config_path}")
        return

    source = config_path if config_path.exists() else "built-in defaults"
    console.print(f"[bold]Configuration[/bold] [dim]({source})[/dim]")
    console.print_json(data=load_config(config_path).model_dump(mode="json", exclude={"target_path"}))


if __name__ == "__main__":
    app()
