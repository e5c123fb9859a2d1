"""Main entry point for clearcache."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.filesize import decimal
from rich.prompt import Confirm
from rich.table import Table

from .config import CleanConfig
from .ignore import IgnorePatternError, write_default_ignore
from .registry import PatternRegistry, parse_ecosystems
from .report import RunOutcome
from .runner import CacheCleanRun, setup_logging
from .safety import SafetyViolationError
from .traversal import RootAccessError, check_root

EXIT_OK = 0
EXIT_SAFETY_VIOLATION = 1
EXIT_STARTUP_FAILURE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="clearcache",
        description="Remove development cache directories without touching source code",
    )

    parser.add_argument(
        "directory",
        nargs="?",
        type=Path,
        default=None,
        help="Directory to clean (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Show what would be deleted without deleting anything",
    )
    parser.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="Descend into subdirectories",
    )
    parser.add_argument(
        "--types",
        "-t",
        default=None,
        help="Comma-separated cache types (node,rust,go,python,docker,general,all)",
    )
    parser.add_argument(
        "--include-libraries",
        action="store_true",
        help="Also remove dependency directories that need reinstalling (node_modules, target, ...)",
    )
    parser.add_argument(
        "--parallel",
        "-p",
        type=int,
        default=None,
        help="Number of worker threads (default: CPU count)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum directory depth to descend",
    )
    parser.add_argument(
        "--respect-gitignore",
        action="store_true",
        help="Also honour .gitignore files",
    )
    parser.add_argument(
        "--no-ignore",
        action="store_true",
        help="Disable all ignore file processing",
    )
    parser.add_argument(
        "--generate-ignore",
        action="store_true",
        help="Write a default .clearcacheignore into the directory and exit",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write the effective configuration to the config file and exit",
    )
    parser.add_argument(
        "--list-patterns",
        action="store_true",
        help="Show the active cache patterns and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Do not ask for confirmation",
    )

    return parser.parse_args(argv)


def apply_overrides(config: CleanConfig, args: argparse.Namespace) -> CleanConfig:
    """Apply command line flags on top of file configuration.

    Raises:
        ValueError: If the resulting configuration is invalid.

    """
    config.dry_run = config.dry_run or args.dry_run
    config.recursive = config.recursive or args.recursive
    config.include_libraries = config.include_libraries or args.include_libraries
    config.respect_gitignore = config.respect_gitignore or args.respect_gitignore
    config.no_ignore = config.no_ignore or args.no_ignore

    if args.types is not None:
        config.types = args.types
    if args.parallel is not None:
        config.parallel = args.parallel
    if args.max_depth is not None:
        config.max_depth = args.max_depth

    config.validate()
    return config


def cmd_generate_ignore(directory: Path, *, force: bool) -> int:
    """Write the default ignore file.

    Returns:
        Exit code.

    """
    console = Console()
    try:
        target = write_default_ignore(directory, force=force)
    except FileExistsError:
        console.print(f"[yellow]Ignore file already exists in {directory} (use --force to overwrite)[/yellow]")
        return 1
    except OSError as e:
        console.print(f"[red]Cannot write ignore file: {e}[/red]")
        return EXIT_STARTUP_FAILURE

    console.print(f"[green]Created {target}[/green]")
    return EXIT_OK


def cmd_list_patterns(config: CleanConfig) -> int:
    """Show the pattern table for the selected cache types.

    Returns:
        Exit code.

    """
    console = Console()
    registry = PatternRegistry.builtin(config.extra_patterns, config.disabled_patterns)
    registry = registry.restricted_to(parse_ecosystems(config.types))
    active = registry.filter_by_mode(safe_only=not config.include_libraries)

    table = Table(title=f"Cache patterns ({'library' if config.include_libraries else 'safe'} mode)")
    table.add_column("Pattern", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Kind", style="dim")
    table.add_column("Description")
    table.add_column("Active", style="green")

    for pattern in registry:
        label = "library" if pattern.is_library else "cache"
        table.add_row(
            pattern.pattern + ("/" if pattern.directory else ""),
            pattern.ecosystem.value,
            label,
            pattern.description,
            "yes" if pattern in active else "[red]no[/red]",
        )

    console.print(table)
    return EXIT_OK


def cmd_save_config(config: CleanConfig, config_path: Path | None) -> int:
    """Persist the effective configuration.

    Returns:
        Exit code.

    """
    console = Console()
    target = config_path or CleanConfig.get_config_path()
    try:
        config.save(target)
    except OSError as e:
        console.print(f"[red]Cannot write configuration: {e}[/red]")
        return EXIT_STARTUP_FAILURE

    console.print(f"[green]Saved configuration to {target}[/green]")
    return EXIT_OK


def print_summary(console: Console, outcome: RunOutcome, *, verbose: bool = False) -> None:
    """Render the run outcome."""
    removed_label = "Would delete" if outcome.dry_run else "Deleted"

    if outcome.nothing_found:
        console.print("[green]No cache items found[/green]")
        return

    if verbose:
        detail = Table(title=f"{removed_label} ({len(outcome.results)})")
        detail.add_column("Path", style="cyan")
        detail.add_column("Files", justify="right")
        detail.add_column("Size", justify="right")
        detail.add_column("Status")
        for result in sorted(outcome.results, key=lambda r: str(r.path)):
            if result.success:
                status = "[green]ok[/green]"
            else:
                status = f"[red]{result.failure.value if result.failure else 'error'}[/red]"
            detail.add_row(str(result.path), str(result.files_removed), decimal(result.bytes_freed), status)
        console.print(detail)

    table = Table(title="Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Candidates", str(outcome.candidates_seen))
    table.add_row("Accepted", str(outcome.accepted))
    table.add_row(removed_label, str(outcome.deleted))
    table.add_row("Files", str(outcome.files_removed))
    table.add_row("Space freed" if not outcome.dry_run else "Space to free", decimal(outcome.bytes_freed))
    table.add_row("Directories scanned", str(outcome.directories_scanned))
    if outcome.directories_skipped:
        table.add_row("Directories unreadable", str(outcome.directories_skipped))
    if outcome.entries_ignored:
        table.add_row("Ignored by rules", str(outcome.entries_ignored))
    if outcome.depth_limited:
        table.add_row("Beyond max depth", str(outcome.depth_limited))
    for reason, count in sorted(outcome.rejected.items(), key=lambda item: item[0].value):
        table.add_row(f"Rejected: {reason.value}", str(count))
    for kind, count in sorted(outcome.failed.items(), key=lambda item: item[0].value):
        table.add_row(f"[red]Failed: {kind.value}[/red]", str(count))
    console.print(table)

    if outcome.accepted == 0 and outcome.total_rejected:
        console.print("[yellow]Every candidate was protected by a safety check[/yellow]")

    if outcome.errors:
        console.print("[yellow]Some deletions failed:[/yellow]")
        for error in outcome.errors:
            console.print(f"  [red]{error.path}[/red]: {error.message}")
    elif outcome.deleted:
        console.print("[green]All operations completed successfully[/green]")


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    console = Console()
    directory = args.directory or Path.cwd()

    try:
        config = apply_overrides(CleanConfig.load(args.config), args)
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return EXIT_STARTUP_FAILURE

    if args.generate_ignore:
        return cmd_generate_ignore(directory, force=args.force)
    if args.list_patterns:
        return cmd_list_patterns(config)
    if args.save_config:
        return cmd_save_config(config, args.config)

    try:
        logger = setup_logging(config, verbose=args.verbose)
        run = CacheCleanRun(config, directory, logger=logger)
        check_root(run.root)
    except (ValueError, OSError) as e:
        console.print(f"[red]Startup failed: {e}[/red]")
        return EXIT_STARTUP_FAILURE

    if config.dry_run:
        console.print("[yellow]Dry run: nothing will be deleted[/yellow]")
    elif not args.force and not Confirm.ask(f"Delete cache items under {run.root}?", console=console):
        console.print("[yellow]Aborted[/yellow]")
        return EXIT_OK

    try:
        outcome = run.run()
    except SafetyViolationError as e:
        console.print(f"[bold red]Safety violation, run aborted: {e}[/bold red]")
        return EXIT_SAFETY_VIOLATION
    except (RootAccessError, IgnorePatternError) as e:
        console.print(f"[red]Startup failed: {e}[/red]")
        return EXIT_STARTUP_FAILURE

    print_summary(console, outcome, verbose=args.verbose)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
