"""Main CLI entry point for the LFS migration tool."""

import sys
import asyncio
from typing import List, Optional
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
)
from rich.table import Table

from .. import __version__
from ..config.config import Config, MigrationConfig
from ..utils.logging import setup_logging
from ..git.exceptions import LFSMigrationError
from ..migration.engine import MigrationEngine, MigrationStep, MigrationSummary

console = Console()

DEFAULT_CONFIG_PATHS = ['lfs-migrate.yaml', 'lfs-migrate.yml', '.lfs-migrate.yaml']

repo_option = click.option(
    '--repo',
    '-r',
    type=click.Path(file_okay=False),
    default='.',
    show_default=True,
    help='Repository root to operate on',
)


@click.group()
@click.version_option(version=__version__, prog_name='lfs-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """LFS Migration Tool - Move large binaries into Git LFS and rewrite history."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    setup_logging('DEBUG' if verbose else 'WARNING')


@cli.command()
@click.option(
    '--output',
    '-o',
    default='lfs-migrate.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    try:
        Config.create_template(output)
        console.print(f'[green]✓[/green] Configuration template created at: {output}')
    except OSError as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@repo_option
@click.option(
    '--patterns',
    '-p',
    help='Comma-separated glob patterns to migrate (default: *.png,*.PNG)',
)
@click.option(
    '--no-push',
    is_flag=True,
    help='Rewrite history locally but do not force-push',
)
@click.option('--remote', help='Remote to synchronize with and publish to')
@click.option(
    '--threshold-mb',
    type=click.IntRange(min=1),
    help='Fail if any blob above this size survives the migration',
)
@click.option(
    '--strict-sync',
    is_flag=True,
    help='Abort if fetching and rebasing from the remote fails',
)
@click.option(
    '--dry-run',
    is_flag=True,
    help='Run the checks and report what would change',
)
@click.pass_context
def migrate(
    ctx: click.Context,
    repo: str,
    patterns: Optional[str],
    no_push: bool,
    remote: Optional[str],
    threshold_mb: Optional[int],
    strict_sync: bool,
    dry_run: bool,
) -> None:
    """Migrate matching files into Git LFS across all history and republish."""
    config = _prepare(ctx)
    _override(
        ctx,
        config,
        patterns=patterns,
        no_push=no_push,
        remote=remote,
        threshold_mb=threshold_mb,
        strict_sync=strict_sync,
        dry_run=dry_run,
    )

    console.print(
        Panel.fit(
            '[bold blue]LFS Migration Tool[/bold blue]\n'
            f'Migrating [cyan]{", ".join(config.migration.patterns)}[/cyan] '
            f'in {Path(repo).resolve()}',
            border_style='blue',
        )
    )
    if config.migration.dry_run:
        console.print(
            '[yellow]Running in dry-run mode - no changes will be made[/yellow]'
        )
    elif not config.migration.push:
        console.print(
            '[yellow]Publishing disabled - rewritten history stays local[/yellow]'
        )

    try:
        summary = _run_migration(config, repo, ignore_paths=_tool_files(ctx, config))
    except LFSMigrationError as e:
        _fail_migration(ctx, e)

    _display_summary(summary)


@cli.command()
@repo_option
@click.option('--remote', help='Remote that must exist')
@click.pass_context
def check(ctx: click.Context, repo: str, remote: Optional[str]) -> None:
    """Run the pre-flight checks without changing anything."""
    config = _prepare(ctx)
    _override(ctx, config, remote=remote)

    try:
        engine = MigrationEngine(config, repo, ignore_paths=_tool_files(ctx, config))
        asyncio.run(engine.check())
    except LFSMigrationError as e:
        _fail_migration(ctx, e)

    console.print('[green]✓[/green] Repository root found')
    console.print('[green]✓[/green] git and git-lfs available')
    console.print('[green]✓[/green] Working tree clean')
    console.print(f'[green]✓[/green] Remote {config.migration.remote} configured')


@cli.command()
@repo_option
@click.option(
    '--threshold-mb',
    type=click.IntRange(min=1),
    help='Report blobs above this size',
)
@click.pass_context
def scan(ctx: click.Context, repo: str, threshold_mb: Optional[int]) -> None:
    """List blobs above the size threshold on all branches and tags."""
    config = _prepare(ctx)
    _override(ctx, config, threshold_mb=threshold_mb)

    try:
        objects = asyncio.run(MigrationEngine(config, repo).scan())
    except LFSMigrationError as e:
        _fail_migration(ctx, e)

    limit = config.migration.size_threshold_mb
    if not objects:
        console.print(f'[green]✓[/green] No blobs above {limit} MB')
        return

    table = Table(title=f'Blobs above {limit} MB')
    table.add_column('Size (MB)', style='red', justify='right')
    table.add_column('Object', style='cyan')
    table.add_column('Path', style='green')
    for obj in objects:
        table.add_row(f'{obj.size_mb:.1f}', obj.sha[:12], obj.path or '')
    console.print(table)
    sys.exit(1)


@cli.command()
@repo_option
@click.pass_context
def status(ctx: click.Context, repo: str) -> None:
    """Show the effective configuration and current tracking rules."""
    config = _prepare(ctx)

    table = Table(title='Migration Configuration')
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')

    table.add_row('Repository', str(Path(repo).resolve()))
    table.add_row('Patterns', ', '.join(config.migration.patterns))
    table.add_row('Remote', config.migration.remote)
    table.add_row('Size Threshold', f'{config.migration.size_threshold_mb} MB')
    table.add_row('Backup Prefix', config.migration.backup_prefix)
    table.add_row('Force Push', '✓' if config.migration.push else '✗')
    table.add_row('Strict Sync', '✓' if config.migration.strict_sync else '✗')
    console.print(table)

    engine = MigrationEngine(config, repo)
    tracked = engine.lfs.tracked_patterns()
    missing = engine.lfs.missing_patterns(config.migration.patterns)
    console.print(
        f'\n[blue]Tracked by LFS:[/blue] {", ".join(tracked) if tracked else "none"}'
    )
    if missing:
        console.print(f'[yellow]Not yet tracked:[/yellow] {", ".join(missing)}')


def _prepare(ctx: click.Context) -> Config:
    """Load configuration and apply its logging settings, exiting on errors."""
    try:
        config = _load_config(ctx)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        _fail(ctx, f'Configuration error: {e}')

    _setup_logging_with_config(ctx, config)
    return config


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')
        ctx.obj['loaded_config_path'] = config_path
        return Config.from_file(config_path)

    for path in DEFAULT_CONFIG_PATHS:
        if Path(path).exists():
            ctx.obj['loaded_config_path'] = path
            return Config.from_file(path)

    return Config.from_env()


def _tool_files(ctx: click.Context, config: Config) -> List[str]:
    """Config and log files this run reads or writes."""
    return [
        path
        for path in (ctx.obj.get('loaded_config_path'), config.logging.file)
        if path
    ]


def _apply_overrides(
    config: Config,
    patterns: Optional[str] = None,
    no_push: bool = False,
    remote: Optional[str] = None,
    threshold_mb: Optional[int] = None,
    strict_sync: bool = False,
    dry_run: bool = False,
) -> None:
    """Apply command-line options on top of the loaded configuration.

    The migration section is rebuilt so its validators see the overrides.

    Raises:
        ValidationError: If an option value is invalid
    """
    overrides = {}
    if patterns is not None:
        overrides['patterns'] = patterns
    if no_push:
        overrides['push'] = False
    if remote is not None:
        overrides['remote'] = remote
    if threshold_mb is not None:
        overrides['size_threshold_mb'] = threshold_mb
    if strict_sync:
        overrides['strict_sync'] = True
    if dry_run:
        overrides['dry_run'] = True

    if overrides:
        config.migration = MigrationConfig(**{**config.migration.dict(), **overrides})


def _override(ctx: click.Context, config: Config, **options) -> None:
    """Apply command-line options, exiting on invalid values."""
    try:
        _apply_overrides(config, **options)
    except (ValidationError, ValueError) as e:
        _fail(ctx, f'Invalid options: {e}')


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def _run_migration(
    config: Config, repo: str, ignore_paths: Optional[List[str]] = None
) -> MigrationSummary:
    """Run the migration with a step-by-step progress display."""
    total = len(MigrationStep) if config.migration.push else len(MigrationStep) - 1
    if config.migration.dry_run:
        total = 2

    with Progress(
        SpinnerColumn(),
        TextColumn('[progress.description]{task.description}'),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task('[blue]Starting...', total=total)
        started = []

        def update_progress(step: MigrationStep) -> None:
            progress.update(
                task,
                completed=len(started),
                description=f'[blue]{step.description}...',
            )
            started.append(step)

        engine = MigrationEngine(
            config, repo, on_step=update_progress, ignore_paths=ignore_paths
        )
        try:
            summary = asyncio.run(engine.migrate())
        except LFSMigrationError:
            progress.update(task, description='[red]Failed')
            raise

        progress.update(task, completed=total, description='[green]Completed')

    return summary


def _display_summary(summary: MigrationSummary) -> None:
    """Display migration summary results."""
    title = 'Dry Run Summary' if summary.dry_run else 'Migration Summary'
    table = Table(title=title)
    table.add_column('Item', style='cyan')
    table.add_column('Result', style='green')

    added_label = 'Rules To Add' if summary.dry_run else 'Rules Added'
    table.add_row(added_label, ', '.join(summary.rules_added) or 'none')
    if summary.attributes_commit:
        table.add_row('Attributes Commit', summary.attributes_commit[:12])
    if summary.backup_branch:
        table.add_row(
            'Backup Branch',
            f'{summary.backup_branch} @ {(summary.backup_commit or "")[:12]}',
        )

    if not summary.dry_run:
        synced = 'n/a' if summary.synced is None else ('✓' if summary.synced else '✗')
        table.add_row('Synchronized', synced)
        table.add_row('History Rewritten', '✓' if summary.rewritten else '✗')
        table.add_row('LFS Files', str(summary.lfs_files))
        table.add_row('Published', '✓' if summary.published else '✗')
    else:
        table.add_row('Oversized Blobs', str(len(summary.oversized_objects)))

    console.print(table)

    if summary.completed_at:
        duration = summary.completed_at - summary.started_at
        console.print(f'\n[blue]Duration:[/blue] {duration}')

    if summary.dry_run:
        console.print('[green]✓[/green] Dry run completed successfully')
    else:
        console.print('[green]✓[/green] Migration completed successfully')
        if not summary.published:
            console.print(
                '[yellow]Rewritten history was not pushed. Force-push your branches and '
                'tags to publish it, leaving the backup branch local.[/yellow]'
            )


def _fail_migration(ctx: click.Context, error: LFSMigrationError) -> None:
    """Report a migration error with its hint and exit."""
    console.print(f'[red]✗[/red] {error}')
    if error.hint:
        console.print(f'[yellow]{error.hint}[/yellow]')
    if ctx.obj.get('verbose') and error.stderr:
        console.print(error.stderr.rstrip(), markup=False, highlight=False)
    sys.exit(1)


def _fail(ctx: click.Context, message: str) -> None:
    console.print(f'[red]✗[/red] {message}')
    if ctx.obj.get('verbose'):
        console.print_exception()
    sys.exit(1)


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
