#!/usr/bin/env python3
"""
Command-line interface for Codehint.
"""

import click
import json
import logging
import sys
import time
from pathlib import Path
from typing import List
from rich.console import Console
from rich.table import Table

from .config import Config
from .context import AnalysisContext
from .models import Suggestion, SuggestionType, Priority
from .scheduler import AnalysisScheduler
from .service import SuggestionService
from .store import SuggestionListener
from .utils import logger, read_source

console = Console()

TYPE_CHOICES = [t.name.lower() for t in SuggestionType]
PRIORITY_CHOICES = [p.name.lower() for p in Priority]


def get_service(ctx) -> SuggestionService:
    """Get or create the suggestion service for this invocation."""
    if 'service' not in ctx.obj:
        context = AnalysisContext.from_config(ctx.obj['config'])
        ctx.obj['service'] = SuggestionService(context)
    return ctx.obj['service']


def collect_files(path: Path, extensions: List[str]) -> List[Path]:
    """Source files under ``path`` whose extension is analyzable."""
    if path.is_file():
        return [path]

    wanted = {ext.lower().lstrip('.') for ext in extensions}
    return sorted(
        p for p in path.rglob('*')
        if p.is_file() and p.suffix.lower().lstrip('.') in wanted
    )


def filter_suggestions(suggestions: List[Suggestion], type_name, min_priority) -> List[Suggestion]:
    filtered = suggestions
    if type_name:
        wanted = SuggestionType[type_name.upper()]
        filtered = [s for s in filtered if s.type == wanted]
    if min_priority:
        level = Priority[min_priority.upper()].level
        filtered = [s for s in filtered if s.priority.level >= level]
    return filtered


def display_suggestions(file_path: str, suggestions: List[Suggestion]):
    """Render one file's suggestions as a Rich table."""
    if not suggestions:
        console.print(f"[green]No suggestions for {file_path}[/green]")
        return

    table = Table(title=f"Suggestions for {file_path}")
    table.add_column("Line", justify="right", style="cyan")
    table.add_column("Priority")
    table.add_column("Type", style="blue")
    table.add_column("Title")
    table.add_column("Confidence", justify="right")
    table.add_column("Score", justify="right")

    for suggestion in suggestions:
        color = suggestion.priority.color
        line = str(suggestion.start_line + 1)
        if suggestion.end_line != suggestion.start_line:
            line = f"{line}-{suggestion.end_line + 1}"
        table.add_row(
            line,
            f"[{color}]{suggestion.priority.display_name}[/{color}]",
            suggestion.type.display_name,
            suggestion.title,
            f"{suggestion.confidence:.0%}",
            f"{suggestion.adjusted_score:.2f}",
        )

    console.print(table)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Config file path')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Quiet output')
@click.pass_context
def cli(ctx, config, verbose, quiet):
    """Codehint - adaptive code suggestions"""
    ctx.ensure_object(dict)
    ctx.obj['config'] = Config(config)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet

    if verbose:
        logger.setLevel('DEBUG')
    elif quiet:
        logger.setLevel('ERROR')
    else:
        level = ctx.obj['config'].config.logging.level
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--type', '-t', 'type_name', type=click.Choice(TYPE_CHOICES, case_sensitive=False),
              help='Only show suggestions of this type')
@click.option('--min-priority', '-p', type=click.Choice(PRIORITY_CHOICES, case_sensitive=False),
              help='Only show suggestions at or above this priority')
@click.option('--output', '-o', type=click.Choice(['text', 'json']),
              default='text', help='Output format')
@click.option('--watch', '-w', is_flag=True, help='Re-analyze files as they change')
@click.pass_context
def analyze(ctx, path, type_name, min_priority, output, watch):
    """Analyze a source file or directory."""
    config = ctx.obj['config']
    service = get_service(ctx)
    path = Path(path)

    files = collect_files(path, config.analysis.extensions)
    if not files:
        console.print(f"[yellow]No analyzable files found in {path}[/yellow]")
        return

    results = {}
    for file_path in files:
        suggestions = service.analyze_path(file_path)
        results[str(file_path)] = filter_suggestions(suggestions, type_name, min_priority)

    if output == 'json':
        click.echo(json.dumps(
            {fp: [s.to_dict() for s in items] for fp, items in results.items()},
            indent=2,
        ))
    else:
        for file_path, suggestions in results.items():
            display_suggestions(file_path, suggestions)

    if watch:
        watch_path(service, path, config, type_name, min_priority, output)


def watch_path(service, path: Path, config, type_name, min_priority, output):
    """Block, re-analyzing changed files through the debounce scheduler."""
    from watchdog.observers import Observer
    from watchdog.events import FileSystemEventHandler

    extensions = {ext.lower().lstrip('.') for ext in config.analysis.extensions}

    class ResultPrinter(SuggestionListener):
        def on_suggestions_updated(self, file_path, suggestions):
            filtered = filter_suggestions(suggestions, type_name, min_priority)
            if output == 'json':
                click.echo(json.dumps({file_path: [s.to_dict() for s in filtered]}, indent=2))
            else:
                display_suggestions(file_path, filtered)

    scheduler = AnalysisScheduler(service, config.analysis.debounce_interval_ms)
    service.add_listener(ResultPrinter())

    class FileChangeHandler(FileSystemEventHandler):
        def on_modified(self, event):
            if event.is_directory:
                return
            changed = Path(event.src_path)
            if path.is_file() and changed != path:
                return
            if changed.suffix.lower().lstrip('.') not in extensions:
                return
            content = read_source(changed)
            if content is not None:
                console.print(f"\n[blue]File changed: {changed}[/blue]")
                scheduler.schedule(str(changed), content)

        on_created = on_modified

    watch_root = path.parent if path.is_file() else path
    observer = Observer()
    observer.schedule(FileChangeHandler(), str(watch_root), recursive=path.is_dir())
    observer.start()
    console.print(f"\n[yellow]Watching {path} for changes...[/yellow]")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        observer.stop()
        console.print("\n[yellow]Stopped watching[/yellow]")
    finally:
        scheduler.shutdown(wait=False)
    observer.join()


@cli.group()
def profile():
    """Inspect and edit the learned preference profile."""
    pass


@profile.command('show')
@click.option('--output', '-o', type=click.Choice(['text', 'json']),
              default='text', help='Output format')
@click.pass_context
def profile_show(ctx, output):
    """Show learned weights, threshold and feedback counts."""
    engine = get_service(ctx).learning_engine
    current = engine.profile()
    stats = engine.statistics()

    if output == 'json':
        record = current.to_record()
        record['name'] = current.name
        record['apply_rate'] = stats.apply_rate
        click.echo(json.dumps(record, indent=2))
        return

    console.print(f"[bold]Profile:[/bold] {current.name}")
    console.print(str(stats))

    table = Table(title="Type weights")
    table.add_column("Type", style="blue")
    table.add_column("Weight", justify="right")
    table.add_column("Enabled")
    for suggestion_type in SuggestionType:
        enabled = suggestion_type not in current.disabled_types
        table.add_row(
            suggestion_type.display_name,
            f"{current.type_weight(suggestion_type):.2f}",
            "[green]yes[/green]" if enabled else "[red]no[/red]",
        )
    console.print(table)

    table = Table(title="Priority weights")
    table.add_column("Priority")
    table.add_column("Weight", justify="right")
    for priority in Priority:
        table.add_row(
            f"[{priority.color}]{priority.display_name}[/{priority.color}]",
            f"{current.priority_weight(priority):.2f}",
        )
    console.print(table)


@profile.command('reset')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def profile_reset(ctx, yes):
    """Forget all feedback and restore default weights."""
    if not yes and not click.confirm("Reset all learned preferences?"):
        console.print("[yellow]Reset cancelled[/yellow]")
        return
    get_service(ctx).learning_engine.reset()
    console.print("[green]Preference profile reset[/green]")


@profile.command('disable')
@click.argument('suggestion_type', type=click.Choice(TYPE_CHOICES, case_sensitive=False))
@click.pass_context
def profile_disable(ctx, suggestion_type):
    """Stop showing suggestions of a type."""
    suggestion_type = SuggestionType[suggestion_type.upper()]
    get_service(ctx).learning_engine.disable_type(suggestion_type)
    console.print(f"[green]Disabled {suggestion_type.display_name} suggestions[/green]")


@profile.command('enable')
@click.argument('suggestion_type', type=click.Choice(TYPE_CHOICES, case_sensitive=False))
@click.pass_context
def profile_enable(ctx, suggestion_type):
    """Show suggestions of a type again."""
    suggestion_type = SuggestionType[suggestion_type.upper()]
    get_service(ctx).learning_engine.enable_type(suggestion_type)
    console.print(f"[green]Enabled {suggestion_type.display_name} suggestions[/green]")


@profile.command('threshold')
@click.argument('value', type=float)
@click.pass_context
def profile_threshold(ctx, value):
    """Set the minimum confidence a suggestion needs to be shown."""
    engine = get_service(ctx).learning_engine
    try:
        engine.set_confidence_threshold(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='VALUE')
    console.print(
        f"[green]Confidence threshold set to {engine.profile().confidence_threshold:.2f}[/green]"
    )


def main():
    """Main entry point."""
    try:
        cli(obj={})
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
