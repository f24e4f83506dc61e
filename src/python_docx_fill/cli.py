"""Command-line interface for python-docx-fill.

Provides commands for scanning and filling Word document placeholders from the terminal.
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from . import __version__
from .config import EngineConfig, ReplaceOptions
from .discovery import discover_templates
from .engine import PlaceholderEngine
from .errors import DocxFillError, UnmappedPlaceholderError
from .models.replacement import ReplacementMap
from .models.template_file import TemplateFile
from .results import PlaceholderStatistics

app = typer.Typer(
    name="docx-fill",
    help="Scan and fill placeholders in Word documents from the command line.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"docx-fill version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Engine configuration file (YAML or JSON)"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """Scan and fill placeholders in Word documents from the command line."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        ctx.obj = EngineConfig.from_file(config) if config else EngineConfig()
    except DocxFillError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _config(ctx: typer.Context) -> EngineConfig:
    return ctx.obj if isinstance(ctx.obj, EngineConfig) else EngineConfig()


def _templates(paths: list[Path], config: EngineConfig) -> list[TemplateFile]:
    templates = discover_templates(paths, backup_suffix=config.backup_suffix)
    if not templates:
        typer.echo("Error: No .docx files found", err=True)
        raise typer.Exit(1)
    return templates


def _echo_statistics(stats: PlaceholderStatistics) -> None:
    typer.echo("")
    typer.echo("Statistics:")
    typer.echo(f"  Average per file: {stats.average_per_file:.1f}")
    typer.echo("  Most common:")
    for placeholder in stats.most_common:
        typer.echo(f"    {placeholder.name}: {placeholder.total_occurrences}")
    typer.echo("  Distribution (placeholders per file: files):")
    for count, files in stats.distribution.items():
        typer.echo(f"    {count}: {files}")


@app.command()
def scan(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to scan")],
    pattern: Annotated[
        str | None, typer.Option("--pattern", "-p", help="Placeholder regex pattern")
    ] = None,
    ignore_case: Annotated[
        bool, typer.Option("--ignore-case", "-i", help="Match placeholder names case-insensitively")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Output results as JSON")] = False,
    show_statistics: Annotated[
        bool, typer.Option("--statistics", "-s", help="Include placeholder statistics")
    ] = False,
) -> None:
    """List the placeholders found in documents."""
    try:
        config = _config(ctx).with_overrides(
            placeholder_pattern=pattern, case_sensitive=False if ignore_case else None
        )
        engine = PlaceholderEngine(config)
        result = engine.scan(_templates(paths, config))
    except DocxFillError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if as_json:
        payload = {
            "files_scanned": result.total_files_scanned,
            "files_with_placeholders": result.files_with_placeholders,
            "total_occurrences": result.total_occurrences,
            "placeholders": [
                {
                    "name": p.name,
                    "kind": p.kind.value,
                    "occurrences": p.total_occurrences,
                    "locations": [
                        {
                            "file": loc.file_path,
                            "occurrences": loc.occurrences,
                            "context": loc.context,
                        }
                        for loc in p.locations
                    ],
                }
                for p in result.placeholders
            ],
            "errors": [
                {"file": e.file_path, "kind": e.kind.value, "message": e.message}
                for e in result.errors
            ],
        }
        if show_statistics:
            stats = engine.statistics(result)
            payload["statistics"] = {
                "unique_placeholders": stats.total_unique_placeholders,
                "total_occurrences": stats.total_occurrences,
                "average_per_file": round(stats.average_per_file, 2),
                "scan_duration_ms": round(stats.scan_duration * 1000),
                "most_common": [
                    {"name": p.name, "occurrences": p.total_occurrences}
                    for p in stats.most_common
                ],
                "distribution": {str(k): v for k, v in stats.distribution.items()},
            }
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        for placeholder in result.placeholders:
            files = ", ".join(loc.display_location for loc in placeholder.locations)
            typer.echo(f"{placeholder.name}: {placeholder.total_occurrences} ({files})")
        for error in result.errors:
            typer.echo(f"Failed: {error.display_message}", err=True)
        typer.echo(str(result))
        if show_statistics:
            _echo_statistics(engine.statistics(result))

    if not result.is_successful:
        raise typer.Exit(1)


@app.command()
def preview(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to preview")],
    map_file: Annotated[
        Path, typer.Option("--map", "-m", help="Replacement map file (YAML or JSON)")
    ],
) -> None:
    """Show what a replace would change without modifying any file."""
    try:
        config = _config(ctx)
        replacement_map = ReplacementMap.from_file(map_file)
        result = PlaceholderEngine(config).preview(_templates(paths, config), replacement_map)
    except DocxFillError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for file_preview in result.files:
        name = Path(file_preview.file_path).name
        if not file_preview.can_process:
            typer.echo(f"✗ {name}: {file_preview.error}", err=True)
            continue
        typer.echo(f"{name}: {file_preview.replacements} replacements")
        for detail in file_preview.details:
            new_value = detail.new_value if detail.will_replace else "(unmapped)"
            typer.echo(f"  {detail.current_value} -> {new_value} (x{detail.occurrences})")
    typer.echo(f"Total: {result.total_replacements} replacements")


@app.command()
def replace(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to fill")],
    map_file: Annotated[
        Path, typer.Option("--map", "-m", help="Replacement map file (YAML or JSON)")
    ],
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail if any placeholder has no value")
    ] = False,
    no_backup: Annotated[
        bool, typer.Option("--no-backup", help="Do not back up files before changing them")
    ] = False,
    keep_backups: Annotated[
        bool, typer.Option("--keep-backups", help="Keep backups after a successful run")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Report replacements without changing files")
    ] = False,
) -> None:
    """Replace placeholders with values from a map file."""
    options = ReplaceOptions(
        strict=strict or None,
        create_backups=False if no_backup else None,
        retain_backups=keep_backups or None,
        dry_run=dry_run,
    )
    try:
        config = _config(ctx)
        replacement_map = ReplacementMap.from_file(map_file)
        result = PlaceholderEngine(config).replace(
            _templates(paths, config), replacement_map, options
        )
    except UnmappedPlaceholderError as e:
        typer.echo(f"Error: {e}", err=True)
        if e.validation is not None:
            for issue in e.validation.errors:
                typer.echo(f"  - {issue.message}", err=True)
        raise typer.Exit(1)
    except DocxFillError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for file_result in result.file_results:
        typer.echo(str(file_result), err=not file_result.success)
    typer.echo(str(result))

    if not result.is_successful:
        raise typer.Exit(1)


@app.command()
def backup(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to back up")],
) -> None:
    """Create sibling backups of documents."""
    try:
        config = _config(ctx)
        result = PlaceholderEngine(config).create_backups(_templates(paths, config))
    except DocxFillError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for source, backup_path in result.backups.items():
        typer.echo(f"{Path(source).name} -> {backup_path}")
        default_name = Path(source).name + config.backup_suffix
        if Path(backup_path).name != default_name:
            typer.echo(f"  ({default_name} already exists; backup numbered instead)")
    for failure in result.failures:
        typer.echo(f"✗ {Path(failure.source_path).name}: {failure.message}", err=True)
    typer.echo(str(result))

    if not result.is_successful:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
