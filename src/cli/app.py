"""Typer application entrypoint."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.table import Table

from asset_compress.codecs import available_algorithms
from asset_compress.config import COMPRESSED_FILE_EXTENSIONS, CompressionOptions, read_options_file
from asset_compress.engine import RunStatus, load_stats_manifest, plan_work_items, run_environment, scan_assets
from asset_compress.models import Asset
from asset_compress.report import bytes_to_human
from logging_config import configure_logging


configure_logging()


app = typer.Typer(help="Compress build output assets with gzip, brotli and zstd")


def _build_options(
    config: Optional[Path],
    algorithm: List[str],
    concurrency: Optional[int],
    threshold: Optional[int],
    include: List[str],
    include_pattern: List[str],
    exclude: List[str],
    exclude_pattern: List[str],
    no_include_filter: bool,
    print_result: Optional[bool],
) -> CompressionOptions:
    data: Dict[str, Any] = {}
    if config is not None:
        try:
            data = read_options_file(config)
        except (OSError, ValueError) as exc:
            typer.echo(f"Could not read config {config}: {exc}")
            raise typer.Exit(code=1)

    if algorithm:
        data["algorithms"] = list(algorithm)
    if concurrency is not None:
        data["concurrency"] = concurrency
    if threshold is not None:
        data["threshold"] = threshold
    if include or include_pattern:
        data["include"] = list(include) + [{"pattern": value} for value in include_pattern]
    if no_include_filter:
        data["include"] = None
    if exclude or exclude_pattern:
        data["exclude"] = list(exclude) + [{"pattern": value} for value in exclude_pattern]
    if print_result is not None:
        data["print_result"] = print_result

    try:
        return CompressionOptions.model_validate(data)
    except ValidationError as exc:
        typer.echo(f"Invalid compression options:\n{exc}")
        raise typer.Exit(code=1)


def _resolve_assets(output_dir: Optional[Path], stats: Optional[Path]) -> Tuple[Path, List[Asset]]:
    assets: Optional[List[Asset]] = None
    if stats is not None:
        try:
            stats_output, assets = load_stats_manifest(stats)
        except (OSError, ValueError, KeyError) as exc:
            typer.echo(f"Could not read stats manifest {stats}: {exc}")
            raise typer.Exit(code=1)
        output_dir = output_dir or stats_output
    if output_dir is None:
        typer.echo("An output directory is required (argument or 'outputPath' in --stats).")
        raise typer.Exit(code=1)
    output_dir = output_dir.resolve()
    if not output_dir.exists() or not output_dir.is_dir():
        typer.echo(f"Output directory not found: {output_dir}")
        raise typer.Exit(code=1)
    if assets is None:
        assets = scan_assets(output_dir)
    return output_dir, assets


@app.command("run")
def compress_run(
    output_dir: Optional[Path] = typer.Argument(None, help="Build output directory"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML or JSON options file"),
    stats: Optional[Path] = typer.Option(None, help="Build stats JSON with outputPath and assets"),
    algorithm: List[str] = typer.Option([], "--algorithm", "-a", help="Algorithm to apply (repeatable)"),
    concurrency: Optional[int] = typer.Option(None, min=1, help="Simultaneous compressions"),
    threshold: Optional[int] = typer.Option(None, min=0, help="Minimum asset size in bytes"),
    include: List[str] = typer.Option([], help="Substring an asset name must contain (repeatable)"),
    include_pattern: List[str] = typer.Option([], help="Regex an asset name must match (repeatable)"),
    exclude: List[str] = typer.Option([], help="Substring that excludes an asset (repeatable)"),
    exclude_pattern: List[str] = typer.Option([], help="Regex that excludes an asset (repeatable)"),
    no_include_filter: bool = typer.Option(False, "--no-include-filter", help="Consider every asset"),
    env: str = typer.Option("", help="Environment name used in the report"),
    print_result: Optional[bool] = typer.Option(None, "--print-result/--no-print-result", help="Log the size table"),
) -> None:
    """Write compressed siblings for every qualifying asset."""

    options = _build_options(
        config,
        algorithm,
        concurrency,
        threshold,
        include,
        include_pattern,
        exclude,
        exclude_pattern,
        no_include_filter,
        print_result,
    )
    output_dir, assets = _resolve_assets(output_dir, stats)
    summary = run_environment(output_dir, assets, options, environment_name=env)

    if summary.status == RunStatus.COMPLETED:
        written = len(summary.work_items) - len(summary.failures)
        typer.echo(f"Compression complete: {written} file(s) written, {len(summary.failures)} failure(s).")
    else:
        typer.echo(f"Compression skipped: {summary.status.value.replace('_', ' ')}.")


@app.command("plan")
def compress_plan(
    output_dir: Optional[Path] = typer.Argument(None, help="Build output directory"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML or JSON options file"),
    stats: Optional[Path] = typer.Option(None, help="Build stats JSON with outputPath and assets"),
    algorithm: List[str] = typer.Option([], "--algorithm", "-a", help="Algorithm to apply (repeatable)"),
    threshold: Optional[int] = typer.Option(None, min=0, help="Minimum asset size in bytes"),
    include: List[str] = typer.Option([], help="Substring an asset name must contain (repeatable)"),
    include_pattern: List[str] = typer.Option([], help="Regex an asset name must match (repeatable)"),
    exclude: List[str] = typer.Option([], help="Substring that excludes an asset (repeatable)"),
    exclude_pattern: List[str] = typer.Option([], help="Regex that excludes an asset (repeatable)"),
    no_include_filter: bool = typer.Option(False, "--no-include-filter", help="Consider every asset"),
) -> None:
    """List the compressions a run would perform without writing files."""

    options = _build_options(
        config,
        algorithm,
        None,
        threshold,
        include,
        include_pattern,
        exclude,
        exclude_pattern,
        no_include_filter,
        None,
    )
    output_dir, assets = _resolve_assets(output_dir, stats)
    items = plan_work_items(output_dir, assets, options)
    if not items:
        typer.echo("Nothing to compress.")
        return

    table = Table(title=f"Plan: {len(items)} compression(s)")
    table.add_column("Asset")
    table.add_column("Size", justify="right")
    table.add_column("Algorithm")
    table.add_column("Output")
    for item in items:
        suffix = item.algorithm.extension or "?"
        table.add_row(item.asset.name, bytes_to_human(item.asset.size), item.algorithm.name, item.asset.name + suffix)
    rprint(table)


@app.command("algorithms")
def list_algorithms() -> None:
    """Show supported algorithms and whether this runtime can use them."""

    table = Table(title="Algorithms")
    table.add_column("Name")
    table.add_column("Suffix")
    table.add_column("Status")
    for name, reason in available_algorithms().items():
        status = "[green]available[/green]" if reason is None else f"[yellow]{reason}[/yellow]"
        table.add_row(name, COMPRESSED_FILE_EXTENSIONS[name], status)
    rprint(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
