"""
maskstream run - Transfer files through the anonymization pipeline.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from maskstream.config.loader import load_config
from maskstream.exceptions import ConfigurationError
from maskstream.job import JobSummary, TransferJob, run_job
from maskstream.listing.descriptor import FileDescriptor
from maskstream.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("maskstream.cli.run")

console = Console()


def run(
    files: list[Path] = typer.Argument(..., help="Source files to transfer"),
    config_path: Path = typer.Option(Path.cwd(), "--config", "-c", help="Config file, or directory holding config.yaml"),
    env: str | None = typer.Option(None, "--env", "-e", help="Environment (dev, staging, prod)"),
    source_root: Path | None = typer.Option(
        None,
        "--source-root",
        "-s",
        help="Listing root; destination keys keep its last component (default: each file's directory)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Anonymize and upload the given files.
    """
    try:
        config = load_config(config_path, env=env, strict_env=True)
        if verbose:
            config.data["logging"] = {**(config.data.get("logging") or {}), "level": "DEBUG"}
        setup_logging_from_config(config.data, config.path.parent if config.path else None)
        job = TransferJob.from_config(config)
    except ConfigurationError as e:
        logger.error(f"Configuration failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    try:
        descriptors = [
            FileDescriptor.from_path(path, source_root if source_root is not None else path.absolute().parent)
            for path in files
        ]
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    try:
        summary = asyncio.run(run_job(job, descriptors))
    except ConfigurationError as e:
        logger.error(f"Job aborted before any file was processed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    _print_summary(summary)
    if not summary.ok:
        raise typer.Exit(1)


def _print_summary(summary: JobSummary) -> None:
    table = Table(title="Transfers", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Destination", style="green")
    table.add_column("Rows", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Status")

    for result in summary.results:
        status = "[green]ok[/green]" if result.ok else f"[red]{result.error}[/red]"
        table.add_row(
            result.descriptor.full_path,
            result.destination_key,
            str(result.rows),
            str(result.bytes_written),
            status,
        )
    for descriptor in summary.skipped:
        table.add_row(descriptor.full_path, "", "", "", "[dim]skipped[/dim]")

    console.print(table)
    console.print(
        f"{summary.processed} processed, {summary.failed} failed, {len(summary.skipped)} skipped",
        highlight=False,
    )
