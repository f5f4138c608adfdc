"""
maskstream check - Validate a configuration without transferring anything.

Parses the field spec, builds every protector the spec needs and shows the
resulting per-column plan.
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from maskstream.config.loader import load_config
from maskstream.exceptions import ConfigurationError
from maskstream.job import TransferJob, build_registry
from maskstream.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("maskstream.cli.check")
console = Console()


def check(
    config_path: Path = typer.Option(Path.cwd(), "--config", "-c", help="Config file, or directory holding config.yaml"),
    env: str | None = typer.Option(None, "--env", "-e", help="Environment (dev, staging, prod)"),
    format: str = typer.Option("table", "--format", help="Output format: table, json"),
):
    """
    Validate configuration and initialize protectors.
    """
    if format not in ("table", "json"):
        typer.echo(f"Error: unknown format '{format}' (expected table or json)", err=True)
        raise typer.Exit(2)

    try:
        config = load_config(config_path, env=env, strict_env=True)
        setup_logging_from_config(config.data, config.path.parent if config.path else None)
        job = TransferJob.from_config(config)
        build_registry(job).close()
    except ConfigurationError as e:
        logger.error(f"Configuration check failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if format == "json":
        typer.echo(json.dumps(_plan(job), indent=2))
        return

    table = Table(title="Field plan", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Field", style="cyan")
    table.add_column("Anonymize")
    table.add_column("Format", style="green")
    for i, f in enumerate(job.fields):
        table.add_row(str(i), f.name, "[yellow]yes[/yellow]" if f.anonymize else "no", f.format)
    console.print(table)
    console.print(f"Destination: {job.destination.uri(job.destination_prefix or '')}", highlight=False)
    console.print("[green]Configuration OK[/green]")


def _plan(job: TransferJob) -> dict:
    return {
        "fields": [{"name": f.name, "anonymize": f.anonymize, "format": f.format} for f in job.fields],
        "destination": job.destination.uri(job.destination_prefix or ""),
        "max_concurrent_files": job.max_concurrent_files,
        "header": job.header,
    }
