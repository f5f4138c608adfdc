"""
Main CLI entry point.
"""

import typer

from maskstream import __version__
from maskstream.cli import check, run


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"maskstream version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="maskstream",
    help="Maskstream - stream files through decryption, decompression and field anonymization",
    add_completion=False,
)

app.command(name="run")(run.run)
app.command(name="check")(check.check)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Maskstream - stream files through decryption, decompression and field anonymization.

    Run 'maskstream <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
