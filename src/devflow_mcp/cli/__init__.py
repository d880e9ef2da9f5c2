"""devflow command-line interface."""

import typer

from devflow_mcp import __version__
from devflow_mcp.cli.commands import mcp

app = typer.Typer(
    name="devflow",
    help="Developer-workflow MCP server",
    no_args_is_help=True,
)
app.add_typer(mcp.app, name="mcp")


def _version_callback(value: bool):
    if value:
        typer.echo(f"devflow {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Developer-workflow MCP server."""


def main():
    app()


__all__ = ["app", "main"]
