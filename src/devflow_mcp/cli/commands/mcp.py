"""MCP server management commands."""

import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from devflow_mcp.mcp.config import (
    CONFIG_DIR,
    MCPConfig,
    PIDFileManager,
    ServerAlreadyRunning,
    ServerNotRunning,
    default_pid_file,
)
from devflow_mcp.mcp.server import MCPServer

app = typer.Typer(help="MCP server management")
console = Console()
# stdout carries protocol messages under the stdio transport
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _get_project_root() -> Path:
    """Get project root directory (contains .devflow/)."""
    cwd = Path.cwd()

    current = cwd
    while current != current.parent:
        if (current / CONFIG_DIR).exists():
            return current
        current = current.parent

    return cwd


def _configure_logging(level: str) -> None:
    """Route all log records through rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _setup_signal_handlers(pid_manager: PIDFileManager):
    """Release the PID file and exit on SIGTERM or SIGINT."""
    def signal_handler(signum, frame):
        err_console.print(f"\n[yellow]Received {signal.Signals(signum).name}, shutting down[/yellow]")
        pid_manager.release()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def _build_server(capabilities: Optional[List[str]]) -> MCPServer:
    """Create an in-process server for inspection commands."""
    project_root = _get_project_root()
    config = MCPConfig.load(project_root)
    return MCPServer(
        capabilities=capabilities or config.capabilities,
        project_root=project_root,
    )


@app.command()
def start(
    host: str = typer.Option(None, help="Server host (network transports only, overrides config)"),
    port: int = typer.Option(None, help="Server port (network transports only, overrides config)"),
    transport: str = typer.Option(None, help="Transport: stdio, sse or http (overrides config)"),
    capability: Optional[List[str]] = typer.Option(
        None, "--capability", "-c", help="Capability set to load (repeatable, overrides config)"
    ),
    log_level: str = typer.Option(None, help="Log level (overrides config)"),
    config_file: bool = typer.Option(True, help="Load from .devflow/mcp-config.yaml"),
):
    """
    Start the MCP server.

    Configuration is loaded from .devflow/mcp-config.yaml if it exists.
    Environment variables override the config file; command-line options
    override both.

    Examples:
        # Start with stdio transport (uses config or defaults)
        devflow mcp start

        # Start with SSE transport (override config)
        devflow mcp start --transport sse --host 0.0.0.0 --port 8000

        # Load only the system and review capability sets
        devflow mcp start -c system -c review

        # Ignore config file (use CLI options only)
        devflow mcp start --no-config-file --transport stdio
    """
    project_root = _get_project_root()
    pid_manager: Optional[PIDFileManager] = None

    try:
        if config_file:
            config = MCPConfig.load(project_root)
        else:
            config = MCPConfig()

        if host is not None:
            config.host = host
        if port is not None:
            config.port = port
        if transport is not None:
            config.transport = transport
        if capability:
            config.capabilities = list(capability)
        if log_level is not None:
            config.log_level = log_level.upper()

        _configure_logging(config.log_level)

        # Build the server before claiming the PID file so bad options leave no trace
        server = MCPServer(
            host=config.host,
            port=config.port,
            transport=config.transport,
            capabilities=config.capabilities,
            project_root=project_root,
        )

        pid_manager = PIDFileManager(config.pid_file or default_pid_file(project_root))
        try:
            pid_manager.acquire()
        except ServerAlreadyRunning as e:
            err_console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        _setup_signal_handlers(pid_manager)

        err_console.print("[green]Starting MCP server...[/green]")
        err_console.print(f"Transport: {config.transport}")
        if config.transport != "stdio":
            err_console.print(f"Listening on {config.host}:{config.port}")
        err_console.print(
            "Capability sets: " + ", ".join(cs.name for cs in server.capability_sets)
        )
        err_console.print(f"PID file: {pid_manager.pid_file}")

        err_console.print("\n[dim]Press Ctrl+C to stop server[/dim]\n")

        server.start()
    except typer.Exit:
        raise
    except ValueError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    except RuntimeError as e:
        err_console.print(f"[red]Error starting server:[/red] {e}")
        if pid_manager is not None:
            pid_manager.release()
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Server stopped by user[/yellow]")
        if pid_manager is not None:
            pid_manager.release()
        raise typer.Exit(0)
    except Exception as e:
        logger.debug("Server crashed", exc_info=True)
        err_console.print(f"[red]Unexpected error:[/red] {e}")
        if pid_manager is not None:
            pid_manager.release()
        raise typer.Exit(1)


@app.command()
def status():
    """
    Check if MCP server is running.

    Displays server status, PID, and configuration information.
    Exits with code 1 when no server is running.

    Examples:
        devflow mcp status
    """
    project_root = _get_project_root()

    try:
        config = MCPConfig.load(project_root)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    pid_manager = PIDFileManager(config.pid_file or default_pid_file(project_root))
    server_status = pid_manager.status()

    table = Table(title="MCP Server Status", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    if server_status.running:
        table.add_row("Status", "[green]Running[/green]")
        table.add_row("PID", str(server_status.pid))
    else:
        table.add_row("Status", "[red]Not running[/red]")

    table.add_row("PID File", str(server_status.pid_file))
    table.add_row("Transport", config.transport)
    if config.transport != "stdio":
        table.add_row("Host", config.host)
        table.add_row("Port", str(config.port))
    table.add_row(
        "Capabilities",
        ", ".join(config.capabilities) if config.capabilities is not None else "all",
    )
    table.add_row("Log Level", config.log_level)

    console.print(table)

    if not server_status.running:
        raise typer.Exit(1)


@app.command()
def stop(
    timeout: float = typer.Option(10, help="Seconds to wait for the server to exit after SIGTERM"),
):
    """
    Stop the project's MCP server.

    Signals the process recorded in the PID file and waits until it exits.
    Exits with code 1 when nothing is running or the wait times out.

    Examples:
        devflow mcp stop
        devflow mcp stop --timeout 30
    """
    project_root = _get_project_root()

    try:
        config = MCPConfig.load(project_root)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    pid_manager = PIDFileManager(config.pid_file or default_pid_file(project_root))
    pid = pid_manager.read()

    try:
        stopped = pid_manager.stop(timeout=timeout)
    except ServerNotRunning as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except RuntimeError as e:
        console.print(f"[red]Cannot stop server:[/red] {e}")
        raise typer.Exit(1)

    if not stopped:
        console.print(
            f"[red]Server PID {pid} is still running after {timeout:g}s.[/red] "
            "Retry with a longer --timeout or kill it manually."
        )
        raise typer.Exit(1)

    console.print(f"[green]Stopped devflow MCP server (PID {pid})[/green]")


@app.command()
def tools(
    capability: Optional[List[str]] = typer.Option(
        None, "--capability", "-c", help="Capability set to load (repeatable)"
    ),
):
    """
    List registered tools, resources and prompts.

    Examples:
        devflow mcp tools
        devflow mcp tools -c project
    """
    try:
        server = _build_server(capability)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    tool_table = Table(title="Tools")
    tool_table.add_column("Name", style="cyan")
    tool_table.add_column("Description")
    tool_table.add_column("Required")
    for tool in server.list_tools():
        required = tool["inputSchema"].get("required", [])
        tool_table.add_row(tool["name"], tool["description"], ", ".join(required) or "-")
    console.print(tool_table)

    resources = server.list_resources()
    if resources:
        resource_table = Table(title="Resources")
        resource_table.add_column("URI", style="cyan")
        resource_table.add_column("Name")
        resource_table.add_column("MIME Type")
        for resource in resources:
            resource_table.add_row(resource["uri"], resource["name"], resource.get("mimeType") or "-")
        console.print(resource_table)

    prompts = server.list_prompts()
    if prompts:
        prompt_table = Table(title="Prompts")
        prompt_table.add_column("Name", style="cyan")
        prompt_table.add_column("Description")
        prompt_table.add_column("Arguments")
        for prompt in prompts:
            arguments = ", ".join(arg["name"] for arg in prompt.get("arguments", []))
            prompt_table.add_row(prompt["name"], prompt.get("description") or "", arguments or "-")
        console.print(prompt_table)


@app.command()
def call(
    name: str = typer.Argument(..., help="Tool name"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
    capability: Optional[List[str]] = typer.Option(
        None, "--capability", "-c", help="Capability set to load (repeatable)"
    ),
):
    """
    Invoke a tool in-process and print the result envelope as JSON.

    Exits with code 1 when the result is an error.

    Examples:
        devflow mcp call health_check
        devflow mcp call project_structure --args '{"path": "src"}'
    """
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --args JSON:[/red] {e}")
        raise typer.Exit(1)

    if not isinstance(arguments, dict):
        console.print("[red]Invalid --args JSON:[/red] expected an object")
        raise typer.Exit(1)

    try:
        server = _build_server(capability)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    result = asyncio.run(server.invoke(name, arguments))
    typer.echo(json.dumps(result.to_dict(), indent=2))

    if result.is_error:
        raise typer.Exit(1)
