"""CLI entry point for repo-gateway."""

import sys
from datetime import datetime

from rich.console import Console
from rich.table import Table

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Edit {CONFIG_FILE} and fix the routing section[/dim]")
        sys.exit(1)

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg in ("--check", "--routes"):
            print_routes(config)
            return

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

        console.print(f"[red][ERROR][/red] Unknown argument: {arg}")
        _print_help()
        sys.exit(2)

    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    # Run with dashboard
    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Gateway started", port=config.proxy.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Gateway stopped", duration=str(duration))
        dashboard.stop()


def print_routes(config: Config) -> None:
    """Print the named routes and allow-list of a validated config."""
    table = Table(title="Named routes", header_style="bold")
    table.add_column("Path", style="cyan")
    table.add_column("Upstream")
    for path, script in config.routing.routes.items():
        table.add_row(path, config.route_target(script))
    console.print(table)

    console.print("[bold]Allowed prefixes:[/bold]")
    for prefix in config.allow_list:
        console.print(f"  {prefix}")
    console.print(f"[bold]Fallback redirect:[/bold] {config.repo_home_url}")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Repo Gateway[/bold cyan]

Relays install scripts and allow-listed repository URLs; redirects everything else.

[bold]Usage:[/bold]
    repo-gateway              Start with live dashboard
    repo-gateway --check      Validate config and show routes
    repo-gateway --config     Show config location
    repo-gateway --help       Show this help

[bold]Examples:[/bold]
    curl -fsSL http://localhost:8080/install | sh
    git clone http://localhost:8080/https://github.com/<owner>/<repo>
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
