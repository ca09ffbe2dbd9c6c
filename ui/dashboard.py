"""Real-time CLI dashboard for gateway monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from core.router import RouteDecision
from ui.log_utils import strip_query, write_cli_log

console = Console()

KIND_STYLES = {
    "preflight": "dim",
    "named": "green",
    "passthrough": "blue",
    "forbidden": "red",
    "redirect": "yellow",
}


class RequestInfo:
    """Info about a single request."""

    def __init__(self, method: str, path: str, decision: RouteDecision, timestamp: datetime):
        self.method = method
        self.path = path[:60] + "..." if len(path) > 60 else path
        self.decision = decision
        self.kind = decision.kind
        self.timestamp = timestamp
        self.status: int | None = None


class Dashboard:
    """Real-time dashboard showing routing decisions and upstream results."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._counts = {kind: 0 for kind in KIND_STYLES}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_route(self, method: str, path: str, decision: RouteDecision) -> None:
        """Log the routing decision for an inbound request."""
        with self._lock:
            self._counts[decision.kind] += 1
            info = RequestInfo(method, path, decision, datetime.now())
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]
            self._refresh()

            target = strip_query(decision.target_url) if decision.target_url else "-"
            write_cli_log(decision.kind.upper(), f"{method} {path}", target=target)

    def log_forward(self, decision: RouteDecision, status: int) -> None:
        """Log the upstream status of a relayed request."""
        with self._lock:
            # Each request gets its own decision object
            for info in self._recent:
                if info.decision is decision:
                    info.status = status
                    break
            self._refresh()
            write_cli_log("UPSTREAM", strip_query(decision.target_url or "-"), status=status)

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{strip_query(route)} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], route=strip_query(route), status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Repo Gateway", style="bold cyan")
        for kind, style in KIND_STYLES.items():
            stats.append("  |  ")
            stats.append(f"{kind}: {self._counts[kind]}", style=style)
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Route", width=11)
            table.add_column("Path", ratio=3)
            table.add_column("Status", width=6)

            for req in self._recent:
                table.add_row(
                    req.timestamp.strftime("%H:%M:%S"),
                    req.method,
                    Text(req.kind, style=KIND_STYLES[req.kind]),
                    req.path,
                    str(req.status) if req.status is not None else "",
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Serving {self.config.repo_home_url} on "
                f"http://{self.config.proxy.host}:{self.config.proxy.port}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
