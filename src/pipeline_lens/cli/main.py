"""Pipeline lens CLI - pipeline topology and live traffic from the terminal.

Commands:
- targets: List registered targets
- graph: Resolve a pipeline definition file (optionally with a metrics dump)
- metrics: Parse and aggregate an exposition file
- watch: Poll a live target and render nodes, edges and runtime stats
"""

import asyncio
import json
import logging
import signal
from dataclasses import asdict
from pathlib import Path

import typer
from rich.console import Console, Group
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from pipeline_lens.cli.render import edge_table, graph_table, metrics_table, runtime_line
from pipeline_lens.client import create_client
from pipeline_lens.config import get_settings
from pipeline_lens.exceptions import ParseError, UnknownTargetError
from pipeline_lens.graph.resolver import resolve_graph
from pipeline_lens.metrics.aggregator import aggregate
from pipeline_lens.metrics.parser import parse_exposition
from pipeline_lens.poller import MetricsPoller
from pipeline_lens.session import MonitorSession, TargetContext
from pipeline_lens.targets import load_targets
from pipeline_lens.traffic import resolve_node_metrics, weigh_edges

app = typer.Typer(
    name="pipeline-lens",
    help="Pipeline topology and live traffic for stream processors",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _read_text(path: Path) -> str:
    try:
        return path.read_text()
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot read {path}: {escape(str(e))}")
        raise typer.Exit(1)


@app.command("targets")
def list_targets(
    targets_path: Path = typer.Option(
        None, "--targets", "-t", help="Targets JSON file (default: $PIPELINE_LENS_TARGETS_PATH)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List registered targets."""
    path = targets_path or get_settings().targets_path
    try:
        targets = load_targets(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] cannot load targets from {path}: {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps([t.model_dump() for t in targets], indent=2))
        return

    table = Table(title="Targets")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Description", style="dim")
    for t in targets:
        table.add_row(escape(t.name), escape(t.url), escape(t.description or ""))
    console.print(table)


@app.command("graph")
def show_graph(
    config_file: Path = typer.Argument(..., help="Pipeline definition YAML"),
    metrics_file: Path = typer.Option(
        None, "--metrics", "-m", help="Exposition text to overlay on the graph"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Resolve a pipeline definition into nodes and edges."""
    try:
        graph = resolve_graph(_read_text(config_file))
        view = aggregate(parse_exposition(_read_text(metrics_file))) if metrics_file else None
    except ParseError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    weights = weigh_edges(graph, resolve_node_metrics(graph, view)) if view is not None else None

    if json_output:
        data = graph.to_dict()
        if view is not None:
            data["metrics"] = view.to_dict()
        if weights is not None:
            data["weights"] = {eid: asdict(w) for eid, w in weights.items()}
        print(json.dumps(data, indent=2, default=str))
        return

    console.print(graph_table(graph, view))
    console.print(edge_table(graph, weights))


@app.command("metrics")
def show_metrics(
    metrics_file: Path = typer.Argument(..., help="Exposition text file"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Parse and aggregate an exposition dump."""
    try:
        view = aggregate(parse_exposition(_read_text(metrics_file)))
    except ParseError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(view.to_dict(), indent=2))
        return

    console.print(metrics_table(view))


def _dashboard(ctx: TargetContext) -> Group:
    parts = [f"[bold]{escape(ctx.name)}[/bold]  {runtime_line(ctx.runtime)}"]
    if ctx.graph is None:
        parts.append("[dim]Waiting for pipeline config...[/dim]")
        return Group(*parts)
    return Group(*parts, graph_table(ctx.graph, ctx.latest), edge_table(ctx.graph, ctx.edge_weights()))


@app.command("watch")
def watch(
    target: str = typer.Argument(..., help="Target name from the registry"),
    targets_path: Path = typer.Option(None, "--targets", "-t", help="Targets JSON file"),
    interval: float = typer.Option(None, "--interval", "-i", help="Poll interval in seconds"),
    count: int = typer.Option(0, "--count", "-n", help="Stop after N polls (0 = run until Ctrl+C)"),
) -> None:
    """
    Poll a live target and render its graph with traffic.

    Environment variables:
        PIPELINE_LENS_TARGETS_PATH: Targets JSON file
        PIPELINE_LENS_POLL_INTERVAL_SECONDS: Poll interval
        PIPELINE_LENS_CONFIG_TTL_SECONDS: Config refresh interval
    """
    settings = get_settings()
    path = targets_path or settings.targets_path
    poll_interval = interval if interval is not None else settings.poll_interval_seconds

    try:
        targets = load_targets(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] cannot load targets from {path}: {escape(str(e))}")
        raise typer.Exit(1)

    session = MonitorSession(
        targets,
        client_factory=lambda t: create_client(t.url, timeout=settings.http_timeout_seconds),
        history_points=settings.history_points,
        runtime_history_points=settings.runtime_history_points,
    )
    try:
        session.select(target)
    except UnknownTargetError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    async def _run() -> None:
        def render(ctx: TargetContext) -> None:
            console.clear()
            console.print(_dashboard(ctx))

        poller = MetricsPoller(
            session,
            interval_seconds=poll_interval,
            config_ttl_seconds=settings.config_ttl_seconds,
            on_update=render,
        )
        try:
            if count > 0:
                for i in range(count):
                    await poller.tick()
                    if i < count - 1:
                        await asyncio.sleep(poll_interval)
            else:
                loop = asyncio.get_running_loop()
                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, poller.stop)
                await poller.run()
        finally:
            await session.aclose()

    asyncio.run(_run())


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
