"""
Rich renderables for graphs, metrics and edge weights.

Node and edge tables are what the CLI prints in place of a graph canvas;
layout is left to whatever consumes the JSON output.
"""

from rich.markup import escape
from rich.table import Table

from pipeline_lens.metrics.format import format_count, format_latency, format_rate
from pipeline_lens.metrics.runtime import RuntimeHistory
from pipeline_lens.traffic import EdgeState, EdgeWeight
from pipeline_lens.types import ComponentMetrics, MetricsView, PipelineGraph

KIND_COLORS = {
    "input": "blue",
    "processor": "magenta",
    "output": "green",
    "cache": "yellow",
    "rate_limit": "red",
}

STATE_STYLES = {
    EdgeState.RESOURCE: "dim",
    EdgeState.NEUTRAL: "white",
    EdgeState.DEAD: "red",
    EdgeState.NORMAL: "green",
    EdgeState.OVERFLOW: "bold yellow",
}


def _metric_cells(metrics: ComponentMetrics | None) -> list[str]:
    if metrics is None:
        return ["-"] * 6
    return [
        format_count(metrics.received),
        format_rate(metrics.received_rate),
        format_count(metrics.sent),
        format_rate(metrics.sent_rate),
        format_count(metrics.error),
        format_latency(metrics.latency_ns),
    ]


def graph_table(graph: PipelineGraph, view: MetricsView | None = None) -> Table:
    """Table of nodes, with their resolved metrics when a view is given."""
    table = Table(title="Pipeline Nodes")
    table.add_column("ID", style="cyan")
    table.add_column("Kind")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Metric Path", style="dim")
    if view is not None:
        for header in ("Recv", "Recv/s", "Sent", "Sent/s", "Errors", "P99"):
            table.add_column(header, justify="right")

    for node in graph.nodes:
        color = KIND_COLORS.get(node.kind.value, "white")
        row = [
            escape(node.id),
            f"[{color}]{node.kind.value}[/{color}]",
            escape(node.label),
            escape(node.component_type),
            escape(node.metric_path),
        ]
        if view is not None:
            row.extend(_metric_cells(view.lookup(node)))
        table.add_row(*row)

    return table


def edge_table(graph: PipelineGraph, weights: dict[str, EdgeWeight] | None = None) -> Table:
    """Table of edges, with traffic state when weights are given."""
    table = Table(title="Pipeline Edges")
    table.add_column("Source", style="cyan")
    table.add_column("Target", style="cyan")
    if weights is not None:
        table.add_column("State")
        table.add_column("Traffic", justify="right")
        table.add_column("Width", justify="right")

    for edge in graph.edges:
        row = [escape(edge.source), escape(edge.target)]
        weight = weights.get(edge.id) if weights is not None else None
        if weight is not None:
            style = STATE_STYLES[weight.state]
            row.extend(
                [
                    f"[{style}]{weight.state.value}[/{style}]",
                    weight.annotation or format_count(weight.traffic),
                    f"{weight.width:.1f}",
                ]
            )
        elif weights is not None:
            row.extend(["-", "-", "-"])
        table.add_row(*row)

    return table


def metrics_table(view: MetricsView) -> Table:
    """Table of metrics keyed by path, then any label-only keys."""
    table = Table(title="Component Metrics")
    table.add_column("Key", style="cyan")
    table.add_column("By")
    for header in ("Recv", "Recv/s", "Sent", "Sent/s", "Errors", "P99"):
        table.add_column(header, justify="right")

    for key, metrics in sorted(view.by_path.items()):
        table.add_row(escape(key), "path", *_metric_cells(metrics))
    for key, metrics in sorted(view.by_label.items()):
        table.add_row(escape(key), "label", *_metric_cells(metrics))

    return table


def runtime_line(runtime: RuntimeHistory) -> str:
    """One-line summary of the latest runtime snapshot."""
    latest = runtime.latest()
    if latest is None:
        return "[dim]No runtime data yet[/dim]"

    cpu = runtime.latest_cpu_percent()
    parts = [
        f"goroutines: [bold]{latest.goroutines:.0f}[/bold]",
        f"heap: [bold]{latest.heap_bytes / 1_048_576:.1f}MiB[/bold]",
        f"rss: [bold]{latest.resident_memory_bytes / 1_048_576:.1f}MiB[/bold]",
        f"cpu: [bold]{cpu:.1f}%[/bold]" if cpu is not None else "cpu: -",
        f"fds: [bold]{latest.open_fds:.0f}[/bold]",
    ]
    if latest.go_version:
        parts.append(f"[dim]{escape(latest.go_version)}[/dim]")
    return "  ".join(parts)
