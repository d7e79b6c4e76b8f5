"""Prometheus metrics describing the lens's own polling."""

from prometheus_client import Counter, Gauge

POLL_CYCLES = Counter(
    "pipeline_lens_poll_cycles_total",
    "Metrics poll cycles by outcome",
    ["target", "result"],  # "ok", "error" or "stale"
)

SAMPLES_PARSED = Counter(
    "pipeline_lens_samples_parsed_total",
    "Exposition samples parsed",
    ["target"],
)

CONFIG_REFRESHES = Counter(
    "pipeline_lens_config_refreshes_total",
    "Pipeline config fetch-and-resolve cycles by outcome",
    ["target", "result"],
)

GRAPH_NODES = Gauge(
    "pipeline_lens_graph_nodes",
    "Nodes in the most recently resolved graph",
    ["target"],
)


def record_poll(target: str, result: str, samples: int = 0) -> None:
    """Record one metrics poll outcome."""
    POLL_CYCLES.labels(target=target, result=result).inc()
    if samples:
        SAMPLES_PARSED.labels(target=target).inc(samples)


def record_config_refresh(target: str, result: str, node_count: int | None = None) -> None:
    """Record one config refresh outcome."""
    CONFIG_REFRESHES.labels(target=target, result=result).inc()
    if node_count is not None:
        GRAPH_NODES.labels(target=target).set(node_count)
