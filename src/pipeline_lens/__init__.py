"""
Pipeline lens: stream pipeline topology correlated with live metrics.

This package resolves a pipeline's YAML definition into a component graph,
ingests its Prometheus exposition metrics on every poll, and weights the
graph's edges by observed traffic.

Key entry points:
- resolve_graph: YAML text -> PipelineGraph
- parse_exposition / aggregate: exposition text -> MetricsView
- RateComputer / MetricsHistory: per-second rates and bounded history
- weigh_edges: graph + metrics -> per-edge visual weight
- MonitorSession / MetricsPoller: per-target state and the poll loop
"""

from pipeline_lens.exceptions import (
    NoTargetSelectedError,
    ParseError,
    StaleResultError,
    UnknownTargetError,
)
from pipeline_lens.graph import graph_from_config, resolve_graph
from pipeline_lens.metrics import (
    HistoryBuffer,
    MetricsHistory,
    RateComputer,
    RuntimeHistory,
    RuntimeSnapshot,
    aggregate,
    parse_exposition,
)
from pipeline_lens.poller import MetricsPoller
from pipeline_lens.session import MonitorSession, TargetContext
from pipeline_lens.traffic import (
    EdgeState,
    EdgeStyleConfig,
    EdgeWeight,
    resolve_node_metrics,
    weigh_edges,
)
from pipeline_lens.types import (
    ComponentMetrics,
    MetricsTimePoint,
    MetricsView,
    NodeKind,
    PipelineEdge,
    PipelineGraph,
    PipelineNode,
    Sample,
)

__all__ = [
    # Graph
    "resolve_graph",
    "graph_from_config",
    # Metrics
    "parse_exposition",
    "aggregate",
    "RateComputer",
    "HistoryBuffer",
    "MetricsHistory",
    "RuntimeHistory",
    "RuntimeSnapshot",
    # Traffic
    "weigh_edges",
    "resolve_node_metrics",
    "EdgeState",
    "EdgeStyleConfig",
    "EdgeWeight",
    # Session
    "MonitorSession",
    "TargetContext",
    "MetricsPoller",
    # Types
    "Sample",
    "ComponentMetrics",
    "MetricsTimePoint",
    "MetricsView",
    "NodeKind",
    "PipelineNode",
    "PipelineEdge",
    "PipelineGraph",
    # Errors
    "ParseError",
    "NoTargetSelectedError",
    "UnknownTargetError",
    "StaleResultError",
]
