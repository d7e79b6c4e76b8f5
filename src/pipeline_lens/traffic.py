"""
Traffic-based edge weighting.

Combines a resolved graph with the latest per-node metrics to decide how
each edge should be drawn:

- resource: edge touches a cache or rate limit, fixed muted dashed style
- neutral: no traffic figure could be resolved for the edge
- dead: traffic is exactly zero, minimum width, dashed, annotated "0"
- normal: width scales linearly with traffic / max traffic
- overflow: traffic exceeds total ingress (fan-out or duplication),
  fixed width above the normal maximum

Edge traffic is the target's received count, falling back to the source's
sent count, then the target's sent count (terminal outputs often expose
only `sent`). NaN and negative readings are skipped, and non-finite
values never take part in normalization.
"""

import math
from dataclasses import dataclass
from enum import Enum

from pipeline_lens.types import (
    ComponentMetrics,
    MetricsView,
    NodeId,
    NodeKind,
    PipelineEdge,
    PipelineGraph,
)


class EdgeState(str, Enum):
    """Visual state assigned to an edge."""

    RESOURCE = "resource"
    NEUTRAL = "neutral"
    DEAD = "dead"
    NORMAL = "normal"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class EdgeStyleConfig:
    """
    Width policy for edge rendering.

    Attributes:
        min_width: Width for the smallest non-zero traffic, and dead edges
        max_width: Width for traffic equal to the max traffic
        overflow_width: Fixed width for overflow edges, must exceed max_width
        neutral_width: Width when traffic is unknown
        resource_width: Width for edges into caches and rate limits
    """

    min_width: float = 1.5
    max_width: float = 6.0
    overflow_width: float = 8.0
    neutral_width: float = 2.0
    resource_width: float = 1.0

    def __post_init__(self) -> None:
        if self.overflow_width <= self.max_width:
            raise ValueError("overflow_width must be greater than max_width")
        if self.min_width > self.max_width:
            raise ValueError("min_width must not exceed max_width")


DEFAULT_STYLE = EdgeStyleConfig()


@dataclass(frozen=True)
class EdgeWeight:
    """
    Rendering decision for one edge.

    Attributes:
        edge_id: The edge this applies to
        state: Visual state
        width: Stroke width
        traffic: Traffic figure used, None if unresolved or a resource edge
        dashed: Whether the stroke is dashed
        annotation: Label text for the edge, if any
    """

    edge_id: str
    state: EdgeState
    width: float
    traffic: float | None = None
    dashed: bool = False
    annotation: str | None = None


def resolve_node_metrics(graph: PipelineGraph, view: MetricsView) -> dict[NodeId, ComponentMetrics]:
    """
    Match each node to its metrics, by metric path then by declared label.

    Returns:
        Map of node id to metrics, only for nodes that matched
    """
    resolved: dict[NodeId, ComponentMetrics] = {}
    for node in graph.nodes:
        metrics = view.lookup(node)
        if metrics is not None:
            resolved[node.id] = metrics
    return resolved


def usable_traffic(value: float | None) -> bool:
    """True for a reading that can size an edge: not NaN and not negative."""
    return value is not None and not math.isnan(value) and value >= 0


def max_input_received(graph: PipelineGraph, node_metrics: dict[NodeId, ComponentMetrics]) -> float:
    """Largest finite `received` across input nodes, 0 if none report one."""
    values = [
        m.received
        for node in graph.nodes_of_kind(NodeKind.INPUT)
        if (m := node_metrics.get(node.id)) is not None
        and usable_traffic(m.received)
        and math.isfinite(m.received)
    ]
    return max(values, default=0.0)


def edge_traffic(edge: PipelineEdge, node_metrics: dict[NodeId, ComponentMetrics]) -> float | None:
    """Traffic carried by an edge, or None if no figure resolves."""
    source = node_metrics.get(edge.source)
    target = node_metrics.get(edge.target)

    candidates = (
        target.received if target is not None else None,
        source.sent if source is not None else None,
        target.sent if target is not None else None,
    )
    for value in candidates:
        if usable_traffic(value):
            return value
    return None


def classify_edge(
    edge_id: str,
    traffic: float | None,
    max_traffic: float,
    max_input: float,
    style: EdgeStyleConfig = DEFAULT_STYLE,
) -> EdgeWeight:
    """
    Apply the width policy to one non-resource edge.

    Args:
        edge_id: Edge being classified
        traffic: Edge traffic, None if unresolved
        max_traffic: Normalization ceiling (at least 1)
        max_input: Total ingress, 0 if unknown
        style: Width policy
    """
    if traffic is None:
        return EdgeWeight(edge_id, EdgeState.NEUTRAL, style.neutral_width)

    if traffic == 0:
        return EdgeWeight(
            edge_id, EdgeState.DEAD, style.min_width, traffic=0.0, dashed=True, annotation="0"
        )

    # +Inf has no place on the linear scale
    if math.isinf(traffic) or (max_input > 0 and traffic > max_input):
        return EdgeWeight(edge_id, EdgeState.OVERFLOW, style.overflow_width, traffic=traffic)

    width = style.min_width + (traffic / max_traffic) * (style.max_width - style.min_width)
    return EdgeWeight(edge_id, EdgeState.NORMAL, width, traffic=traffic)


def weigh_edges(
    graph: PipelineGraph,
    node_metrics: dict[NodeId, ComponentMetrics],
    max_input: float | None = None,
    style: EdgeStyleConfig = DEFAULT_STYLE,
) -> dict[str, EdgeWeight]:
    """
    Assign a visual weight to every edge in the graph.

    Args:
        graph: Resolved pipeline graph
        node_metrics: Per-node metrics from resolve_node_metrics()
        max_input: Total ingress; computed from input nodes when None
        style: Width policy

    Returns:
        Map of edge id to EdgeWeight, covering every edge

    Example:
        node_metrics = resolve_node_metrics(graph, view)
        weights = weigh_edges(graph, node_metrics)
        weights["e-input-processor-0"].state  # EdgeState.NORMAL
    """
    if max_input is None or math.isnan(max_input):
        max_input = max_input_received(graph, node_metrics)

    kinds = {node.id: node.kind for node in graph.nodes}
    weights: dict[str, EdgeWeight] = {}
    traffic_by_edge: dict[str, float | None] = {}

    for edge in graph.edges:
        source_kind = kinds.get(edge.source)
        target_kind = kinds.get(edge.target)
        if (source_kind and source_kind.is_resource) or (target_kind and target_kind.is_resource):
            weights[edge.id] = EdgeWeight(
                edge.id, EdgeState.RESOURCE, style.resource_width, dashed=True
            )
            continue
        traffic_by_edge[edge.id] = edge_traffic(edge, node_metrics)

    resolved = [t for t in traffic_by_edge.values() if t is not None and math.isfinite(t)]
    max_traffic = max([max_input, *resolved, 1.0])

    for eid, traffic in traffic_by_edge.items():
        weights[eid] = classify_edge(eid, traffic, max_traffic, max_input, style)

    # Keep graph edge order
    return {edge.id: weights[edge.id] for edge in graph.edges}
