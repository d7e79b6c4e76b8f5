"""
Shared data types for the pipeline lens.

This module defines the structures that flow between the graph resolver,
the metrics ingestion stages and the traffic weighter:
- Sample: One parsed exposition line
- ComponentMetrics: Sparse per-component metric bundle
- MetricsTimePoint: Immutable history entry
- PipelineNode / PipelineEdge / PipelineGraph: Resolved topology
- MetricsView: Aggregated metrics keyed by metric path and by label
- Snapshot: Rate baseline held between polls

All types use @dataclass. Pydantic models are reserved for data crossing
the HTTP boundary (see targets.py and client.py).
"""

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any

NodeId = str
"""Unique identifier for a node in a resolved pipeline graph."""


class NodeKind(str, Enum):
    """Role of a node in the pipeline graph."""

    INPUT = "input"
    PROCESSOR = "processor"
    OUTPUT = "output"
    CACHE = "cache"
    RATE_LIMIT = "rate_limit"

    @property
    def is_resource(self) -> bool:
        """True for shared resources (caches and rate limits)."""
        return self in (NodeKind.CACHE, NodeKind.RATE_LIMIT)


@dataclass
class Sample:
    """
    A single sample from the exposition text.

    Attributes:
        name: Metric name (e.g., "input_received")
        labels: Label set as parsed, values not unescaped
        value: Numeric value, may be NaN or +/-inf
    """

    name: str
    labels: dict[str, str]
    value: float


@dataclass
class ComponentMetrics:
    """
    Aggregated metrics for a single pipeline component.

    Every field is optional. None means no sample was observed for that
    field during the poll, which is different from an observed zero.

    Attributes:
        received: Messages received (counter)
        sent: Messages sent (counter)
        error: Processing errors (counter)
        latency_ns: P99 latency in nanoseconds (summary quantile)
        connection_up: Connection state gauge (1 up, 0 down)
        connection_failed: Failed connection attempts (counter)
        connection_lost: Dropped connections (counter)
        batch_sent: Batches sent (counter)
        batch_received: Batches received (counter)
        not_found: Cache misses (counter)
        received_rate: Derived messages received per second
        sent_rate: Derived messages sent per second
        error_rate: Derived errors per second
    """

    received: float | None = None
    sent: float | None = None
    error: float | None = None
    latency_ns: float | None = None
    connection_up: float | None = None
    connection_failed: float | None = None
    connection_lost: float | None = None
    batch_sent: float | None = None
    batch_received: float | None = None
    not_found: float | None = None
    received_rate: float | None = None
    sent_rate: float | None = None
    error_rate: float | None = None

    def clone(self) -> "ComponentMetrics":
        """Return an independent field-level copy."""
        return replace(self)

    def to_dict(self) -> dict[str, float]:
        """Convert to dict, omitting unobserved fields."""
        return {f.name: v for f in fields(self) if (v := getattr(self, f.name)) is not None}


@dataclass(frozen=True)
class MetricsTimePoint:
    """
    One entry in a component's rolling history.

    Attributes:
        timestamp: Poll time in seconds
        received / sent / error: Counter values at that poll
        latency_ns: Latency at that poll
        received_rate / sent_rate / error_rate: Derived rates at that poll
    """

    timestamp: float
    received: float | None = None
    sent: float | None = None
    error: float | None = None
    latency_ns: float | None = None
    received_rate: float | None = None
    sent_rate: float | None = None
    error_rate: float | None = None

    @classmethod
    def from_metrics(cls, timestamp: float, metrics: ComponentMetrics) -> "MetricsTimePoint":
        return cls(
            timestamp=timestamp,
            received=metrics.received,
            sent=metrics.sent,
            error=metrics.error,
            latency_ns=metrics.latency_ns,
            received_rate=metrics.received_rate,
            sent_rate=metrics.sent_rate,
            error_rate=metrics.error_rate,
        )


@dataclass
class PipelineNode:
    """
    A node in the resolved pipeline graph.

    Attributes:
        id: Unique node identifier (e.g., "input", "processor-0", "cache-1")
        kind: Role of the node
        label: Display label (explicit label or component type)
        component_type: Component implementation (e.g., "kafka", "mapping")
        metric_path: Structural correlation key (e.g., "root.pipeline.processors.0")
        resource_label: Declared label, used as the fallback correlation key
            against the `label` tag of metric samples
        raw_config: The component's config subtree as parsed
    """

    id: NodeId
    kind: NodeKind
    label: str
    component_type: str
    metric_path: str
    resource_label: str | None = None
    raw_config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


@dataclass(frozen=True)
class PipelineEdge:
    """A directed edge between two node ids."""

    id: str
    source: NodeId
    target: NodeId

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class PipelineGraph:
    """
    Resolved pipeline topology.

    Holds at most one input node and one primary output node. Fan-out
    children are additional output nodes; caches and rate limits are
    appended after the backbone.
    """

    nodes: list[PipelineNode] = field(default_factory=list)
    edges: list[PipelineEdge] = field(default_factory=list)

    def get_node(self, node_id: NodeId) -> PipelineNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: NodeId) -> bool:
        return self.get_node(node_id) is not None

    def has_edge(self, edge_id: str) -> bool:
        return any(e.id == edge_id for e in self.edges)

    def nodes_of_kind(self, kind: NodeKind) -> list[PipelineNode]:
        return [n for n in self.nodes if n.kind == kind]

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Convert to the wire contract consumed by renderers."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class MetricsView:
    """
    Metrics for one poll, keyed two ways.

    Attributes:
        by_path: Metrics keyed by the `path` tag (structural key)
        by_label: Metrics keyed by the `label` tag (declared label)
        timestamp: Poll time in seconds, None until stamped by a rate pass
    """

    by_path: dict[str, ComponentMetrics] = field(default_factory=dict)
    by_label: dict[str, ComponentMetrics] = field(default_factory=dict)
    timestamp: float | None = None

    def lookup(self, node: PipelineNode) -> ComponentMetrics | None:
        """Resolve a node's metrics by metric path, then by declared label."""
        metrics = self.by_path.get(node.metric_path)
        if metrics is None and node.resource_label:
            metrics = self.by_label.get(node.resource_label)
        return metrics

    def clone(self) -> "MetricsView":
        return MetricsView(
            by_path={k: m.clone() for k, m in self.by_path.items()},
            by_label={k: m.clone() for k, m in self.by_label.items()},
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict[str, dict[str, dict[str, float]]]:
        return {
            "byPath": {k: m.to_dict() for k, m in self.by_path.items()},
            "byLabel": {k: m.to_dict() for k, m in self.by_label.items()},
        }


@dataclass
class Snapshot:
    """
    Rate baseline kept between polls.

    Always built from field-level clones so that callers mutating a
    returned MetricsView cannot corrupt the next rate computation.
    """

    time: float
    by_path: dict[str, ComponentMetrics]
    by_label: dict[str, ComponentMetrics]

    @classmethod
    def capture(cls, time: float, view: MetricsView) -> "Snapshot":
        copy = view.clone()
        return cls(time=time, by_path=copy.by_path, by_label=copy.by_label)
