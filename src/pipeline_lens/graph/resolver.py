"""
Pipeline definition to graph resolution.

Turns a pipeline's YAML definition into a PipelineGraph:

1. Backbone: input -> processors[0] -> ... -> processors[N-1] -> output,
   with positional metric paths (root.input, root.pipeline.processors.<i>,
   root.output). An edge is only added when its source node exists.
2. Fan-out: a broker / switch / fan_out output gets one child output node
   per element, connected from the primary output. Exactly one level;
   children are never expanded further.
3. Resources: cache_resources and rate_limit_resources become nodes keyed
   by their label (or type when unlabelled).
4. References: every non-resource node's config is scanned for named
   resource references, each resolved reference becomes an edge.

Resolution is a pure function of the input text. Missing sections are
treated as empty; only unparsable YAML is an error.
"""

import logging
from typing import Any

import yaml

from pipeline_lens.exceptions import ParseError
from pipeline_lens.graph.components import ComponentSpec, decode_component
from pipeline_lens.graph.references import extract_resource_refs
from pipeline_lens.types import NodeId, NodeKind, PipelineEdge, PipelineGraph, PipelineNode

logger = logging.getLogger(__name__)

INPUT_ID = "input"
OUTPUT_ID = "output"
INPUT_PATH = "root.input"
OUTPUT_PATH = "root.output"


def processor_id(index: int) -> NodeId:
    return f"processor-{index}"


def edge_id(source: NodeId, target: NodeId) -> str:
    return f"e-{source}-{target}"


def _mapping(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _sequence(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class GraphBuilder:
    """
    Accumulates nodes and edges while a graph is being resolved.

    Edges are de-duplicated by id and only accepted when both endpoints
    already exist.
    """

    def __init__(self) -> None:
        self.graph = PipelineGraph()
        self._node_ids: set[NodeId] = set()
        self._edge_ids: set[str] = set()

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._node_ids

    def add_node(
        self,
        node_id: NodeId,
        kind: NodeKind,
        spec: ComponentSpec,
        metric_path: str,
        resource_label: str | None = None,
    ) -> PipelineNode:
        node = PipelineNode(
            id=node_id,
            kind=kind,
            label=spec.label,
            component_type=spec.component_type,
            metric_path=metric_path,
            resource_label=resource_label if resource_label is not None else spec.explicit_label,
            raw_config=spec.config,
        )
        self.graph.nodes.append(node)
        self._node_ids.add(node_id)
        return node

    def connect(self, source: NodeId, target: NodeId) -> bool:
        """Add source -> target if both exist and the edge is new."""
        if not (self.has_node(source) and self.has_node(target)):
            return False
        eid = edge_id(source, target)
        if eid in self._edge_ids:
            return False
        self.graph.edges.append(PipelineEdge(id=eid, source=source, target=target))
        self._edge_ids.add(eid)
        return True


def add_backbone(builder: GraphBuilder, config: dict[str, Any]) -> None:
    """Add input, processor chain and primary output, with linking edges."""
    input_conf = _mapping(config.get("input"))
    if input_conf is not None:
        builder.add_node(INPUT_ID, NodeKind.INPUT, decode_component(input_conf, INPUT_PATH), INPUT_PATH)

    pipeline = _mapping(config.get("pipeline")) or {}
    processors = _sequence(pipeline.get("processors"))

    prev_id = INPUT_ID
    for i, proc in enumerate(processors):
        path = f"root.pipeline.processors.{i}"
        proc_id = processor_id(i)
        builder.add_node(proc_id, NodeKind.PROCESSOR, decode_component(proc, path), path)
        builder.connect(prev_id, proc_id)
        prev_id = proc_id

    output_conf = _mapping(config.get("output"))
    if output_conf is not None:
        spec = decode_component(output_conf, OUTPUT_PATH)
        builder.add_node(OUTPUT_ID, NodeKind.OUTPUT, spec, OUTPUT_PATH)
        builder.connect(prev_id, OUTPUT_ID)
        expand_fan_out(builder, spec, OUTPUT_ID, OUTPUT_PATH)


def fan_out_children(spec: ComponentSpec, base_path: str) -> list[tuple[str, int, str, dict[str, Any]]]:
    """
    List the child outputs of a multiplexing output.

    Switch cases without an output, and children that aren't mappings,
    are skipped without renumbering the rest.

    Returns:
        (id_tag, index, metric_path, child_config) per child. Empty if the
        output isn't a broker, switch or fan_out.
    """
    params = spec.params
    children: list[tuple[str, int, str, dict[str, Any]]] = []

    if spec.component_type == "broker" and isinstance(params, dict):
        for i, sub in enumerate(_sequence(params.get("outputs"))):
            if isinstance(sub, dict):
                children.append(("broker", i, f"{base_path}.broker.outputs.{i}", sub))
    elif spec.component_type == "switch" and isinstance(params, dict):
        for i, case in enumerate(_sequence(params.get("cases"))):
            sub = case.get("output") if isinstance(case, dict) else None
            if isinstance(sub, dict):
                children.append(("switch", i, f"{base_path}.switch.cases.{i}.output", sub))
    elif spec.component_type == "fan_out" and isinstance(params, list):
        for i, sub in enumerate(params):
            if isinstance(sub, dict):
                children.append(("fanout", i, f"{base_path}.fan_out.{i}", sub))

    return children


def expand_fan_out(builder: GraphBuilder, spec: ComponentSpec, parent_id: NodeId, base_path: str) -> None:
    """Add one output node per fan-out child, each fed from the parent output."""
    for tag, index, path, sub in fan_out_children(spec, base_path):
        child_id = f"{parent_id}-{tag}-{index}"
        builder.add_node(child_id, NodeKind.OUTPUT, decode_component(sub, path), path)
        builder.connect(parent_id, child_id)


def add_resources(builder: GraphBuilder, config: dict[str, Any]) -> None:
    """Add a node per declared cache and rate limit resource."""
    sections = (
        ("cache_resources", NodeKind.CACHE, "cache"),
        ("rate_limit_resources", NodeKind.RATE_LIMIT, "rate-limit"),
    )
    for section, kind, id_prefix in sections:
        for i, resource in enumerate(_sequence(config.get(section))):
            if not isinstance(resource, dict):
                continue
            spec = decode_component(resource, f"{section}.{i}")
            path = f"root.resource.{kind.value}.{spec.label}"
            builder.add_node(f"{id_prefix}-{i}", kind, spec, path, resource_label=spec.label)


def connect_resources(builder: GraphBuilder) -> None:
    """Add an edge from each node to every resource it references by name."""
    caches: dict[str, NodeId] = {}
    rate_limits: dict[str, NodeId] = {}
    for node in builder.graph.nodes:
        if node.kind == NodeKind.CACHE:
            caches.setdefault(node.label, node.id)
        elif node.kind == NodeKind.RATE_LIMIT:
            rate_limits.setdefault(node.label, node.id)
    if not caches and not rate_limits:
        return

    for node in list(builder.graph.nodes):
        if node.kind.is_resource:
            continue
        refs = extract_resource_refs(node.raw_config)
        for names, lookup in ((refs.caches, caches), (refs.rate_limits, rate_limits)):
            for name in names:
                target = lookup.get(name)
                if target is None:
                    logger.debug("Node %s references unknown resource '%s'", node.id, name)
                    continue
                builder.connect(node.id, target)


def graph_from_config(config: dict[str, Any]) -> PipelineGraph:
    """
    Resolve an already-parsed pipeline definition.

    Args:
        config: Top-level mapping with optional input, pipeline.processors,
            output, cache_resources and rate_limit_resources

    Returns:
        Resolved PipelineGraph
    """
    builder = GraphBuilder()
    add_backbone(builder, config)
    add_resources(builder, config)
    connect_resources(builder)
    return builder.graph


def load_config(text: str) -> dict[str, Any]:
    """
    Parse pipeline YAML into a top-level mapping.

    Raises:
        ParseError: If the YAML is invalid or the document isn't a mapping
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError("config", str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError("config", f"expected a mapping at top level, got {type(data).__name__}")
    return data


def resolve_graph(text: str) -> PipelineGraph:
    """
    Resolve pipeline YAML text into a PipelineGraph.

    Example:
        graph = resolve_graph(open("pipeline.yaml").read())
        [n.id for n in graph.nodes]  # ["input", "processor-0", "output", ...]

    Raises:
        ParseError: If the text can't be parsed
    """
    return graph_from_config(load_config(text))
