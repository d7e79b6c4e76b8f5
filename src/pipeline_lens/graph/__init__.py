"""Pipeline definition resolution into a component graph."""

from pipeline_lens.graph.components import ComponentSpec, decode_component
from pipeline_lens.graph.references import ResourceRefs, extract_resource_refs
from pipeline_lens.graph.resolver import graph_from_config, load_config, resolve_graph

__all__ = [
    "resolve_graph",
    "graph_from_config",
    "load_config",
    "ComponentSpec",
    "decode_component",
    "ResourceRefs",
    "extract_resource_refs",
]
