"""Tests for pipeline definition to graph resolution."""

import logging
import textwrap

import pytest

from pipeline_lens.exceptions import ParseError
from pipeline_lens.graph import resolve_graph
from pipeline_lens.graph.components import decode_component
from pipeline_lens.graph.references import extract_resource_refs
from pipeline_lens.types import NodeKind


def yaml_text(s: str) -> str:
    return textwrap.dedent(s).lstrip()


BASIC = yaml_text(
    """
    input:
      label: gen
      generate:
        mapping: 'root = "hi"'
    pipeline:
      processors:
        - mapping: 'root = content().uppercase()'
        - label: dedupe_step
          dedupe:
            cache: mem
            key: '${! content() }'
    output:
      stdout: {}
    cache_resources:
      - label: mem
        memory: {}
    """
)


class TestBackbone:
    """Input -> processors -> output chain."""

    def test_backbone_nodes_and_edges(self):
        """Input, N processors and output yield N+2 nodes chained by N+1 edges."""
        text = yaml_text(
            """
            input:
              stdin: {}
            pipeline:
              processors:
                - mapping: 'root = this'
                - log: {message: hi}
                - sleep: {duration: 1s}
            output:
              drop: {}
            """
        )

        graph = resolve_graph(text)

        assert [n.id for n in graph.nodes] == [
            "input",
            "processor-0",
            "processor-1",
            "processor-2",
            "output",
        ]
        assert [e.id for e in graph.edges] == [
            "e-input-processor-0",
            "e-processor-0-processor-1",
            "e-processor-1-processor-2",
            "e-processor-2-output",
        ]

    def test_metric_paths(self):
        graph = resolve_graph(BASIC)

        assert graph.get_node("input").metric_path == "root.input"
        assert graph.get_node("processor-1").metric_path == "root.pipeline.processors.1"
        assert graph.get_node("output").metric_path == "root.output"

    def test_labels_default_to_component_type(self):
        graph = resolve_graph(BASIC)

        assert graph.get_node("input").label == "gen"
        assert graph.get_node("input").component_type == "generate"
        assert graph.get_node("processor-0").label == "mapping"
        assert graph.get_node("processor-0").resource_label is None
        assert graph.get_node("processor-1").resource_label == "dedupe_step"

    def test_no_processors_connects_input_to_output(self):
        graph = resolve_graph("input: {stdin: {}}\noutput: {stdout: {}}\n")

        assert [e.id for e in graph.edges] == ["e-input-output"]

    def test_missing_input_adds_no_dangling_edge(self):
        """Edges are only added when the source node exists."""
        graph = resolve_graph("pipeline:\n  processors:\n    - noop: {}\noutput: {drop: {}}\n")

        assert [n.id for n in graph.nodes] == ["processor-0", "output"]
        assert [e.id for e in graph.edges] == ["e-processor-0-output"]

    def test_empty_document_is_empty_graph(self):
        graph = resolve_graph("")

        assert graph.nodes == []
        assert graph.edges == []

    def test_non_mapping_processor_is_unknown(self):
        graph = resolve_graph("pipeline:\n  processors:\n    - just_a_string\n")

        assert graph.get_node("processor-0").component_type == "unknown"

    def test_resolution_is_idempotent(self):
        """Same text twice gives equal graphs."""
        assert resolve_graph(BASIC).to_dict() == resolve_graph(BASIC).to_dict()


class TestFanOut:
    """Broker, switch and fan_out child outputs."""

    def test_broker_children(self):
        text = yaml_text(
            """
            input: {stdin: {}}
            output:
              broker:
                pattern: fan_out
                outputs:
                  - stdout: {}
                  - label: nested
                    broker:
                      outputs:
                        - drop: {}
            """
        )

        graph = resolve_graph(text)
        outputs = graph.nodes_of_kind(NodeKind.OUTPUT)

        assert [n.id for n in outputs] == ["output", "output-broker-0", "output-broker-1"]
        assert graph.has_edge("e-output-output-broker-0")
        assert graph.has_edge("e-output-output-broker-1")
        assert graph.get_node("output-broker-1").metric_path == "root.output.broker.outputs.1"

    def test_fan_out_is_one_level_only(self):
        """A nested broker child is not expanded further."""
        text = yaml_text(
            """
            output:
              broker:
                outputs:
                  - broker:
                      outputs:
                        - drop: {}
                        - drop: {}
            """
        )

        graph = resolve_graph(text)

        assert len(graph.nodes_of_kind(NodeKind.OUTPUT)) == 2

    def test_switch_cases(self):
        text = yaml_text(
            """
            output:
              switch:
                cases:
                  - check: this.urgent
                    output: {http_client: {url: "http://a"}}
                  - check: "false"
                  - output: {drop: {}}
            """
        )

        graph = resolve_graph(text)

        assert graph.has_node("output-switch-0")
        assert not graph.has_node("output-switch-1")
        assert graph.get_node("output-switch-2").metric_path == "root.output.switch.cases.2.output"

    def test_fan_out_list(self):
        text = yaml_text(
            """
            output:
              fan_out:
                - stdout: {}
                - drop: {}
            """
        )

        graph = resolve_graph(text)

        assert graph.has_node("output-fanout-0")
        assert graph.get_node("output-fanout-1").metric_path == "root.output.fan_out.1"


class TestResources:
    """Cache and rate limit resources plus reference edges."""

    def test_cache_node_and_reference_edge(self):
        graph = resolve_graph(BASIC)
        cache = graph.get_node("cache-0")

        assert cache.kind == NodeKind.CACHE
        assert cache.label == "mem"
        assert cache.metric_path == "root.resource.cache.mem"
        assert graph.has_edge("e-processor-1-cache-0")

    def test_duplicate_references_make_one_edge(self):
        text = yaml_text(
            """
            pipeline:
              processors:
                - branch:
                    processors:
                      - cache: {resource: c, operator: get, key: a}
                      - dedupe: {cache: c, key: b}
                    request_map: 'root = this'
                  cached: {cache: c}
            cache_resources:
              - label: c
                memory: {}
            """
        )

        graph = resolve_graph(text)
        cache_edges = [e for e in graph.edges if e.target == "cache-0"]

        assert [e.id for e in cache_edges] == ["e-processor-0-cache-0"]

    def test_rate_limit_references(self):
        text = yaml_text(
            """
            input:
              http_client:
                url: http://x
                rate_limit: api
            pipeline:
              processors:
                - rate_limit:
                    resource: api
            rate_limit_resources:
              - label: api
                local: {count: 10, interval: 1s}
            """
        )

        graph = resolve_graph(text)

        assert graph.get_node("rate-limit-0").kind == NodeKind.RATE_LIMIT
        assert graph.has_edge("e-input-rate-limit-0")
        assert graph.has_edge("e-processor-0-rate-limit-0")

    def test_unresolved_reference_is_ignored(self):
        text = "pipeline:\n  processors:\n    - dedupe: {cache: missing}\ncache_resources:\n  - label: c\n    memory: {}\n"

        graph = resolve_graph(text)

        assert [e.target for e in graph.edges] == []

    def test_unlabelled_resource_uses_type(self):
        graph = resolve_graph("cache_resources:\n  - redis: {url: 'redis://x'}\n")

        assert graph.get_node("cache-0").label == "redis"


class TestErrors:
    """Parse failures and tolerated shapes."""

    def test_invalid_yaml_raises_parse_error(self):
        with pytest.raises(ParseError, match="config"):
            resolve_graph("input: [unclosed")

    def test_top_level_list_raises_parse_error(self):
        with pytest.raises(ParseError):
            resolve_graph("- a\n- b\n")

    def test_wrong_shape_sections_treated_as_empty(self):
        graph = resolve_graph("input: 5\npipeline: nope\noutput: [1]\n")

        assert graph.nodes == []


class TestComponents:
    """Component decoding and reference scanning."""

    def test_ambiguous_component_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            spec = decode_component({"kafka": {}, "amqp": {}}, "root.input")

        assert spec.component_type == "kafka"
        assert "Ambiguous component at root.input" in caplog.text

    def test_empty_label_falls_back_to_type(self):
        spec = decode_component({"label": "", "stdout": {}})

        assert spec.label == "stdout"
        assert spec.explicit_label is None

    def test_extract_refs_at_any_depth(self):
        refs = extract_resource_refs(
            {
                "workflow": {
                    "branches": {
                        "a": {"processors": [{"cache": {"resource": "c1"}}, {"dedupe": {"cache": "c2"}}]},
                    }
                },
                "rate_limit_resource": "r1",
                "x": {"rate_limit": {"resource": "r2"}},
            }
        )

        assert refs.caches == ["c2"]
        assert refs.rate_limits == ["r1", "r2"]
