"""Tests for per-component metrics aggregation."""

import itertools

from pipeline_lens.metrics.aggregator import METRIC_FIELDS, aggregate
from pipeline_lens.metrics.parser import parse_exposition
from pipeline_lens.types import Sample

EXPOSITION = """\
# TYPE input_received counter
input_received{label="gen",path="root.input"} 100
input_connection_up{label="gen",path="root.input"} 1
processor_received{label="validate",path="root.pipeline.processors.0"} 100
processor_sent{label="validate",path="root.pipeline.processors.0"} 90
processor_error{label="validate",path="root.pipeline.processors.0"} 10
processor_latency_ns{label="validate",path="root.pipeline.processors.0",quantile="0.5"} 1000
processor_latency_ns{label="validate",path="root.pipeline.processors.0",quantile="0.99"} 5000
output_sent{path="root.output"} 90
output_batch_sent{path="root.output"} 9
cache_not_found{label="mem",path="root.resource.cache.mem"} 3
go_goroutines 12
"""


class TestAggregate:
    """Tests for aggregate()."""

    def test_groups_by_path_and_label(self):
        """Samples with both tags land in both maps."""
        view = aggregate(parse_exposition(EXPOSITION))

        assert view.by_path["root.input"].received == 100
        assert view.by_label["gen"].received == 100
        assert view.by_path["root.pipeline.processors.0"].sent == 90
        assert view.by_label["validate"].error == 10

    def test_path_only_samples_skip_label_map(self):
        view = aggregate(parse_exposition(EXPOSITION))

        assert view.by_path["root.output"].sent == 90
        assert view.by_path["root.output"].batch_sent == 9
        assert "root.output" not in view.by_label

    def test_untagged_samples_ignored(self):
        """Runtime series without path/label don't create entries."""
        view = aggregate(parse_exposition(EXPOSITION))

        assert set(view.by_path) == {
            "root.input",
            "root.pipeline.processors.0",
            "root.output",
            "root.resource.cache.mem",
        }

    def test_counters_are_summed_across_series(self):
        """Counters split by extra labels are added together."""
        samples = [
            Sample("output_error", {"path": "root.output", "code": "500"}, 2),
            Sample("output_error", {"path": "root.output", "code": "503"}, 3),
        ]

        view = aggregate(samples)

        assert view.by_path["root.output"].error == 5

    def test_latency_uses_p99_quantile(self):
        """Only the 0.99 quantile (or unquantiled series) sets latency."""
        view = aggregate(parse_exposition(EXPOSITION))

        assert view.by_path["root.pipeline.processors.0"].latency_ns == 5000

    def test_latency_without_quantile_is_used(self):
        view = aggregate([Sample("output_latency_ns", {"path": "root.output"}, 250)])

        assert view.by_path["root.output"].latency_ns == 250

    def test_latency_other_quantiles_only_leaves_unset(self):
        """Without a p99 or unquantiled series, latency stays unset."""
        samples = [
            Sample("output_latency_ns", {"path": "root.output", "quantile": "0.5"}, 10),
            Sample("output_latency_ns", {"path": "root.output", "quantile": "0.9"}, 20),
        ]

        view = aggregate(samples)

        assert view.by_path["root.output"].latency_ns is None

    def test_gauge_last_sample_wins(self):
        samples = [
            Sample("output_connection_up", {"path": "root.output"}, 1),
            Sample("output_connection_up", {"path": "root.output"}, 0),
        ]

        view = aggregate(samples)

        assert view.by_path["root.output"].connection_up == 0

    def test_unobserved_fields_stay_none(self):
        """Fields with no samples are None, not zero."""
        view = aggregate(parse_exposition(EXPOSITION))
        metrics = view.by_path["root.output"]

        assert metrics.received is None
        assert metrics.error is None
        assert metrics.received_rate is None

    def test_zero_counter_is_distinct_from_unset(self):
        view = aggregate([Sample("processor_error", {"path": "p"}, 0)])

        assert view.by_path["p"].error == 0.0

    def test_unknown_names_ignored(self):
        view = aggregate([Sample("processor_mystery", {"path": "p"}, 5)])

        assert view.by_path["p"].to_dict() == {}

    def test_summation_is_order_independent(self):
        """Any ordering of counter samples yields the same totals."""
        samples = [
            Sample("processor_received", {"path": "p", "label": "x"}, 1),
            Sample("processor_received", {"path": "p", "label": "x"}, 2),
            Sample("processor_sent", {"path": "p"}, 4),
            Sample("processor_batch_received", {"path": "p"}, 8),
        ]

        results = {
            tuple(sorted(aggregate(list(order)).by_path["p"].to_dict().items()))
            for order in itertools.permutations(samples)
        }

        assert len(results) == 1

    def test_mapping_table_covers_cache_metrics(self):
        assert METRIC_FIELDS["cache_sent"][0] == "sent"
        assert METRIC_FIELDS["cache_error"][0] == "error"
        assert METRIC_FIELDS["cache_not_found"][0] == "not_found"
