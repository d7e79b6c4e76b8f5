"""
Per-component metrics aggregation.

Folds parsed samples into ComponentMetrics bundles keyed two ways:
- by_path: the `path` tag (e.g. "root.pipeline.processors.0")
- by_label: the `label` tag (the component's declared label)

A sample carrying both tags contributes to both maps independently.

Metric names are mapped to fields through the fixed METRIC_FIELDS table.
Counters are summed across series (e.g. per-status splits), gauges and
latency are overwritten (last sample wins within one poll). Names not in
the table are ignored.
"""

from collections.abc import Iterable
from enum import Enum

from pipeline_lens.types import ComponentMetrics, MetricsView, Sample

PATH_TAG = "path"
LABEL_TAG = "label"
QUANTILE_TAG = "quantile"
LATENCY_QUANTILE = "0.99"


class FoldMode(str, Enum):
    """How a sample value is folded into its field."""

    ADD = "add"
    GAUGE = "gauge"
    LATENCY = "latency"


METRIC_FIELDS: dict[str, tuple[str, FoldMode]] = {
    # Message counters
    "input_received": ("received", FoldMode.ADD),
    "processor_received": ("received", FoldMode.ADD),
    "processor_sent": ("sent", FoldMode.ADD),
    "output_sent": ("sent", FoldMode.ADD),
    "cache_sent": ("sent", FoldMode.ADD),
    "processor_error": ("error", FoldMode.ADD),
    "output_error": ("error", FoldMode.ADD),
    "cache_error": ("error", FoldMode.ADD),
    # Latency summaries
    "input_latency_ns": ("latency_ns", FoldMode.LATENCY),
    "processor_latency_ns": ("latency_ns", FoldMode.LATENCY),
    "output_latency_ns": ("latency_ns", FoldMode.LATENCY),
    "cache_latency_ns": ("latency_ns", FoldMode.LATENCY),
    # Connection state
    "input_connection_up": ("connection_up", FoldMode.GAUGE),
    "output_connection_up": ("connection_up", FoldMode.GAUGE),
    "input_connection_failed": ("connection_failed", FoldMode.ADD),
    "output_connection_failed": ("connection_failed", FoldMode.ADD),
    "input_connection_lost": ("connection_lost", FoldMode.ADD),
    "output_connection_lost": ("connection_lost", FoldMode.ADD),
    # Batching
    "processor_batch_sent": ("batch_sent", FoldMode.ADD),
    "output_batch_sent": ("batch_sent", FoldMode.ADD),
    "processor_batch_received": ("batch_received", FoldMode.ADD),
    # Cache lookups
    "cache_not_found": ("not_found", FoldMode.ADD),
}


def accumulate_sample(metrics: ComponentMetrics, sample: Sample) -> None:
    """
    Fold one sample into a metrics bundle in place.

    Args:
        metrics: Bundle to update
        sample: Parsed sample; ignored if its name isn't in METRIC_FIELDS
    """
    mapping = METRIC_FIELDS.get(sample.name)
    if mapping is None:
        return

    field_name, mode = mapping
    if mode == FoldMode.ADD:
        current = getattr(metrics, field_name)
        setattr(metrics, field_name, (current or 0.0) + sample.value)
    elif mode == FoldMode.GAUGE:
        setattr(metrics, field_name, sample.value)
    else:
        # Only the p99 series (or an unquantiled one) carries latency
        quantile = sample.labels.get(QUANTILE_TAG)
        if not quantile or quantile == LATENCY_QUANTILE:
            setattr(metrics, field_name, sample.value)


def aggregate(samples: Iterable[Sample]) -> MetricsView:
    """
    Group samples by correlation key and fold them into metric bundles.

    Args:
        samples: Parsed samples from one poll

    Returns:
        MetricsView with by_path and by_label populated. The timestamp is
        left unset; the rate pass stamps it.
    """
    view = MetricsView()

    for sample in samples:
        path = sample.labels.get(PATH_TAG)
        label = sample.labels.get(LABEL_TAG)

        if path:
            accumulate_sample(view.by_path.setdefault(path, ComponentMetrics()), sample)
        if label:
            accumulate_sample(view.by_label.setdefault(label, ComponentMetrics()), sample)

    return view
