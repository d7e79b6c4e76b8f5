"""
Metrics ingestion for the pipeline lens.

Poll pipeline: parse_exposition -> aggregate -> RateComputer -> MetricsHistory.
"""

from pipeline_lens.metrics.aggregator import METRIC_FIELDS, accumulate_sample, aggregate
from pipeline_lens.metrics.history import MAX_HISTORY_POINTS, HistoryBuffer, MetricsHistory
from pipeline_lens.metrics.parser import parse_exposition, parse_sample_line
from pipeline_lens.metrics.rates import RateComputer, compute_rate
from pipeline_lens.metrics.runtime import (
    MAX_RUNTIME_HISTORY,
    RuntimeHistory,
    RuntimeSnapshot,
    runtime_snapshot_from_samples,
)

__all__ = [
    "parse_exposition",
    "parse_sample_line",
    "aggregate",
    "accumulate_sample",
    "METRIC_FIELDS",
    "RateComputer",
    "compute_rate",
    "HistoryBuffer",
    "MetricsHistory",
    "MAX_HISTORY_POINTS",
    "RuntimeHistory",
    "RuntimeSnapshot",
    "runtime_snapshot_from_samples",
    "MAX_RUNTIME_HISTORY",
]
