"""Tests for bounded metrics and runtime history."""

import pytest

from pipeline_lens.metrics.history import MAX_HISTORY_POINTS, HistoryBuffer, MetricsHistory
from pipeline_lens.metrics.parser import parse_exposition
from pipeline_lens.metrics.runtime import (
    MAX_RUNTIME_HISTORY,
    RuntimeHistory,
    RuntimeSnapshot,
    cpu_percent,
    runtime_snapshot_from_samples,
)
from pipeline_lens.types import ComponentMetrics, MetricsView


def stamped_view(t: float, received: float) -> MetricsView:
    return MetricsView(
        by_path={"root.input": ComponentMetrics(received=received)},
        by_label={"gen": ComponentMetrics(received=received)},
        timestamp=t,
    )


class TestHistoryBuffer:
    """Tests for HistoryBuffer."""

    def test_append_and_get(self):
        buffer = HistoryBuffer(maxlen=5)
        buffer.append(1)
        buffer.append(2)

        assert buffer.get_points() == [1, 2]
        assert len(buffer) == 2
        assert buffer.latest() == 2

    def test_evicts_oldest_when_full(self):
        buffer = HistoryBuffer(maxlen=3)
        for i in range(5):
            buffer.append(i)

        assert buffer.get_points() == [2, 3, 4]

    def test_get_last_n(self):
        buffer = HistoryBuffer(maxlen=10)
        for i in range(5):
            buffer.append(i)

        assert buffer.get_points(2) == [3, 4]
        assert buffer.get_points(0) == []

    def test_rejects_non_positive_maxlen(self):
        with pytest.raises(ValueError):
            HistoryBuffer(maxlen=0)

    def test_clear(self):
        buffer = HistoryBuffer(maxlen=3)
        buffer.append(1)
        buffer.clear()

        assert len(buffer) == 0
        assert buffer.latest() is None


class TestMetricsHistory:
    """Tests for MetricsHistory."""

    def test_default_bound(self):
        assert MetricsHistory().maxlen == MAX_HISTORY_POINTS == 120

    def test_records_both_keys(self):
        history = MetricsHistory()
        history.record(stamped_view(0.0, 10))

        assert len(history.get_path("root.input")) == 1
        assert len(history.get_label("gen")) == 1
        assert history.get_path("missing") == []

    def test_bound_is_fifo(self):
        """After more polls than the bound, the oldest points are evicted in order."""
        history = MetricsHistory(maxlen=120)
        for i in range(150):
            history.record(stamped_view(float(i), float(i)))

        points = history.get_path("root.input")

        assert len(points) == 120
        assert points[0].timestamp == 30.0
        assert points[-1].timestamp == 149.0
        assert [p.timestamp for p in points] == sorted(p.timestamp for p in points)

    def test_snapshot_is_a_copy(self):
        history = MetricsHistory()
        history.record(stamped_view(0.0, 1))
        snap = history.snapshot()

        history.record(stamped_view(1.0, 2))

        assert len(snap["byPath"]["root.input"]) == 1

    def test_points_capture_rates(self):
        view = stamped_view(5.0, 10)
        view.by_path["root.input"].received_rate = 2.0
        history = MetricsHistory()
        history.record(view)

        assert history.get_path("root.input")[0].received_rate == 2.0

    def test_unstamped_view_rejected(self):
        with pytest.raises(ValueError):
            MetricsHistory().record(MetricsView())

    def test_clear(self):
        history = MetricsHistory()
        history.record(stamped_view(0.0, 1))
        history.clear()

        assert history.snapshot() == {"byPath": {}, "byLabel": {}}


RUNTIME_TEXT = """\
go_goroutines 42
go_memstats_heap_alloc_bytes 1048576
go_memstats_stack_inuse_bytes 65536
process_cpu_seconds_total 12.5
go_gc_duration_seconds{quantile="0.5"} 0.0001
go_gc_duration_seconds{quantile="1"} 0.004
go_gc_duration_seconds_count 30
process_resident_memory_bytes 2097152
process_open_fds 9
go_info{version="go1.22.1"} 1
"""


class TestRuntime:
    """Tests for runtime snapshots and CPU derivation."""

    def test_snapshot_from_samples(self):
        snap = runtime_snapshot_from_samples(parse_exposition(RUNTIME_TEXT), timestamp=1.0)

        assert snap.goroutines == 42
        assert snap.heap_bytes == 1048576
        assert snap.cpu_seconds_total == 12.5
        assert snap.gc_duration_p50 == 0.0001
        assert snap.gc_duration_max == 0.004
        assert snap.gc_count == 30
        assert snap.open_fds == 9
        assert snap.go_version == "go1.22.1"

    def test_missing_series_default_to_zero(self):
        snap = runtime_snapshot_from_samples([], timestamp=1.0)

        assert snap.goroutines == 0.0
        assert snap.go_version == ""

    def test_cpu_percent(self):
        """1 CPU second over 10 wall seconds is 10%."""
        prev = RuntimeSnapshot(timestamp=0.0, cpu_seconds_total=5.0)
        cur = RuntimeSnapshot(timestamp=10.0, cpu_seconds_total=6.0)

        assert cpu_percent(cur, prev) == pytest.approx(10.0)

    def test_cpu_percent_guards_elapsed(self):
        prev = RuntimeSnapshot(timestamp=10.0, cpu_seconds_total=5.0)
        cur = RuntimeSnapshot(timestamp=10.0, cpu_seconds_total=6.0)

        assert cpu_percent(cur, prev) == 0.0

    def test_cpu_series_starts_at_second_snapshot(self):
        history = RuntimeHistory()
        history.append(RuntimeSnapshot(timestamp=0.0, cpu_seconds_total=0.0))
        assert history.cpu_percent() == []
        assert history.latest_cpu_percent() is None

        history.append(RuntimeSnapshot(timestamp=5.0, cpu_seconds_total=2.5))
        history.append(RuntimeSnapshot(timestamp=10.0, cpu_seconds_total=2.5))

        assert history.cpu_percent() == pytest.approx([50.0, 0.0])
        assert history.latest_cpu_percent() == 0.0

    def test_runtime_bound(self):
        history = RuntimeHistory()
        for i in range(MAX_RUNTIME_HISTORY + 20):
            history.append(RuntimeSnapshot(timestamp=float(i)))

        assert len(history) == 100
        assert history.snapshots()[0].timestamp == 20.0
