"""
Process runtime metrics for a monitored pipeline.

Extracts one RuntimeSnapshot per poll from the Go runtime and process
collectors that every pipeline exposes alongside its component metrics,
and keeps a bounded history of them.

CPU utilization is not sampled directly. It is derived from consecutive
process_cpu_seconds_total readings as a percentage of one core.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from pipeline_lens.metrics.history import HistoryBuffer
from pipeline_lens.types import Sample

# Snapshots kept (100 polls at 5s is roughly 8 minutes)
MAX_RUNTIME_HISTORY = 100

# Gauges copied straight into snapshot fields
RUNTIME_FIELDS: dict[str, str] = {
    "go_goroutines": "goroutines",
    "go_memstats_heap_alloc_bytes": "heap_bytes",
    "go_memstats_heap_inuse_bytes": "heap_inuse_bytes",
    "go_memstats_stack_inuse_bytes": "stack_bytes",
    "go_memstats_sys_bytes": "sys_bytes",
    "process_cpu_seconds_total": "cpu_seconds_total",
    "go_gc_duration_seconds_count": "gc_count",
    "process_resident_memory_bytes": "resident_memory_bytes",
    "process_open_fds": "open_fds",
}


@dataclass
class RuntimeSnapshot:
    """
    Whole-process runtime state at one poll.

    Attributes:
        timestamp: Poll time in seconds
        goroutines: Live goroutine count
        heap_bytes: Heap bytes allocated
        heap_inuse_bytes: Heap bytes in in-use spans
        stack_bytes: Stack bytes in use
        sys_bytes: Bytes obtained from the OS
        cpu_seconds_total: Cumulative user+system CPU seconds
        gc_duration_p50: Median GC pause in seconds
        gc_duration_max: Maximum GC pause in seconds (quantile 1)
        gc_count: Completed GC cycles
        resident_memory_bytes: Resident set size
        open_fds: Open file descriptors
        go_version: Runtime version from go_info
    """

    timestamp: float
    goroutines: float = 0.0
    heap_bytes: float = 0.0
    heap_inuse_bytes: float = 0.0
    stack_bytes: float = 0.0
    sys_bytes: float = 0.0
    cpu_seconds_total: float = 0.0
    gc_duration_p50: float = 0.0
    gc_duration_max: float = 0.0
    gc_count: float = 0.0
    resident_memory_bytes: float = 0.0
    open_fds: float = 0.0
    go_version: str = ""


def runtime_snapshot_from_samples(samples: Iterable[Sample], timestamp: float) -> RuntimeSnapshot:
    """
    Build a RuntimeSnapshot from one poll's samples.

    Missing series leave their field at zero.

    Args:
        samples: Parsed samples from the metrics endpoint
        timestamp: Poll time in seconds

    Returns:
        RuntimeSnapshot for this poll
    """
    snap = RuntimeSnapshot(timestamp=timestamp)

    for s in samples:
        field_name = RUNTIME_FIELDS.get(s.name)
        if field_name is not None:
            setattr(snap, field_name, s.value)
        elif s.name == "go_gc_duration_seconds":
            quantile = s.labels.get("quantile")
            if quantile == "0.5":
                snap.gc_duration_p50 = s.value
            elif quantile == "1":
                snap.gc_duration_max = s.value
        elif s.name == "go_info":
            snap.go_version = s.labels.get("version", "")

    return snap


def cpu_percent(current: RuntimeSnapshot, previous: RuntimeSnapshot) -> float:
    """
    CPU utilization between two snapshots, as a percentage of one core.

    Returns 0.0 when elapsed time is not positive.
    """
    elapsed = current.timestamp - previous.timestamp
    if elapsed <= 0:
        return 0.0
    return 100 * (current.cpu_seconds_total - previous.cpu_seconds_total) / elapsed


class RuntimeHistory:
    """Bounded history of RuntimeSnapshots, one per poll."""

    def __init__(self, maxlen: int = MAX_RUNTIME_HISTORY) -> None:
        self._buffer: HistoryBuffer[RuntimeSnapshot] = HistoryBuffer(maxlen)

    def append(self, snapshot: RuntimeSnapshot) -> None:
        self._buffer.append(snapshot)

    def snapshots(self) -> list[RuntimeSnapshot]:
        return self._buffer.get_points()

    def latest(self) -> RuntimeSnapshot | None:
        return self._buffer.latest()

    def cpu_percent(self) -> list[float]:
        """
        Derived CPU series, one value per snapshot from the second onward.

        Returns:
            List of length len(history) - 1 (empty with fewer than two snapshots)
        """
        snaps = self._buffer.get_points()
        return [cpu_percent(cur, prev) for prev, cur in zip(snaps, snaps[1:])]

    def latest_cpu_percent(self) -> float | None:
        series = self.cpu_percent()
        return series[-1] if series else None

    def __len__(self) -> int:
        return len(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()
