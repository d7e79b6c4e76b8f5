"""
Bounded rolling history for component metrics.

This module implements fixed-size ring buffers holding the most recent
MetricsTimePoints per correlation key. Uses collections.deque with maxlen
so the oldest point is evicted automatically once the bound is reached.

- HistoryBuffer: One key's time series
- MetricsHistory: by_path and by_label maps of HistoryBuffers

Trimming is purely a size policy; points never expire by age.
"""

from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

from pipeline_lens.types import MetricsTimePoint, MetricsView

# Points kept per component (120 polls at 5s = 10 minutes)
MAX_HISTORY_POINTS = 120

T = TypeVar("T")


class HistoryBuffer(Generic[T]):
    """
    Fixed-size ring buffer of time-ordered points.

    Automatically discards the oldest point when full.

    Example:
        buffer = HistoryBuffer(maxlen=3)
        for p in points:
            buffer.append(p)
        buffer.get_points()  # last 3, oldest first
    """

    def __init__(self, maxlen: int = MAX_HISTORY_POINTS) -> None:
        """
        Initialize buffer with maximum point count.

        Args:
            maxlen: Maximum number of points to keep (must be positive)
        """
        if maxlen <= 0:
            raise ValueError(f"maxlen must be positive, got {maxlen}")
        self._buffer: deque[T] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._buffer.maxlen or 0

    def append(self, point: T) -> None:
        """Add a point, evicting the oldest one if the buffer is full."""
        self._buffer.append(point)

    def get_points(self, n: int | None = None) -> list[T]:
        """
        Get last n points (or all if n is None).

        Returns:
            List of points, newest last
        """
        points = list(self._buffer)
        if n is not None:
            return points[-n:] if n > 0 else []
        return points

    def latest(self) -> T | None:
        return self._buffer[-1] if self._buffer else None

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[T]:
        return iter(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()


class MetricsHistory:
    """
    Rolling per-component history for one monitored target.

    Appends one MetricsTimePoint per key per poll, for both correlation
    keys. Readers get copies, so a caller holding a returned list never
    sees later appends or a reset.
    """

    def __init__(self, maxlen: int = MAX_HISTORY_POINTS) -> None:
        self.maxlen = maxlen
        self.by_path: dict[str, HistoryBuffer[MetricsTimePoint]] = {}
        self.by_label: dict[str, HistoryBuffer[MetricsTimePoint]] = {}

    def record(self, view: MetricsView) -> None:
        """
        Append the view's metrics to the per-key histories.

        Args:
            view: Rate-stamped view; its timestamp is used for every point

        Raises:
            ValueError: If the view has not been stamped with a timestamp
        """
        if view.timestamp is None:
            raise ValueError("Cannot record an unstamped MetricsView")

        for source, target in ((view.by_path, self.by_path), (view.by_label, self.by_label)):
            for key, metrics in source.items():
                buffer = target.get(key)
                if buffer is None:
                    buffer = target[key] = HistoryBuffer(self.maxlen)
                buffer.append(MetricsTimePoint.from_metrics(view.timestamp, metrics))

    def get_path(self, key: str) -> list[MetricsTimePoint]:
        buffer = self.by_path.get(key)
        return buffer.get_points() if buffer else []

    def get_label(self, key: str) -> list[MetricsTimePoint]:
        buffer = self.by_label.get(key)
        return buffer.get_points() if buffer else []

    def snapshot(self) -> dict[str, dict[str, list[MetricsTimePoint]]]:
        """Return copied lists for both maps, safe to hand to renderers."""
        return {
            "byPath": {k: b.get_points() for k, b in self.by_path.items()},
            "byLabel": {k: b.get_points() for k, b in self.by_label.items()},
        }

    def clear(self) -> None:
        self.by_path = {}
        self.by_label = {}
