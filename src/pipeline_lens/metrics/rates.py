"""
Per-second rate derivation from consecutive polls.

RateComputer keeps the previous poll as a Snapshot baseline and, on each
new aggregate, attaches received/sent/error rates for keys present in
both polls.

Counter resets (the current value is below the baseline) leave the rate
unset for that poll rather than reporting a negative rate.
"""

from pipeline_lens.types import ComponentMetrics, MetricsView, Snapshot

# (counter field, derived rate field)
RATE_FIELDS: tuple[tuple[str, str], ...] = (
    ("received", "received_rate"),
    ("sent", "sent_rate"),
    ("error", "error_rate"),
)


def compute_rate(current: float | None, previous: float | None, elapsed: float) -> float | None:
    """
    Derive a per-second rate from two counter readings.

    Args:
        current: Counter value at this poll
        previous: Counter value at the baseline poll
        elapsed: Seconds between the two polls

    Returns:
        Rate per second, or None if either reading is missing, elapsed is
        not positive, or the counter went backwards.
    """
    if current is None or previous is None or elapsed <= 0:
        return None
    delta = current - previous
    if delta < 0:
        return None
    return delta / elapsed


def attach_rates(
    current: dict[str, ComponentMetrics],
    previous: dict[str, ComponentMetrics],
    elapsed: float,
) -> None:
    """Attach rates in place for every key present in both maps."""
    for key, cur in current.items():
        old = previous.get(key)
        if old is None:
            continue
        for counter, rate in RATE_FIELDS:
            setattr(cur, rate, compute_rate(getattr(cur, counter), getattr(old, counter), elapsed))


class RateComputer:
    """
    Derives per-second rates against a rolling baseline.

    One instance belongs to exactly one monitored target.

    Example:
        rates = RateComputer()
        rates.apply(view_at_t0, now=0.0)    # establishes baseline
        view = rates.apply(view_at_t10, now=10.0)
        view.by_path["root.input"].received_rate
    """

    def __init__(self) -> None:
        self._baseline: Snapshot | None = None

    @property
    def baseline(self) -> Snapshot | None:
        return self._baseline

    def apply(self, view: MetricsView, now: float) -> MetricsView:
        """
        Attach rates to a freshly aggregated view and roll the baseline.

        Args:
            view: Aggregate for this poll, mutated in place
            now: Poll time in seconds

        Returns:
            The same view, stamped with `now` and carrying rates where they
            could be derived.
        """
        prev = self._baseline
        if prev is not None:
            elapsed = now - prev.time
            if elapsed > 0:
                attach_rates(view.by_path, prev.by_path, elapsed)
                attach_rates(view.by_label, prev.by_label, elapsed)

        view.timestamp = now
        self._baseline = Snapshot.capture(now, view)
        return view

    def reset(self) -> None:
        """Drop the baseline; the next poll establishes a new one."""
        self._baseline = None
