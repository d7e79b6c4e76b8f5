"""Human-readable formatting for metric values."""


def format_latency(ns: float | None) -> str:
    """Format nanoseconds, e.g. 1500000 -> "1.5ms". Unset or zero -> "-"."""
    if not ns:
        return "-"
    if ns < 1_000:
        return f"{ns:.0f}ns"
    if ns < 1_000_000:
        return f"{ns / 1_000:.1f}µs"
    if ns < 1_000_000_000:
        return f"{ns / 1_000_000:.1f}ms"
    return f"{ns / 1_000_000_000:.2f}s"


def format_count(n: float | None) -> str:
    """Format a counter, e.g. 12345 -> "12.3k"."""
    if n is None:
        return "-"
    if n < 1_000:
        return f"{n:.0f}"
    if n < 1_000_000:
        return f"{n / 1_000:.1f}k"
    return f"{n / 1_000_000:.1f}M"


def format_rate(n: float | None) -> str:
    """Format a per-second rate, e.g. 4.25 -> "4.2/s"."""
    if n is None:
        return "-"
    if n < 0.01:
        return "0/s"
    if n < 1:
        return f"{n:.2f}/s"
    if n < 10:
        return f"{n:.1f}/s"
    if n < 1_000:
        return f"{n:.0f}/s"
    if n < 1_000_000:
        return f"{n / 1_000:.1f}k/s"
    return f"{n / 1_000_000:.1f}M/s"
