"""
Prometheus text exposition parser.

Parses the line-oriented exposition format served on a pipeline's
/metrics endpoint into Sample records.

Format:
    # HELP metric_name description
    # TYPE metric_name counter
    metric_name{label1="val1",label2="val2"} 123.45
    metric_name 123.45

Parsing is deliberately lenient: blank lines and `#` lines are skipped,
and any data line that does not match the grammar is dropped rather than
failing the whole parse. Only input that cannot be decoded as text raises
ParseError.
"""

import logging
import re

from pipeline_lens.exceptions import ParseError
from pipeline_lens.types import Sample

logger = logging.getLogger(__name__)

# Finite decimal (with optional exponent) or one of the literal tokens
VALUE = r"(NaN|[+-]?Inf|[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"

# name{labels} value [timestamp]
LINE_PATTERN = re.compile(
    r"^([a-zA-Z_:][a-zA-Z0-9_:]*)"  # metric name
    r"(?:\{([^}]*)\})?"  # optional label set
    r"\s+" + VALUE +  # value
    r"(?:\s+-?\d+)?$"  # optional timestamp, ignored
)

# key="value" pairs inside the braces, values are not unescaped
LABEL_PATTERN = re.compile(r'([a-zA-Z_][a-zA-Z0-9_]*)="([^"\\]*)"')


def parse_labels(labels_str: str) -> dict[str, str]:
    """
    Extract key="value" pairs from the inside of a label set.

    Args:
        labels_str: Text between the braces, e.g. 'path="root.input",label="in"'

    Returns:
        Dict of label names to raw values. Pairs that don't match are skipped.
    """
    return {m.group(1): m.group(2) for m in LABEL_PATTERN.finditer(labels_str)}


def parse_sample_line(line: str) -> Sample | None:
    """
    Parse a single exposition line.

    Args:
        line: Raw line (surrounding whitespace is ignored)

    Returns:
        Sample if the line is a well-formed data line, None for blank lines,
        comments, and anything that doesn't match the grammar.
    """
    trimmed = line.strip()
    if not trimmed or trimmed.startswith("#"):
        return None

    match = LINE_PATTERN.match(trimmed)
    if not match:
        return None

    name, labels_str, value_str = match.groups()
    return Sample(
        name=name,
        labels=parse_labels(labels_str) if labels_str else {},
        value=float(value_str),
    )


def parse_exposition(text: str | bytes) -> list[Sample]:
    """
    Parse exposition text into samples, in source order.

    Args:
        text: Exposition text, or raw bytes as returned by the endpoint

    Returns:
        List of Sample records. Malformed lines are dropped silently.

    Raises:
        ParseError: If bytes input is not valid UTF-8
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError("metrics", f"not valid UTF-8 ({e.reason})") from e

    samples: list[Sample] = []
    dropped = 0
    for line in text.splitlines():
        sample = parse_sample_line(line)
        if sample is not None:
            samples.append(sample)
        elif line.strip() and not line.lstrip().startswith("#"):
            dropped += 1

    if dropped:
        logger.debug("Dropped %d malformed exposition line(s)", dropped)
    return samples
