"""
Component object decoding.

Every component in a pipeline definition is a single-key tagged object:

    {label: "my_label", kafka: {...}}
    {mapping: "root = this"}

The tag (component type) is the first key that is neither `label` nor
`processors`. It is decided once here, when the component is decoded,
so the rest of the resolver works with ComponentSpec instead of probing
raw dicts.

If an object carries more than one candidate key, the definition is
ambiguous upstream. The first key in document order is used and a
warning is logged naming all candidates.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "unknown"

# Keys that sit beside the type tag rather than being one
NON_TYPE_KEYS = frozenset({"label", "processors"})


@dataclass
class ComponentSpec:
    """
    A decoded component object.

    Attributes:
        component_type: The type tag (e.g., "kafka"), or "unknown"
        label: Explicit label if set, otherwise the component type
        explicit_label: The explicit label, None if absent or empty
        params: The value under the type tag
        config: The full component object as parsed
    """

    component_type: str
    label: str
    explicit_label: str | None = None
    params: Any = None
    config: dict[str, Any] = field(default_factory=dict)


def type_candidates(config: dict[Any, Any]) -> list[str]:
    """Return every key that could be the component's type tag, in order."""
    return [str(k) for k in config if k not in NON_TYPE_KEYS]


def decode_component(config: Any, where: str = "component") -> ComponentSpec:
    """
    Decode a component object into a ComponentSpec.

    Args:
        config: Parsed component object. Non-mappings decode as "unknown".
        where: Location used in log messages (e.g., "root.pipeline.processors.2")

    Returns:
        ComponentSpec with type and label resolved
    """
    if not isinstance(config, dict):
        return ComponentSpec(component_type=UNKNOWN_TYPE, label=UNKNOWN_TYPE)

    candidates = type_candidates(config)
    if len(candidates) > 1:
        logger.warning(
            "Ambiguous component at %s: candidate types %s, using '%s'",
            where,
            candidates,
            candidates[0],
        )

    component_type = candidates[0] if candidates else UNKNOWN_TYPE

    raw_label = config.get("label")
    explicit_label = raw_label if isinstance(raw_label, str) and raw_label else None

    return ComponentSpec(
        component_type=component_type,
        label=explicit_label or component_type,
        explicit_label=explicit_label,
        params=config.get(component_type),
        config=config,
    )
