"""
Resource reference scanning.

Processors and outputs point at shared resources by name:

    dedupe: {cache: mem}                 -> cache "mem"
    http_client: {rate_limit: api_limit} -> rate limit "api_limit"
    rate_limit: {resource: api_limit}    -> rate limit "api_limit"
    cache_resource / rate_limit_resource -> same, explicit field names

References can sit at any depth, so the config tree is walked with a
generic visitor that reports every string leaf together with its key and
its parent's key. The walk never fails on a well-formed tree.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

CACHE_KEYS = frozenset({"cache", "cache_resource"})
RATE_LIMIT_KEYS = frozenset({"rate_limit", "rate_limit_resource"})


@dataclass
class ResourceRefs:
    """Resource names referenced by one component, in discovery order."""

    caches: list[str] = field(default_factory=list)
    rate_limits: list[str] = field(default_factory=list)

    def add_cache(self, name: str) -> None:
        if name not in self.caches:
            self.caches.append(name)

    def add_rate_limit(self, name: str) -> None:
        if name not in self.rate_limits:
            self.rate_limits.append(name)


def iter_string_leaves(
    value: Any, key: Any = None, parent_key: Any = None
) -> Iterator[tuple[str, Any, Any]]:
    """
    Walk a parsed config tree and yield every string leaf.

    List items have no key of their own; they inherit the list's key as
    their parent key.

    Yields:
        (value, key, parent_key) for each string leaf
    """
    if isinstance(value, str):
        yield value, key, parent_key
    elif isinstance(value, list):
        for item in value:
            yield from iter_string_leaves(item, None, key)
    elif isinstance(value, dict):
        for k, v in value.items():
            yield from iter_string_leaves(v, k, key)


def extract_resource_refs(config: Any) -> ResourceRefs:
    """
    Collect cache and rate limit names referenced anywhere in a config.

    Args:
        config: A component's raw config tree

    Returns:
        ResourceRefs with de-duplicated names
    """
    refs = ResourceRefs()
    for value, key, parent_key in iter_string_leaves(config):
        if key in CACHE_KEYS:
            refs.add_cache(value)
        if key in RATE_LIMIT_KEYS:
            refs.add_rate_limit(value)
        if key == "resource" and parent_key == "rate_limit":
            refs.add_rate_limit(value)
    return refs
