"""
Monitored target registry.

Targets are declared in a JSON file, one entry per pipeline instance:

    [
        {"name": "orders", "url": "http://orders-pipeline:4195",
         "description": "Order ingestion"}
    ]

Names must be unique; they key all per-target state.
"""

import json
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, field_validator

from pipeline_lens.exceptions import UnknownTargetError


class Target(BaseModel):
    """A pipeline instance that can be monitored."""

    name: str
    url: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Target name must not be empty")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Target url must be http(s): {v}")
        return v.rstrip("/")


_TARGET_LIST = TypeAdapter(list[Target])


def parse_targets(data: object) -> list[Target]:
    """
    Validate a decoded targets document.

    Raises:
        pydantic.ValidationError: If entries don't match the schema
        ValueError: If a name is declared twice
    """
    targets = _TARGET_LIST.validate_python(data)
    seen: set[str] = set()
    for t in targets:
        if t.name in seen:
            raise ValueError(f"Duplicate target name: {t.name}")
        seen.add(t.name)
    return targets


def load_targets(path: Path) -> list[Target]:
    """
    Load and validate targets from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
        pydantic.ValidationError: If entries don't match the schema
    """
    with open(path) as f:
        data = json.load(f)
    return parse_targets(data)


def find_target(targets: list[Target], name: str) -> Target:
    """
    Look up a target by name.

    Raises:
        UnknownTargetError: If no target has that name
    """
    for t in targets:
        if t.name == name:
            return t
    raise UnknownTargetError(name)
