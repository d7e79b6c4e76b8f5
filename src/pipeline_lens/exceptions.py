"""
Exception classes for the pipeline lens.

- ParseError: Config or exposition text could not be parsed at all
- NoTargetSelectedError: A metrics or config call was made with no active target
- UnknownTargetError: A target name is not in the registry
- StaleResultError: A poll result arrived after its target was deselected

Transport errors are not wrapped: httpx exceptions propagate to the caller
unchanged.
"""


class ParseError(Exception):
    """
    Raised when input text cannot be parsed.

    Per-line problems in exposition text are not errors (the line is
    skipped). This is only raised when the whole document is unusable.

    Attributes:
        source: What was being parsed ("config" or "metrics")
        reason: Parser-supplied description of the failure
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to parse {source}: {reason}")


class NoTargetSelectedError(Exception):
    """Raised when metrics or config are requested with no active target."""

    def __init__(self) -> None:
        super().__init__("No target selected")


class UnknownTargetError(Exception):
    """
    Raised when a target name is not registered.

    Attributes:
        name: The requested target name
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown target: {name}")


class StaleResultError(Exception):
    """
    Raised when a poll result belongs to a target that is no longer active.

    Attributes:
        target: Target the result was fetched for
        active: Target selected when the result arrived (None if cleared)
    """

    def __init__(self, target: str, active: str | None) -> None:
        self.target = target
        self.active = active
        super().__init__(
            f"Discarding result for '{target}' (active target: {active or 'none'})"
        )
