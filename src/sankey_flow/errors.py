"""Exception types raised by the sankey_flow pipeline."""

from __future__ import annotations


class SankeyError(Exception):
    """Base class for every error raised by sankey_flow."""


class ValidationError(SankeyError, ValueError):
    """The input graph document is malformed or incomplete.

    ``path`` points at the offending entry (e.g. ``links[2].value``) when the
    failure can be pinned to one.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class CyclicGraphError(SankeyError):
    """The graph contains a cycle, so no left-to-right ranking exists."""

    def __init__(self, cycle: list[tuple[str, str]]) -> None:
        self.cycle = cycle
        path = " -> ".join([src for src, _ in cycle] + [cycle[0][0]]) if cycle else "?"
        super().__init__(f"graph contains a cycle: {path}")


class RenderCaptureError(SankeyError):
    """Rasterizing a diagram failed; the diagram itself is untouched."""

    retryable = True


class ConfigError(SankeyError, ValueError):
    """A configuration value is out of range or unknown."""
