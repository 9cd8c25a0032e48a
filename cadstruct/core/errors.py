"""
Typed exceptions for cadstruct.

Configuration errors abort a run before any element is created. NoMatch is
fatal to the single entity being resolved. Geometric rejections are not
exceptions at all; they are returned as Skip values.
"""

from typing import Any, Dict, List, Optional

__all__ = [
    "CadStructError",
    "ConfigurationError",
    "FloorCountMismatch",
    "InvalidZone",
    "CatalogEmpty",
    "OutOfRange",
    "NoMatch",
]


def _format_context(ctx: Optional[Dict[str, Any]]) -> str:
    """Return a compact ' | key1=val1, key2=val2' string or '' if no context."""
    if not ctx:
        return ""
    parts = []
    for key in sorted(ctx):
        text = repr(ctx[key])
        if len(text) > 120:
            text = text[:117] + "..."
        parts.append(f"{key}={text}")
    return " | " + ", ".join(parts)


class CadStructError(Exception):
    """
    Base class for all cadstruct errors.

    Args:
        message: Human-readable error
        context: Extra fields appended to the string form
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = dict(context) if context else None
        super().__init__(message)

    def __str__(self) -> str:
        return super().__str__() + _format_context(self.context)


class ConfigurationError(CadStructError):
    """Invalid run configuration. Fatal to the whole run."""


class FloorCountMismatch(ConfigurationError):
    """Grade schedule floor spans do not add up to the story count."""


class InvalidZone(ConfigurationError):
    """Unknown seismic zone (or zone/element combination without a table)."""


class CatalogEmpty(ConfigurationError):
    """No catalog name matched the section naming convention."""


class OutOfRange(ConfigurationError):
    """Floor count outside the supported range."""


class NoMatch(CadStructError):
    """No catalog section could be scored for the requested size."""

    def __init__(
        self,
        required_width: float,
        required_depth: float,
        available_widths: List[int],
        preferred_grade: Optional[str] = None,
    ):
        self.required_width = required_width
        self.required_depth = required_depth
        self.available_widths = list(available_widths)
        self.preferred_grade = preferred_grade
        super().__init__(
            f"No section for {required_width:g}x{required_depth:g}mm",
            {
                "grade": preferred_grade,
                "available_widths": self.available_widths,
            },
        )
