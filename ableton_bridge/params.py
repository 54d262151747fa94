"""Argument normalization shared by the dispatcher and the procedures."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from .utils.errors import MissingParameterError


def merge_defaults(
    defaults: Mapping[str, Any], arguments: Mapping[str, Any]
) -> Dict[str, Any]:
    """Overlay caller arguments on ``defaults``.

    Only an absent key or ``None`` falls back to the default; ``0``,
    ``False`` and ``""`` are real values.
    """

    merged: Dict[str, Any] = dict(defaults)
    for key, value in arguments.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def ordered_values(
    operation: str, params: Iterable[str], values: Mapping[str, Any]
) -> List[Any]:
    ordered: List[Any] = []
    for name in params:
        if name not in values:
            raise MissingParameterError(operation, name)
        ordered.append(values[name])
    return ordered


def clamp(value: Any, low: float, high: float, *, name: str = "value") -> float:
    """Clamp a numeric value into ``[low, high]`` instead of rejecting it."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(min(max(value, low), high))


def clamp_unit(value: Any, *, name: str = "value") -> float:
    return clamp(value, 0.0, 1.0, name=name)


__all__ = ["clamp", "clamp_unit", "merge_defaults", "ordered_values"]
