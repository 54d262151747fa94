"""Composite procedures: operations built from several OSC sends and waits.

Each procedure is an ``async`` callable ``(session, args) -> result`` where
``session`` is the only way it talks to Live and ``args`` is the caller's
argument record with defaults already merged in. Registration happens at
import time through :func:`procedure`.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from ..catalog import Composite

Reply = Tuple[object, ...]
ProcedureFn = Callable[["OscSession", Dict[str, Any]], Awaitable[object]]


class OscSession(Protocol):
    """What a procedure may do against the peer."""

    @property
    def offline(self) -> bool: ...

    def fire(self, address: str, *args: object) -> None: ...

    async def query(self, address: str, *args: object) -> Reply: ...

    async def settle(self, seconds: float) -> None: ...


PROCEDURES: Dict[str, Composite] = {}


def procedure(
    name: str,
    *,
    params: Sequence[str] = (),
    defaults: Optional[Mapping[str, Any]] = None,
    normalized: Iterable[str] = (),
) -> Callable[[ProcedureFn], ProcedureFn]:
    """Register ``fn`` as the composite operation ``name``.

    ``params`` lists the arguments that must be present (after defaults)
    before the procedure is allowed to send anything.
    """

    def decorator(fn: ProcedureFn) -> ProcedureFn:
        if name in PROCEDURES:
            raise ValueError(f"procedure {name!r} registered twice")
        PROCEDURES[name] = Composite(
            name=name,
            params=tuple(params),
            defaults=MappingProxyType(dict(defaults or {})),
            normalized=frozenset(normalized),
            procedure=fn,
        )
        return fn

    return decorator


def value_of(reply: Reply) -> object:
    """Return the payload of a getter reply.

    AbletonOSC echoes index arguments (track, clip, scene) ahead of the
    value, so the value is always the last argument.
    """

    return reply[-1] if reply else None


def flag(reply: Reply) -> bool:
    return bool(value_of(reply))


def count(reply: Reply) -> int:
    value = value_of(reply)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(int(value), 0)


# Submodules register themselves on import.
from . import clips, health, scenes, song, tracks  # noqa: E402,F401

__all__ = ["OscSession", "PROCEDURES", "count", "flag", "procedure", "value_of"]
