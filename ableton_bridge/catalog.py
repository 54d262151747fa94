"""Operation catalog: tool declarations and their OSC mappings."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, ClassVar, Dict, FrozenSet, Mapping, Optional, Tuple

from .api.validators import validate_payload
from .utils.config import DEFAULT_SERVER_NAME

logger = logging.getLogger("ableton_bridge.catalog")

CATALOG_SCHEMA = "catalog.v1.json"
EMPTY_INPUT_SCHEMA: Mapping[str, Any] = MappingProxyType(
    {"type": "object", "properties": {}, "required": []}
)


class SendMode(str, Enum):
    FIRE_AND_FORGET = "fire_and_forget"
    REQUEST_RESPONSE = "request_response"
    COMPOSITE = "composite"


class CatalogError(ValueError):
    """The catalog document is structurally valid JSON but inconsistent."""


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, kw_only=True)
class Operation:
    name: str
    params: Tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=lambda: _frozen(None))
    normalized: FrozenSet[str] = frozenset()

    mode: ClassVar[SendMode]


@dataclass(frozen=True, kw_only=True)
class FireAndForget(Operation):
    address: str

    mode: ClassVar[SendMode] = SendMode.FIRE_AND_FORGET


@dataclass(frozen=True, kw_only=True)
class RequestResponse(Operation):
    address: str

    mode: ClassVar[SendMode] = SendMode.REQUEST_RESPONSE


@dataclass(frozen=True, kw_only=True)
class Composite(Operation):
    procedure: Callable[..., Awaitable[object]]

    mode: ClassVar[SendMode] = SendMode.COMPOSITE


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str = ""
    input_schema: Mapping[str, Any] = field(default_factory=lambda: dict(EMPTY_INPUT_SCHEMA))


@dataclass(frozen=True)
class Catalog:
    server_name: str = DEFAULT_SERVER_NAME
    tools: Tuple[ToolSpec, ...] = ()
    operations: Mapping[str, Operation] = field(default_factory=lambda: _frozen(None))
    source: Optional[Path] = None

    @classmethod
    def empty(cls, source: Optional[Path] = None) -> "Catalog":
        return cls(source=source)

    def __len__(self) -> int:
        return len(self.tools)

    def __contains__(self, name: object) -> bool:
        return any(tool.name == name for tool in self.tools)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(tool.name for tool in self.tools)

    def tool(self, name: str) -> Optional[ToolSpec]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None


def _build_operation(name: str, mapping: Mapping[str, Any]) -> Operation:
    params = tuple(mapping.get("params", ()))
    if len(set(params)) != len(params):
        raise CatalogError(f"{name}: duplicate parameter names in osc_mapping")
    defaults = dict(mapping.get("defaults", {}))
    normalized = frozenset(mapping.get("normalized", ()))
    unknown = (set(defaults) | normalized) - set(params)
    if unknown:
        raise CatalogError(
            f"{name}: defaults/normalized name undeclared params: {', '.join(sorted(unknown))}"
        )
    mode = SendMode(mapping.get("mode", SendMode.FIRE_AND_FORGET.value))
    kwargs: Dict[str, Any] = {
        "name": name,
        "address": mapping["address"],
        "params": params,
        "defaults": _frozen(defaults),
        "normalized": normalized,
    }
    if mode is SendMode.REQUEST_RESPONSE:
        return RequestResponse(**kwargs)
    return FireAndForget(**kwargs)


def parse_catalog(document: Mapping[str, Any], *, source: Optional[Path] = None) -> Catalog:
    """Turn a validated catalog document into typed operations."""

    valid, errors = validate_payload(CATALOG_SCHEMA, dict(document))
    if not valid:
        raise CatalogError("; ".join(errors))

    tools: list[ToolSpec] = []
    operations: Dict[str, Operation] = {}
    for entry in document.get("tools", []):
        name = entry["name"]
        if any(tool.name == name for tool in tools):
            raise CatalogError(f"duplicate tool name: {name}")
        tools.append(
            ToolSpec(
                name=name,
                description=entry.get("description", ""),
                input_schema=entry.get("input_schema") or dict(EMPTY_INPUT_SCHEMA),
            )
        )
        mapping = entry.get("osc_mapping")
        if mapping is not None:
            operations[name] = _build_operation(name, mapping)

    return Catalog(
        server_name=document.get("server_name") or DEFAULT_SERVER_NAME,
        tools=tuple(tools),
        operations=_frozen(operations),
        source=source,
    )


def load_catalog(path: Optional[Path | str]) -> Catalog:
    """Load the catalog at ``path``.

    A missing, unreadable or malformed file yields an empty catalog: the
    bridge keeps running with zero operations rather than failing.
    """

    if path is None:
        logger.warning("No tool catalog configured. No tools will be available.")
        return Catalog.empty()
    source = Path(path)
    if not source.exists():
        logger.warning("%s not found. No tools will be available.", source)
        return Catalog.empty(source)
    try:
        with source.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to load %s: %s", source, exc)
        return Catalog.empty(source)
    if not isinstance(document, dict):
        logger.warning("Failed to load %s: top level must be a JSON object", source)
        return Catalog.empty(source)
    try:
        catalog = parse_catalog(document, source=source)
    except CatalogError as exc:
        logger.warning("Ignoring malformed catalog %s: %s", source, exc)
        return Catalog.empty(source)
    logger.info("Loaded %d tools from %s", len(catalog), source)
    return catalog


__all__ = [
    "Catalog",
    "CatalogError",
    "Composite",
    "FireAndForget",
    "Operation",
    "RequestResponse",
    "SendMode",
    "ToolSpec",
    "load_catalog",
    "parse_catalog",
]
