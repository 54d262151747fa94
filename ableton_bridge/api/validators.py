"""JSON schema validation helpers for the catalog and tool arguments."""
from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, List, Mapping, Tuple

from jsonschema import Draft202012Validator
from referencing import Registry, Resource

_SCHEMA_PACKAGE = "ableton_bridge.api.schemas"


@lru_cache(maxsize=None)
def _schema_contents(name: str) -> Dict[str, Any]:
    with resources.files(_SCHEMA_PACKAGE).joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=1)
def _registry() -> Registry:
    registry = Registry()
    package = resources.files(_SCHEMA_PACKAGE)
    for entry in package.iterdir():
        if entry.name.endswith(".json"):
            contents = _schema_contents(entry.name)
            schema_id = contents.get("$id")
            if schema_id:
                registry = registry.with_resource(schema_id, Resource.from_contents(contents))
    return registry


@lru_cache(maxsize=None)
def _load_schema(name: str) -> Draft202012Validator:
    schema = _schema_contents(name)
    return Draft202012Validator(schema, registry=_registry())


def _messages(validator: Draft202012Validator, payload: Any) -> List[str]:
    errors: List[str] = []
    for error in sorted(validator.iter_errors(payload), key=lambda e: list(e.path)):
        location = "/".join(str(part) for part in error.path)
        errors.append(f"{location}: {error.message}" if location else error.message)
    return errors


def validate_payload(schema_name: str, payload: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = _messages(_load_schema(schema_name), payload)
    return not errors, errors


def argument_validator(input_schema: Mapping[str, Any]) -> Draft202012Validator:
    """Compile a tool's ``input_schema`` for argument checks."""

    schema = dict(input_schema)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def validate_arguments(
    validator: Draft202012Validator, arguments: Mapping[str, Any]
) -> Tuple[bool, List[str]]:
    errors = _messages(validator, dict(arguments))
    return not errors, errors


__all__ = ["argument_validator", "validate_arguments", "validate_payload"]
