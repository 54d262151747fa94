"""Unit tests for catalog loading and typing."""
from __future__ import annotations

import json
import logging

import pytest

from ableton_bridge.catalog import (
    CatalogError,
    FireAndForget,
    RequestResponse,
    SendMode,
    ToolSpec,
    load_catalog,
    parse_catalog,
)
from ableton_bridge.features import PROCEDURES
from ableton_bridge.runtime import BridgeRuntime
from ableton_bridge.utils.config import DEFAULT_SERVER_NAME, default_tools_path, load_settings


def test_packaged_catalog_loads_and_types_mappings():
    catalog = load_catalog(default_tools_path())

    assert catalog.server_name == "ableton-osc-mcp"
    assert len(catalog) > 20
    assert isinstance(catalog.operations["set_tempo"], FireAndForget)
    assert isinstance(catalog.operations["get_tempo"], RequestResponse)
    assert catalog.operations["create_clip"].defaults == {"length": 4.0}
    assert catalog.operations["set_track_volume"].normalized == frozenset({"volume"})


def test_every_packaged_tool_is_wired():
    catalog = load_catalog(default_tools_path())
    unwired = [
        name for name in catalog.names
        if name not in catalog.operations and name not in PROCEDURES
    ]
    assert unwired == []


def test_mode_defaults_to_fire_and_forget():
    catalog = parse_catalog({"tools": [{"name": "ping", "osc_mapping": {"address": "/ping"}}]})
    operation = catalog.operations["ping"]
    assert operation.mode is SendMode.FIRE_AND_FORGET
    assert operation.params == ()
    assert catalog.server_name == DEFAULT_SERVER_NAME


def test_tool_without_mapping_is_listed_but_has_no_operation():
    catalog = parse_catalog({"tools": [{"name": "later", "description": "soon"}]})
    assert "later" in catalog
    assert "later" not in catalog.operations
    assert catalog.tool("later").input_schema["type"] == "object"


@pytest.mark.parametrize(
    "document",
    [
        {"tools": [{"name": "x", "osc_mapping": {"address": "no-slash"}}]},
        {"tools": [{"name": "x", "osc_mapping": {"address": "/x", "mode": "sometimes"}}]},
        {"tools": [{"name": "x", "osc_mapping": {"address": "/x", "params": ["a", "a"]}}]},
        {"tools": [{"name": "x", "osc_mapping": {"address": "/x", "defaults": {"b": 1}}}]},
        {"tools": [{"name": "x", "osc_mapping": {"address": "/x", "normalized": ["c"]}}]},
        {"tools": [{"name": "x"}, {"name": "x"}]},
        {"tools": "not-a-list"},
    ],
)
def test_inconsistent_documents_raise(document):
    with pytest.raises(CatalogError):
        parse_catalog(document)


def test_missing_file_yields_empty_catalog(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="ableton_bridge.catalog"):
        catalog = load_catalog(tmp_path / "absent.json")
    assert len(catalog) == 0
    assert catalog.operations == {}
    assert "not found" in caplog.text


def test_tool_spec_default_schema_is_a_fresh_object_schema():
    first = ToolSpec(name="a")
    second = ToolSpec(name="b")
    assert first.input_schema == {"type": "object", "properties": {}, "required": []}
    assert first.input_schema is not second.input_schema


@pytest.mark.parametrize(
    "content",
    [
        b"{not json",
        b"[1, 2, 3]",
        json.dumps({"tools": [{"name": "x", "osc_mapping": {"address": "x"}}]}).encode("utf-8"),
        b"\xff\xfe{\x00}\x00",
    ],
)
def test_malformed_file_yields_empty_catalog(tmp_path, content):
    path = tmp_path / "tools.json"
    path.write_bytes(content)
    catalog = load_catalog(path)
    assert len(catalog) == 0
    assert catalog.source == path


@pytest.mark.anyio
async def test_runtime_starts_with_undecodable_catalog(tmp_path):
    path = tmp_path / "tools.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    runtime = BridgeRuntime(load_settings({"MCP_TEST_MODE": "1", "ABLETON_MCP_TOOLS": str(path)}))
    async with runtime:
        result = await runtime.dispatcher.invoke("get_tempo", {})
    assert len(runtime.catalog) == 0
    assert result["ok"] is False
    assert result["errors"][0]["code"] == "UNKNOWN_OPERATION"


def test_no_path_yields_empty_catalog():
    assert len(load_catalog(None)) == 0
