"""Test mode: every operation completes without a socket."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping

import pytest

from ableton_bridge.osc.offline import CANNED_REPLIES, OfflineEndpoint, canned_reply
from ableton_bridge.runtime import BridgeRuntime
from ableton_bridge.utils.config import load_settings


def _sample_value(schema: Mapping[str, Any]) -> Any:
    if "enum" in schema:
        return schema["enum"][0]
    kind = schema.get("type", "string")
    if isinstance(kind, list):
        kind = kind[0]
    if kind in ("integer", "number"):
        low = schema.get("minimum")
        if low is None and "exclusiveMinimum" in schema:
            low = schema["exclusiveMinimum"] + 1
        value = 0 if low is None else low
        return int(value) if kind == "integer" else float(value)
    if kind == "boolean":
        return True
    return "x"


def _required_args(input_schema: Mapping[str, Any]) -> Dict[str, Any]:
    properties = input_schema.get("properties", {})
    return {name: _sample_value(properties.get(name, {})) for name in input_schema.get("required", [])}


def test_canned_replies_are_deterministic():
    assert canned_reply("/live/song/get/tempo") == (120.0,)
    assert canned_reply("/live/song/get/time_signature_numerator") == (4,)
    assert canned_reply("/live/anything/else") == (0,)
    assert set(CANNED_REPLIES) >= {"/live/song/get/tempo"}


@pytest.mark.anyio
async def test_runtime_in_test_mode_uses_offline_endpoint():
    runtime = BridgeRuntime(load_settings({"MCP_TEST_MODE": "1"}))
    assert isinstance(runtime.endpoint, OfflineEndpoint)
    async with runtime:
        result = await runtime.dispatcher.invoke("get_tempo", {})
    assert result == {"ok": True, "data": [120.0], "errors": []}
    assert runtime.endpoint.state.value == "closed"


@pytest.mark.anyio
async def test_every_packaged_operation_completes_offline():
    runtime = BridgeRuntime(load_settings({"MCP_TEST_MODE": "1"}))
    async with runtime:
        for tool in runtime.catalog.tools:
            result = await asyncio.wait_for(
                runtime.dispatcher.invoke(tool.name, _required_args(tool.input_schema)),
                timeout=1.0,
            )
            assert result["ok"] is True, (tool.name, result)
        assert len(runtime.registry) == 0


@pytest.mark.anyio
async def test_offline_mode_still_validates_before_sending():
    runtime = BridgeRuntime(load_settings({"MCP_TEST_MODE": "1"}))
    async with runtime:
        result = await runtime.dispatcher.invoke("fire_clip", {"track_index": 0})
        assert result["errors"][0]["message"] == "Missing required parameter: clip_index"
        assert runtime.endpoint.sent == 0


@pytest.mark.anyio
async def test_offline_composites_run_against_canned_replies():
    runtime = BridgeRuntime(load_settings({"MCP_TEST_MODE": "1"}))
    async with runtime:
        info = await runtime.dispatcher.call("get_song_info", {})
        length = await runtime.dispatcher.call("get_clip_length", {"track_index": 0, "clip_index": 0})
        tracks = await runtime.dispatcher.call("list_tracks", {})
    assert info["tempo"] == 120.0
    assert info["time_signature_numerator"] == 4
    assert info["is_playing"] is False
    assert length == {"length_beats": 0, "length_bars": 0.0}
    assert tracks == {"tracks": []}
