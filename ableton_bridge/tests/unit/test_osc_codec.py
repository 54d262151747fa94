"""Unit tests for OSC argument normalization and the wire codec."""
from __future__ import annotations

import pytest
from pythonosc.osc_bundle_builder import IMMEDIATELY, OscBundleBuilder
from pythonosc.osc_message_builder import OscMessageBuilder

from ableton_bridge.osc.codec import OutboundMessage, decode_datagram, normalize_args
from ableton_bridge.osc.errors import CodecError


def test_booleans_become_integer_flags():
    assert normalize_args([True, False, 1, 0.5, "name"]) == (1, 0, 1, 0.5, "name")
    assert type(normalize_args([True])[0]) is int


def test_unsupported_argument_type_is_rejected():
    with pytest.raises(CodecError):
        normalize_args([None])
    with pytest.raises(CodecError):
        normalize_args([{"nested": 1}])


def test_create_requires_slash_address():
    with pytest.raises(CodecError):
        OutboundMessage.create("live/song/get/tempo")


def test_create_normalizes_once_and_is_immutable():
    message = OutboundMessage.create("/live/track/set/mute", 2, True)
    assert message.args == (2, 1)
    with pytest.raises(AttributeError):
        message.address = "/other"  # type: ignore[misc]


def test_encoded_message_decodes_to_same_address_and_args():
    message = OutboundMessage.create("/live/clip/set/name", 1, 3, "Bass")
    (decoded,) = decode_datagram(message.encode())
    assert decoded.address == "/live/clip/set/name"
    assert decoded.args == (1, 3, "Bass")


def test_bundle_yields_every_contained_message():
    bundle = OscBundleBuilder(IMMEDIATELY)
    for address, value in (("/live/song/get/tempo", 120.0), ("/live/song/get/is_playing", 1)):
        builder = OscMessageBuilder(address=address)
        builder.add_arg(value)
        bundle.add_content(builder.build())
    messages = decode_datagram(bundle.build().dgram)
    assert [m.address for m in messages] == ["/live/song/get/tempo", "/live/song/get/is_playing"]


def test_garbage_datagram_raises_codec_error():
    with pytest.raises(CodecError):
        decode_datagram(b"not an osc packet")
