"""Loopback UDP tests with a fake AbletonOSC peer.

The peer replies to the bridge's fixed receive port, never to the port a
datagram came from, mirroring AbletonOSC.
"""
from __future__ import annotations

import asyncio
import socket
from typing import List, Optional, Set, Tuple

import pytest

from ableton_bridge.catalog import parse_catalog
from ableton_bridge.dispatcher import CommandDispatcher
from ableton_bridge.osc.codec import InboundMessage, OutboundMessage, decode_datagram
from ableton_bridge.osc.errors import (
    ReplyTimeoutError,
    TransportClosedError,
    TransportNotOpenError,
    TransportOpenError,
)
from ableton_bridge.osc.registry import CorrelationRegistry
from ableton_bridge.osc.transport import EndpointState, OscEndpoint
from ableton_bridge.tests._fakes import drain
from ableton_bridge.utils.config import TransportSettings

LOOPBACK = "127.0.0.1"


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind((LOOPBACK, 0))
        return sock.getsockname()[1]


class FakePeer(asyncio.DatagramProtocol):
    """Answers getters with ``(value,)`` on the bridge's reply port."""

    def __init__(self, reply_port: int, silent: Set[str]) -> None:
        self.reply_port = reply_port
        self.silent = silent
        self.received: List[InboundMessage] = []
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport) -> None:  # type: ignore[override]
        self.transport = transport

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        for message in decode_datagram(data):
            self.received.append(message)
            if "/get/" not in message.address or message.address in self.silent:
                continue
            reply = OutboundMessage.create(message.address, *message.args, 120.0)
            self.push(reply)

    def push(self, message: OutboundMessage) -> None:
        assert self.transport is not None
        self.transport.sendto(message.encode(), (LOOPBACK, self.reply_port))


async def _start_peer(reply_port: int, silent: Set[str] = frozenset()):
    loop = asyncio.get_running_loop()
    transport, peer = await loop.create_datagram_endpoint(
        lambda: FakePeer(reply_port, set(silent)), local_addr=(LOOPBACK, 0)
    )
    return transport, peer


def _endpoint(send_port: int, recv_port: int, *, timeout_ms: int = 1000) -> OscEndpoint:
    settings = TransportSettings(
        host=LOOPBACK,
        send_port=send_port,
        recv_host=LOOPBACK,
        recv_port=recv_port,
        timeout_ms=timeout_ms,
    )
    registry = CorrelationRegistry(timeout=settings.timeout, diagnostics=settings.describe())
    return OscEndpoint(settings, registry)


@pytest.mark.anyio
async def test_request_round_trip_over_udp():
    recv_port = _free_port()
    peer_transport, peer = await _start_peer(recv_port)
    try:
        async with _endpoint(peer_transport.get_extra_info("sockname")[1], recv_port) as endpoint:
            reply = await endpoint.request("/live/track/get/name", 3)
            assert reply[0] == 3
            assert reply[-1] == pytest.approx(120.0)
            assert len(endpoint.registry) == 0
            assert endpoint.local_address == (LOOPBACK, recv_port)
    finally:
        peer_transport.close()


@pytest.mark.anyio
async def test_dispatcher_sends_coerced_arguments_to_peer():
    recv_port = _free_port()
    peer_transport, peer = await _start_peer(recv_port)
    catalog = parse_catalog(
        {
            "tools": [
                {
                    "name": "set_mute",
                    "osc_mapping": {"address": "/live/track/set/mute", "params": ["track", "mute"]},
                },
                {
                    "name": "set_volume",
                    "osc_mapping": {
                        "address": "/live/track/set/volume",
                        "params": ["track", "volume"],
                        "normalized": ["volume"],
                    },
                },
            ]
        }
    )
    try:
        async with _endpoint(peer_transport.get_extra_info("sockname")[1], recv_port) as endpoint:
            dispatcher = CommandDispatcher(catalog, endpoint=endpoint)
            await dispatcher.invoke("set_mute", {"track": 1, "mute": True})
            await dispatcher.invoke("set_volume", {"track": 1, "volume": 1.5})
            for _ in range(50):
                if len(peer.received) == 2:
                    break
                await asyncio.sleep(0.01)
    finally:
        peer_transport.close()

    mute, volume = peer.received
    assert (mute.address, mute.args) == ("/live/track/set/mute", (1, 1))
    assert volume.address == "/live/track/set/volume"
    assert volume.args[1] == pytest.approx(1.0)


@pytest.mark.anyio
async def test_concurrent_requests_on_distinct_addresses_resolve_independently():
    recv_port = _free_port()
    peer_transport, _ = await _start_peer(recv_port)
    try:
        async with _endpoint(peer_transport.get_extra_info("sockname")[1], recv_port) as endpoint:
            replies = await asyncio.gather(
                *(endpoint.request(f"/live/test/get/value_{n}", n) for n in range(4))
            )
    finally:
        peer_transport.close()
    assert [reply[0] for reply in replies] == [0, 1, 2, 3]


@pytest.mark.anyio
async def test_silent_peer_times_out_and_cleans_up():
    recv_port = _free_port()
    peer_transport, _ = await _start_peer(recv_port, silent={"/live/song/get/tempo"})
    try:
        async with _endpoint(
            peer_transport.get_extra_info("sockname")[1], recv_port, timeout_ms=150
        ) as endpoint:
            with pytest.raises(ReplyTimeoutError) as excinfo:
                await endpoint.request("/live/song/get/tempo")
            assert f"recv←{recv_port}" in str(excinfo.value)
            assert len(endpoint.registry) == 0
    finally:
        peer_transport.close()


@pytest.mark.anyio
async def test_unsolicited_reply_is_dropped():
    recv_port = _free_port()
    peer_transport, peer = await _start_peer(recv_port)
    try:
        async with _endpoint(peer_transport.get_extra_info("sockname")[1], recv_port) as endpoint:
            peer.push(OutboundMessage.create("/live/song/get/beat", 1))
            for _ in range(50):
                if endpoint.dropped:
                    break
                await asyncio.sleep(0.01)
            assert endpoint.received == 1
            assert endpoint.dropped == 1
    finally:
        peer_transport.close()


@pytest.mark.anyio
async def test_close_rejects_pending_waits():
    recv_port = _free_port()
    peer_transport, _ = await _start_peer(recv_port, silent={"/live/song/get/tempo"})
    try:
        endpoint = _endpoint(peer_transport.get_extra_info("sockname")[1], recv_port)
        await endpoint.open()
        pending = asyncio.create_task(endpoint.request("/live/song/get/tempo"))
        await drain()
        assert len(endpoint.registry) == 1

        await endpoint.close()
        with pytest.raises(TransportClosedError):
            await pending
        with pytest.raises(TransportClosedError):
            endpoint.send("/live/song/start_playing")
        with pytest.raises(TransportClosedError):
            await endpoint.open()
    finally:
        peer_transport.close()


@pytest.mark.anyio
async def test_send_before_open_is_a_usage_error():
    endpoint = _endpoint(_free_port(), _free_port())
    with pytest.raises(TransportNotOpenError):
        endpoint.send("/live/song/start_playing")


@pytest.mark.anyio
async def test_second_endpoint_on_same_binding_fails_fast():
    recv_port = _free_port()
    async with _endpoint(_free_port(), recv_port):
        with pytest.raises(TransportOpenError, match="already in use"):
            await _endpoint(_free_port(), recv_port).open()


@pytest.mark.anyio
async def test_port_held_by_another_socket_fails_fast():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as holder:
        holder.bind((LOOPBACK, 0))
        recv_port = holder.getsockname()[1]
        with pytest.raises(TransportOpenError, match="already in use"):
            await _endpoint(_free_port(), recv_port).open()


@pytest.mark.anyio
async def test_binding_is_released_after_close():
    recv_port = _free_port()
    async with _endpoint(_free_port(), recv_port):
        pass
    async with _endpoint(_free_port(), recv_port) as endpoint:
        assert endpoint.is_open


@pytest.mark.anyio
async def test_close_returns_only_after_the_socket_is_unbound():
    recv_port = _free_port()
    endpoint = _endpoint(_free_port(), recv_port)
    await endpoint.open()
    await endpoint.close()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind((LOOPBACK, recv_port))
    assert endpoint.local_address is None


@pytest.mark.anyio
async def test_transmit_without_bound_socket_raises_not_open():
    endpoint = _endpoint(_free_port(), _free_port())
    endpoint.state = EndpointState.OPEN
    with pytest.raises(TransportNotOpenError, match="not bound"):
        endpoint.send("/live/song/start_playing")
    assert endpoint.sent == 0
