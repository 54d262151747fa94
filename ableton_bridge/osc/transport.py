"""UDP endpoint shared by every send and receive of the process."""
from __future__ import annotations

import asyncio
import errno
import logging
from enum import Enum
from typing import ClassVar, Dict, Optional, Set, Tuple

from ..utils.config import TransportSettings
from ..utils.logging import increment_counter
from .codec import InboundMessage, OutboundMessage, decode_datagram
from .errors import (
    CodecError,
    ReplyTimeoutError,
    TransportClosedError,
    TransportNotOpenError,
    TransportOpenError,
)
from .registry import CorrelationRegistry

logger = logging.getLogger("ableton_bridge.osc.transport")


class EndpointState(str, Enum):
    NEW = "new"
    OPEN = "open"
    CLOSED = "closed"


class BaseEndpoint:
    """Send/receive plumbing common to the real and the offline endpoint.

    Every outbound message passes through :meth:`send`, which is the one
    place arguments are normalized for the wire.
    """

    offline: ClassVar[bool] = False

    def __init__(self, settings: TransportSettings, registry: CorrelationRegistry) -> None:
        self.settings = settings
        self.registry = registry
        self.state = EndpointState.NEW
        self.sent = 0
        self.received = 0
        self.dropped = 0

    @property
    def is_open(self) -> bool:
        return self.state is EndpointState.OPEN

    def describe(self) -> str:
        return self.settings.describe()

    async def open(self) -> None:
        if self.state is EndpointState.OPEN:
            return
        if self.state is EndpointState.CLOSED:
            raise TransportClosedError("OSC endpoint was closed and cannot be reopened")
        await self._open()
        self.state = EndpointState.OPEN

    async def close(self) -> None:
        if self.state is EndpointState.CLOSED:
            return
        self.state = EndpointState.CLOSED
        self.registry.reject_all(
            lambda address: TransportClosedError(
                f"OSC transport closed while waiting for a reply on {address}"
            )
        )
        await self._close()

    async def __aenter__(self) -> "BaseEndpoint":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def send(self, address: str, *args: object) -> OutboundMessage:
        """Fire-and-forget send. Delivery and ordering are not guaranteed."""

        if self.state is EndpointState.NEW:
            raise TransportNotOpenError(
                f"cannot send {address}: OSC endpoint is not open ({self.describe()})"
            )
        if self.state is EndpointState.CLOSED:
            raise TransportClosedError(f"cannot send {address}: OSC endpoint is closed")
        message = OutboundMessage.create(address, *args)
        self._transmit(message)
        self.sent += 1
        increment_counter("osc.sent")
        logger.debug("osc.send", extra={"address": address, "osc_args": list(message.args)})
        return message

    async def request(
        self, address: str, *args: object, timeout: Optional[float] = None
    ) -> Tuple[object, ...]:
        """Send ``address`` and wait for the reply on the same address."""

        try:
            reply = await self.registry.request(address, args, send=self.send, timeout=timeout)
        except ReplyTimeoutError:
            increment_counter("osc.timeouts")
            raise
        increment_counter("osc.replies")
        return reply

    def deliver(self, message: InboundMessage) -> bool:
        self.received += 1
        if self.registry.resolve(message.address, message.args):
            return True
        self.dropped += 1
        logger.debug(
            "osc.drop",
            extra={"address": message.address, "reason": "no_pending_wait"},
        )
        return False

    def snapshot(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "offline": self.offline,
            "host": self.settings.host,
            "send_port": self.settings.send_port,
            "recv_host": self.settings.recv_host,
            "recv_port": self.settings.recv_port,
            "timeout_ms": self.settings.timeout_ms,
            "pending": sorted(wait.address for wait in self.registry),
            "sent": self.sent,
            "received": self.received,
            "dropped": self.dropped,
        }

    async def _open(self) -> None:
        raise NotImplementedError

    async def _close(self) -> None:
        raise NotImplementedError

    def _transmit(self, message: OutboundMessage) -> None:
        raise NotImplementedError


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, endpoint: "OscEndpoint") -> None:
        self._endpoint = endpoint
        self.closed: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if not self.closed.done():
            self.closed.set_result(None)

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self._endpoint._on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        # ICMP port-unreachable from a peer that is not running lands here.
        logger.warning("osc.socket_error", extra={"error": str(exc)})


class OscEndpoint(BaseEndpoint):
    """One UDP socket bound to the fixed reply port, sending to the peer."""

    _bindings: ClassVar[Set[Tuple[str, int]]] = set()

    def __init__(self, settings: TransportSettings, registry: CorrelationRegistry) -> None:
        super().__init__(settings, registry)
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[_DatagramProtocol] = None
        self._binding: Optional[Tuple[str, int]] = None

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")

    async def _open(self) -> None:
        binding = self.settings.binding
        if binding[1] and binding in self._bindings:
            raise TransportOpenError(
                f"OSC receive port {binding[1]} on {binding[0]} is already in use by this process"
            )
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: _DatagramProtocol(self), local_addr=binding
            )
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                raise TransportOpenError(
                    f"OSC receive port {binding[1]} on {binding[0]} is already in use; "
                    "is another bridge instance running? "
                    "Set ABLETON_OSC_RECV_PORT to the port AbletonOSC replies to."
                ) from exc
            raise TransportOpenError(
                f"cannot bind OSC receive socket on {binding[0]}:{binding[1]}: {exc}"
            ) from exc
        self._transport = transport
        self._protocol = protocol
        if binding[1]:
            self._binding = binding
            self._bindings.add(binding)
        logger.info("OSC listening on %s:%s (%s)", binding[0], binding[1], self.describe())

    async def _close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        if self._protocol is not None:
            # The socket is released in connection_lost, one loop turn later.
            await self._protocol.closed
            self._protocol = None
        if self._binding is not None:
            self._bindings.discard(self._binding)
            self._binding = None
        logger.info("OSC endpoint closed")

    def _transmit(self, message: OutboundMessage) -> None:
        if self._transport is None:
            raise TransportNotOpenError(
                f"cannot send {message.address}: OSC socket is not bound ({self.describe()})"
            )
        self._transport.sendto(message.encode(), self.settings.destination)

    def _on_datagram(self, data: bytes, addr: Tuple[str, int]) -> None:
        try:
            messages = decode_datagram(data)
        except CodecError as exc:
            self.dropped += 1
            logger.warning("osc.decode_error", extra={"peer": f"{addr[0]}:{addr[1]}", "error": str(exc)})
            return
        for message in messages:
            self.deliver(message)


__all__ = ["BaseEndpoint", "EndpointState", "OscEndpoint"]
