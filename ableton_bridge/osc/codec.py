"""OSC message encoding and decoding."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder
from pythonosc.osc_packet import OscPacket, ParseError

from .errors import CodecError

Scalar = Union[int, float, str]


def normalize_arg(value: object) -> Scalar:
    """Coerce one argument to a type the OSC peer understands.

    AbletonOSC has no boolean type, so ``True``/``False`` become ``1``/``0``.
    """

    # bool is a subclass of int; test it first.
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float, str)):
        return value
    raise CodecError(f"unsupported OSC argument type: {type(value).__name__}")


def normalize_args(args: Iterable[object]) -> Tuple[Scalar, ...]:
    return tuple(normalize_arg(value) for value in args)


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    address: str
    args: Tuple[Scalar, ...] = ()

    @classmethod
    def create(cls, address: str, *args: object) -> "OutboundMessage":
        if not isinstance(address, str) or not address.startswith("/"):
            raise CodecError(f"invalid OSC address: {address!r}")
        return cls(address=address, args=normalize_args(args))

    def encode(self) -> bytes:
        builder = OscMessageBuilder(address=self.address)
        for value in self.args:
            builder.add_arg(value)
        try:
            return builder.build().dgram
        except BuildError as exc:
            raise CodecError(f"cannot encode {self.address}: {exc}") from exc


@dataclass(frozen=True, slots=True)
class InboundMessage:
    address: str
    args: Tuple[object, ...] = ()


def decode_datagram(data: bytes) -> List[InboundMessage]:
    """Decode a datagram holding a single message or a bundle."""

    try:
        packet = OscPacket(data)
    except ParseError as exc:
        raise CodecError(f"malformed OSC datagram: {exc}") from exc
    return [
        InboundMessage(address=timed.message.address, args=tuple(timed.message.params))
        for timed in packet.messages
    ]


__all__ = [
    "InboundMessage",
    "OutboundMessage",
    "Scalar",
    "decode_datagram",
    "normalize_arg",
    "normalize_args",
]
