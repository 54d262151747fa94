"""OSC transport, codec and reply correlation."""
from .codec import InboundMessage, OutboundMessage, decode_datagram, normalize_args
from .errors import (
    CodecError,
    OscError,
    ReplyTimeoutError,
    TransportClosedError,
    TransportError,
    TransportNotOpenError,
    TransportOpenError,
)
from .offline import OfflineEndpoint
from .registry import CorrelationRegistry, PendingWait, WaitConflictError
from .transport import BaseEndpoint, EndpointState, OscEndpoint

__all__ = [
    "BaseEndpoint",
    "CodecError",
    "CorrelationRegistry",
    "EndpointState",
    "InboundMessage",
    "OfflineEndpoint",
    "OscEndpoint",
    "OscError",
    "OutboundMessage",
    "PendingWait",
    "ReplyTimeoutError",
    "TransportClosedError",
    "TransportError",
    "TransportNotOpenError",
    "TransportOpenError",
    "WaitConflictError",
    "decode_datagram",
    "normalize_args",
]
