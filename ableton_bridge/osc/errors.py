"""Exceptions raised by the OSC transport layer."""
from __future__ import annotations


class OscError(Exception):
    """Base class for OSC transport and codec failures."""


class CodecError(OscError, ValueError):
    """A message could not be encoded or a datagram could not be decoded."""


class TransportError(OscError):
    """The OSC endpoint cannot carry the request."""


class TransportNotOpenError(TransportError):
    """A send was attempted before :meth:`open` completed."""


class TransportClosedError(TransportError):
    """The endpoint was closed; pending waits are rejected with this error."""


class TransportOpenError(TransportError):
    """Binding the receive socket failed. Fatal at startup."""


class ReplyTimeoutError(OscError, TimeoutError):
    """No reply arrived on ``address`` within ``timeout`` seconds."""

    def __init__(self, address: str, timeout: float, diagnostics: str = ""):
        message = (
            f"Timeout waiting for Ableton response on {address} after {timeout * 1000:.0f}ms. "
            "Check that Ableton Live is running with AbletonOSC enabled and ports are correct."
        )
        if diagnostics:
            message = f"{message} ({diagnostics})"
        super().__init__(message)
        self.address = address
        self.timeout = timeout
        self.diagnostics = diagnostics


__all__ = [
    "CodecError",
    "OscError",
    "ReplyTimeoutError",
    "TransportClosedError",
    "TransportError",
    "TransportNotOpenError",
    "TransportOpenError",
]
