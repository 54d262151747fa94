"""Error codes, templates and dispatch-level exceptions."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence


class ErrorCode(str, Enum):
    """Stable error codes carried in failure envelopes."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class ErrorTemplate:
    """Default status, message, and recovery hints for an error code."""

    status: int
    message: str
    recovery: Sequence[str] = ()


_TEMPLATES: Mapping[ErrorCode, ErrorTemplate] = {
    ErrorCode.INVALID_REQUEST: ErrorTemplate(
        status=400,
        message="Request was malformed or failed validation.",
        recovery=(
            "Check required parameters and value formats against the tool schema.",
        ),
    ),
    ErrorCode.UNKNOWN_OPERATION: ErrorTemplate(
        status=404,
        message="Operation is not implemented.",
        recovery=(
            "List the available tools and call one of them.",
        ),
    ),
    ErrorCode.TIMEOUT: ErrorTemplate(
        status=504,
        message="Ableton Live did not reply in time.",
        recovery=(
            "Check that Ableton Live is running with AbletonOSC enabled.",
            "Check that ABLETON_OSC_SEND_PORT and ABLETON_OSC_RECV_PORT match AbletonOSC.",
        ),
    ),
    ErrorCode.UNAVAILABLE: ErrorTemplate(
        status=503,
        message="OSC transport is not available.",
        recovery=(
            "Restart the bridge; the OSC socket is opened once at startup.",
        ),
    ),
    ErrorCode.INTERNAL: ErrorTemplate(
        status=500,
        message="Internal server error.",
        recovery=(
            "Retry the request or inspect the bridge logs for the request id.",
        ),
    ),
}


def _resolve_template(code: ErrorCode) -> ErrorTemplate:
    try:
        return _TEMPLATES[code]
    except KeyError:  # pragma: no cover - every code has a template
        raise ValueError(f"No error template registered for {code!s}") from None


def make_error(
    code: ErrorCode,
    message: Optional[str] = None,
    *,
    recovery: Optional[Iterable[str]] = None,
    status: Optional[int] = None,
) -> Dict[str, object]:
    """Create a JSON-serialisable error dict."""

    template = _resolve_template(code)
    resolved_message = message if message is not None else template.message
    resolved_status = status if status is not None else template.status
    resolved_recovery: List[str] = list(recovery) if recovery is not None else list(
        template.recovery
    )
    payload: MutableMapping[str, object] = {
        "status": int(resolved_status),
        "code": code.value,
        "message": resolved_message,
        "recovery": resolved_recovery,
    }
    return dict(payload)


class DispatchError(Exception):
    """Base class for errors raised while resolving or normalizing a call."""

    code: ErrorCode = ErrorCode.INVALID_REQUEST


class UnknownOperationError(DispatchError):
    code = ErrorCode.UNKNOWN_OPERATION

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(message or f"Unknown operation '{name}'")
        self.name = name


class MissingParameterError(DispatchError):
    def __init__(self, operation: str, parameter: str):
        super().__init__(f"Missing required parameter: {parameter}")
        self.operation = operation
        self.parameter = parameter


class InvalidArgumentsError(DispatchError):
    def __init__(self, operation: str, problems: Sequence[str]):
        super().__init__("; ".join(problems) or f"Invalid arguments for '{operation}'")
        self.operation = operation
        self.problems = list(problems)


__all__ = [
    "DispatchError",
    "ErrorCode",
    "ErrorTemplate",
    "InvalidArgumentsError",
    "MissingParameterError",
    "UnknownOperationError",
    "make_error",
]
