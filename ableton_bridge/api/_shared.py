"""Shared helpers for tools and HTTP routes."""
from __future__ import annotations

import json
from typing import Dict

from starlette.responses import JSONResponse

from ..utils.errors import ErrorCode, make_error


def envelope_ok(data: object) -> Dict[str, object]:
    return {"ok": True, "data": data, "errors": []}


def envelope_error(
    code: ErrorCode,
    message: str | None = None,
    *,
    recovery: tuple[str, ...] | None = None,
    status: int | None = None,
) -> Dict[str, object]:
    error_payload = make_error(
        code,
        message=message,
        recovery=recovery,
        status=status,
    )
    return {
        "ok": False,
        "data": None,
        "errors": [error_payload],
    }


def envelope_status(payload: Dict[str, object]) -> int:
    if payload.get("ok"):
        return 200
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        return int(errors[0].get("status", 500))
    return 500


def envelope_message(payload: Dict[str, object]) -> str:
    """Human-readable message of the first error in a failure envelope."""

    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        return str(errors[0].get("message", "unknown error"))
    return "unknown error"


def envelope_response(payload: Dict[str, object]) -> JSONResponse:
    return JSONResponse(payload, status_code=envelope_status(payload))


def render_text(data: object) -> str:
    """Strings pass through verbatim; anything else becomes indented JSON."""

    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2)


__all__ = [
    "envelope_error",
    "envelope_message",
    "envelope_ok",
    "envelope_response",
    "envelope_status",
    "render_text",
]
