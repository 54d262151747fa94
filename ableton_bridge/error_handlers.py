"""400 envelopes for request bodies that cannot be decoded."""
import json
import logging
import uuid
from typing import Dict

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse

from .utils.errors import ErrorCode, make_error
from .utils.logging import current_request

log = logging.getLogger(__name__)


def _correlation_id() -> str:
    context = current_request()
    if context is not None:
        return context.request_id
    return uuid.uuid4().hex


def decode_error_payload(summary: str, message: str, correlation_id: str) -> Dict[str, object]:
    return {
        "ok": False,
        "data": None,
        "errors": [make_error(ErrorCode.INVALID_REQUEST, message)],
        "meta": {"correlation_id": correlation_id, "summary": summary},
    }


def _render_decode_error(request: Request, exc: ValueError, summary: str, message: str) -> JSONResponse:
    correlation_id = _correlation_id()
    log.warning(
        "%s on %s: %s",
        summary,
        request.url.path,
        exc,
        extra={"correlation_id": correlation_id},
    )
    return JSONResponse(
        status_code=400,
        content=decode_error_payload(summary, message, correlation_id),
    )


def install_error_handlers(app: Starlette) -> None:
    """Map body decoding failures raised by ``Request.json`` to 400 envelopes."""

    async def _on_json_decode_error(request: Request, exc: json.JSONDecodeError) -> JSONResponse:
        return _render_decode_error(
            request,
            exc,
            "json_decode_error",
            f"Request body is not valid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}.",
        )

    async def _on_unicode_decode_error(request: Request, exc: UnicodeDecodeError) -> JSONResponse:
        return _render_decode_error(
            request,
            exc,
            "unicode_decode_error",
            f"Request body is not valid {exc.encoding}: {exc.reason} at byte {exc.start}.",
        )

    app.add_exception_handler(json.JSONDecodeError, _on_json_decode_error)
    app.add_exception_handler(UnicodeDecodeError, _on_unicode_decode_error)
