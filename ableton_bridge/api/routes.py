"""Starlette routes exposing the dispatcher over plain HTTP."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..catalog import Composite
from ..utils.errors import ErrorCode
from ..utils.logging import request_scope
from ._shared import envelope_error, envelope_ok, envelope_response

if TYPE_CHECKING:
    from ..runtime import BridgeRuntime


def _describe_operations(runtime: "BridgeRuntime") -> List[Dict[str, object]]:
    entries: List[Dict[str, object]] = []
    for name, operation in sorted(runtime.dispatcher.operations.items()):
        entry: Dict[str, object] = {
            "name": name,
            "mode": operation.mode.value,
            "params": list(operation.params),
            "defaults": dict(operation.defaults),
            "normalized": sorted(operation.normalized),
        }
        if not isinstance(operation, Composite):
            entry["address"] = operation.address
        entries.append(entry)
    return entries


def make_routes(runtime: "BridgeRuntime") -> List[Route]:
    logger = logging.getLogger("ableton_bridge.api")

    async def health_route(request: Request) -> JSONResponse:
        with request_scope("health", logger=logger, extra={"path": "/api/health.json"}):
            endpoint = runtime.endpoint
            payload = {
                "service": runtime.catalog.server_name,
                "offline": endpoint.offline,
                "transport": endpoint.state.value,
                "osc": endpoint.describe(),
                "tools": len(runtime.catalog),
            }
            return JSONResponse(envelope_ok(payload))

    async def operations_route(request: Request) -> JSONResponse:
        return JSONResponse(envelope_ok({"operations": _describe_operations(runtime)}))

    async def call_route(request: Request) -> JSONResponse:
        operation = request.path_params["operation"]
        body = await request.body()
        # Malformed JSON falls through to the installed 400 handler.
        data = await request.json() if body.strip() else {}
        if not isinstance(data, dict):
            return JSONResponse(
                envelope_error(ErrorCode.INVALID_REQUEST, "Payload must be a JSON object."),
                status_code=400,
            )
        payload = await runtime.dispatcher.invoke(operation, data)
        return envelope_response(payload)

    async def state_route(request: Request) -> JSONResponse:
        return JSONResponse(runtime.state())

    return [
        Route("/api/health.json", health_route, methods=["GET"]),
        Route("/api/operations.json", operations_route, methods=["GET"]),
        Route("/api/call/{operation}", call_route, methods=["POST"]),
        Route("/state", state_route, methods=["GET"], name="state"),
    ]


__all__ = ["make_routes"]
