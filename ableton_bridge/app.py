"""Application wiring: MCP server over stdio or SSE, plus the HTTP API."""
from __future__ import annotations

import contextlib
import logging
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount, Route

from . import __version__
from .api.routes import make_routes
from .api.tools import register_tools
from .error_handlers import install_error_handlers
from .runtime import BridgeRuntime
from .utils.config import BridgeSettings, load_settings

SSE_PATH = "/sse"
MESSAGE_PATH = "/messages/"

_SSE_LOGGER = logging.getLogger("ableton_bridge.sse")


@dataclass(slots=True)
class SseState:
    """Diagnostics for the SSE endpoint."""

    active: int = 0
    connects: int = 0
    last_connection_id: str | None = None


def build_mcp_server(runtime: BridgeRuntime) -> Server:
    server: Server = Server(runtime.catalog.server_name, version=__version__)
    register_tools(server, dispatcher=runtime.dispatcher)
    return server


async def serve_stdio(settings: BridgeSettings, *, runtime: Optional[BridgeRuntime] = None) -> None:
    """Run the MCP server on stdin/stdout until the client disconnects."""

    runtime = runtime or BridgeRuntime(settings)
    server = build_mcp_server(runtime)
    async with runtime:
        logging.getLogger("ableton_bridge.app").info(
            "%s running on stdio", runtime.catalog.server_name
        )
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


def create_app(
    settings: Optional[BridgeSettings] = None,
    *,
    runtime: Optional[BridgeRuntime] = None,
) -> Starlette:
    """Build the SSE + HTTP application.

    When ``runtime`` is supplied the caller owns its lifecycle; otherwise the
    app opens and closes its own runtime through the Starlette lifespan.
    """

    owns_runtime = runtime is None
    if runtime is None:
        runtime = BridgeRuntime(settings or load_settings())
    server = build_mcp_server(runtime)
    transport = SseServerTransport(MESSAGE_PATH)
    sse_state = SseState()

    async def handle_sse(request: Request) -> Response:
        client = request.client or ("unknown", 0)
        connection_id = uuid.uuid4().hex
        sse_state.active += 1
        sse_state.connects += 1
        sse_state.last_connection_id = connection_id
        _SSE_LOGGER.info(
            "sse.connect",
            extra={
                "client_host": client[0],
                "client_port": client[1],
                "connection_id": connection_id,
                "connects": sse_state.connects,
            },
        )
        try:
            async with transport.connect_sse(
                request.scope,
                request.receive,
                request._send,  # type: ignore[attr-defined]
            ) as streams:
                await server.run(streams[0], streams[1], server.create_initialization_options())
        finally:
            sse_state.active -= 1
            _SSE_LOGGER.info("sse.disconnect", extra={"connection_id": connection_id})
        return Response(status_code=204)

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        if not owns_runtime:
            yield
            return
        async with runtime:
            yield

    app = Starlette(
        routes=[
            Route(SSE_PATH, endpoint=handle_sse, methods=["GET"]),
            Mount(MESSAGE_PATH, app=transport.handle_post_message),
            *make_routes(runtime),
        ],
        lifespan=lifespan,
    )
    install_error_handlers(app)
    app.state.runtime = runtime
    app.state.sse = sse_state
    return app


__all__ = ["SSE_PATH", "MESSAGE_PATH", "build_mcp_server", "create_app", "serve_stdio"]
