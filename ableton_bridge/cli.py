"""Command-line entry point for the bridge."""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

import uvicorn

from .app import create_app, serve_stdio
from .osc.errors import TransportOpenError
from .runtime import BridgeRuntime
from .utils.config import BridgeSettings, load_settings
from .utils.logging import configure_root

LOGGER = logging.getLogger("ableton_bridge.cli")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser; every OSC flag overrides its env variable."""
    parser = argparse.ArgumentParser(
        description="MCP bridge for Ableton Live over AbletonOSC"
    )
    parser.add_argument(
        "--transport",
        type=str,
        default="stdio",
        choices=["stdio", "sse"],
        help="MCP transport, default: stdio",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host for the SSE/HTTP server, default: 127.0.0.1",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8099,
        help="Port for the SSE/HTTP server, default: 8099",
    )
    parser.add_argument("--osc-host", type=str, help="AbletonOSC host (ABLETON_OSC_HOST)")
    parser.add_argument(
        "--osc-send-port", type=int, help="AbletonOSC listen port (ABLETON_OSC_SEND_PORT)"
    )
    parser.add_argument(
        "--osc-recv-port", type=int, help="Local reply port (ABLETON_OSC_RECV_PORT)"
    )
    parser.add_argument(
        "--timeout-ms", type=int, help="Reply timeout in ms (ABLETON_OSC_TIMEOUT_MS)"
    )
    parser.add_argument("--tools", type=Path, help="Tool catalog JSON (ABLETON_MCP_TOOLS)")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        default=None,
        help="Run without an OSC socket and answer with canned replies (MCP_TEST_MODE)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def settings_from_args(args: argparse.Namespace) -> BridgeSettings:
    return load_settings().with_overrides(
        host=args.osc_host,
        send_port=args.osc_send_port,
        recv_port=args.osc_recv_port,
        timeout_ms=args.timeout_ms,
        test_mode=args.test_mode,
        tools_path=args.tools,
    )


async def serve_sse(settings: BridgeSettings, *, host: str, port: int, debug: bool) -> None:
    # The endpoint is opened before uvicorn binds, so a port clash aborts
    # startup without ever accepting a connection.
    async with BridgeRuntime(settings) as runtime:
        app = create_app(settings, runtime=runtime)
        config = uvicorn.Config(
            app,
            host=host,
            port=int(port),
            log_level="debug" if debug else "info",
        )
        LOGGER.info("[MCP] SSE endpoint on http://%s:%s/sse", host, port)
        await uvicorn.Server(config).serve()


def run(args: argparse.Namespace) -> int:
    configure_root(logging.DEBUG if args.debug else logging.INFO)
    settings = settings_from_args(args)
    LOGGER.info(
        "OSC %s%s", settings.transport.describe(), " (test mode)" if settings.test_mode else ""
    )
    try:
        if args.transport == "sse":
            asyncio.run(serve_sse(settings, host=args.host, port=args.port, debug=args.debug))
        else:
            asyncio.run(serve_stdio(settings))
    except TransportOpenError as exc:
        LOGGER.error("Cannot start: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    return run(parser.parse_args(argv))


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(main())
