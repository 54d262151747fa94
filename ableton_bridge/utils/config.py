"""Runtime configuration for the OSC bridge."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from importlib import resources
from pathlib import Path
from typing import Final, Mapping, Optional, Tuple

logger = logging.getLogger("ableton_bridge.config")

DEFAULT_OSC_HOST: Final[str] = "127.0.0.1"
DEFAULT_SEND_PORT: Final[int] = 11000
DEFAULT_RECV_HOST: Final[str] = "0.0.0.0"
DEFAULT_RECV_PORT: Final[int] = 11001
DEFAULT_TIMEOUT_MS: Final[int] = 5000
TIMEOUT_MS_RANGE: Final[Tuple[int, int]] = (100, 60000)
DEFAULT_SERVER_NAME: Final[str] = "ableton-osc-mcp"


def _parse_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    return value in {"1", "true", "yes", "on"}


def _parse_int(value: str | None, *, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_port(value: str | None, *, default: int, name: str) -> int:
    port = _parse_int(value, default=default)
    if not 0 <= port <= 65535:
        logger.warning("%s=%s is not a valid port; using %s", name, port, default)
        return default
    return port


def clamp_timeout_ms(value: int) -> int:
    """Clamp a timeout into :data:`TIMEOUT_MS_RANGE`, warning when it moves."""

    low, high = TIMEOUT_MS_RANGE
    clamped = min(max(int(value), low), high)
    if clamped != value:
        logger.warning(
            "OSC timeout %sms outside safe range %s..%sms; using %sms",
            value,
            low,
            high,
            clamped,
        )
    return clamped


def default_tools_path() -> Path:
    """Return the catalog shipped with the package."""

    return Path(str(resources.files("ableton_bridge.data").joinpath("ableton_mcp_tools.json")))


@dataclass(frozen=True, slots=True)
class TransportSettings:
    """Addresses of the peer and of the fixed local reply binding."""

    host: str = DEFAULT_OSC_HOST
    send_port: int = DEFAULT_SEND_PORT
    recv_host: str = DEFAULT_RECV_HOST
    recv_port: int = DEFAULT_RECV_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def destination(self) -> Tuple[str, int]:
        return (self.host, self.send_port)

    @property
    def binding(self) -> Tuple[str, int]:
        return (self.recv_host, self.recv_port)

    def describe(self) -> str:
        return f"host={self.host}, send→{self.send_port}, recv←{self.recv_port}"


@dataclass(frozen=True, slots=True)
class BridgeSettings:
    transport: TransportSettings
    test_mode: bool = False
    tools_path: Optional[Path] = None

    def with_overrides(
        self,
        *,
        host: Optional[str] = None,
        send_port: Optional[int] = None,
        recv_port: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        test_mode: Optional[bool] = None,
        tools_path: Optional[Path] = None,
    ) -> "BridgeSettings":
        """Return a copy with CLI-style overrides applied on top."""

        transport = self.transport
        if host is not None:
            transport = replace(transport, host=host)
        if send_port is not None:
            transport = replace(transport, send_port=int(send_port))
        if recv_port is not None:
            transport = replace(transport, recv_port=int(recv_port))
        if timeout_ms is not None:
            transport = replace(transport, timeout_ms=clamp_timeout_ms(timeout_ms))
        return BridgeSettings(
            transport=transport,
            test_mode=self.test_mode if test_mode is None else test_mode,
            tools_path=self.tools_path if tools_path is None else tools_path,
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> BridgeSettings:
    """Build settings from ``environ`` (``os.environ`` by default)."""

    env = os.environ if environ is None else environ
    transport = TransportSettings(
        host=(env.get("ABLETON_OSC_HOST") or DEFAULT_OSC_HOST).strip(),
        send_port=_parse_port(
            env.get("ABLETON_OSC_SEND_PORT"), default=DEFAULT_SEND_PORT, name="ABLETON_OSC_SEND_PORT"
        ),
        recv_host=(env.get("ABLETON_OSC_RECV_HOST") or DEFAULT_RECV_HOST).strip(),
        recv_port=_parse_port(
            env.get("ABLETON_OSC_RECV_PORT"), default=DEFAULT_RECV_PORT, name="ABLETON_OSC_RECV_PORT"
        ),
        timeout_ms=clamp_timeout_ms(
            _parse_int(env.get("ABLETON_OSC_TIMEOUT_MS"), default=DEFAULT_TIMEOUT_MS)
        ),
    )
    tools_env = (env.get("ABLETON_MCP_TOOLS") or "").strip()
    tools_path = Path(tools_env).expanduser() if tools_env else default_tools_path()
    return BridgeSettings(
        transport=transport,
        test_mode=_parse_bool(env.get("MCP_TEST_MODE")),
        tools_path=tools_path,
    )


__all__ = [
    "BridgeSettings",
    "DEFAULT_SERVER_NAME",
    "DEFAULT_TIMEOUT_MS",
    "TIMEOUT_MS_RANGE",
    "TransportSettings",
    "clamp_timeout_ms",
    "default_tools_path",
    "load_settings",
]
