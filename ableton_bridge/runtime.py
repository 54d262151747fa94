"""Process-wide wiring: one catalog, one registry, one endpoint, one dispatcher."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from .catalog import Catalog, Composite, load_catalog
from .dispatcher import CommandDispatcher
from .osc.offline import OfflineEndpoint
from .osc.registry import CorrelationRegistry
from .osc.transport import BaseEndpoint, OscEndpoint
from .utils.config import BridgeSettings

logger = logging.getLogger("ableton_bridge.runtime")


def build_endpoint(settings: BridgeSettings) -> BaseEndpoint:
    transport = settings.transport
    registry = CorrelationRegistry(timeout=transport.timeout, diagnostics=transport.describe())
    if settings.test_mode:
        return OfflineEndpoint(transport, registry)
    return OscEndpoint(transport, registry)


class BridgeRuntime:
    """Owns the OSC endpoint for the lifetime of the process.

    ``async with runtime:`` opens the endpoint and guarantees it is closed
    (rejecting any outstanding waits) on every exit path.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        catalog: Optional[Catalog] = None,
        endpoint: Optional[BaseEndpoint] = None,
        procedures: Optional[Mapping[str, Composite]] = None,
    ) -> None:
        self.settings = settings
        self.catalog = catalog if catalog is not None else load_catalog(settings.tools_path)
        self.endpoint = endpoint if endpoint is not None else build_endpoint(settings)
        self.dispatcher = CommandDispatcher(
            self.catalog, endpoint=self.endpoint, procedures=procedures
        )
        self.started_at: Optional[str] = None

    @property
    def registry(self) -> CorrelationRegistry:
        return self.endpoint.registry

    async def start(self) -> None:
        await self.endpoint.open()
        self.started_at = datetime.now(timezone.utc).isoformat()
        logger.info(
            "Bridge ready: %d tools from %s (%s%s)",
            len(self.catalog),
            self.catalog.source,
            self.endpoint.describe(),
            ", test mode" if self.endpoint.offline else "",
        )

    async def stop(self) -> None:
        await self.endpoint.close()

    async def __aenter__(self) -> "BridgeRuntime":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def state(self) -> Dict[str, object]:
        return {
            "server_name": self.catalog.server_name,
            "started_at": self.started_at,
            "tools": len(self.catalog),
            "operations": sorted(self.dispatcher.operations),
            "catalog": str(self.catalog.source) if self.catalog.source else None,
            "transport": self.endpoint.snapshot(),
        }


__all__ = ["BridgeRuntime", "build_endpoint"]
