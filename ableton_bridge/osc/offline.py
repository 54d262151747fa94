"""Transport stand-in for test mode: no socket, canned replies."""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple

from .codec import OutboundMessage
from .transport import BaseEndpoint

logger = logging.getLogger("ableton_bridge.osc.offline")

CANNED_REPLIES: Mapping[str, Tuple[object, ...]] = {
    "/live/song/get/tempo": (120.0,),
    "/live/song/get/time_signature_numerator": (4,),
    "/live/song/get/time_signature_denominator": (4,),
}
DEFAULT_REPLY: Tuple[object, ...] = (0,)


def canned_reply(address: str) -> Tuple[object, ...]:
    return CANNED_REPLIES.get(address, DEFAULT_REPLY)


class OfflineEndpoint(BaseEndpoint):
    """Accepts sends and answers requests without touching the network.

    Arguments are still normalized through :meth:`BaseEndpoint.send` so test
    mode rejects the same malformed calls the real transport would.
    """

    offline = True

    async def _open(self) -> None:
        logger.info("OSC transport disabled (test mode)")

    async def _close(self) -> None:
        return None

    def _transmit(self, message: OutboundMessage) -> None:
        return None

    async def request(
        self, address: str, *args: object, timeout: Optional[float] = None
    ) -> Tuple[object, ...]:
        self.send(address, *args)
        return canned_reply(address)


__all__ = ["CANNED_REPLIES", "OfflineEndpoint", "canned_reply"]
