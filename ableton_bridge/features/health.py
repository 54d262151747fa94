"""Liveness probe that never touches the OSC peer."""
from __future__ import annotations

from typing import Any, Dict

from . import OscSession, procedure

HEALTH_CHECK = "health_check"
HEALTH_DESCRIPTION = "Simple health check that returns ok if the server is responsive"


@procedure(HEALTH_CHECK)
async def health_check(session: OscSession, args: Dict[str, Any]) -> str:
    return "ok"
