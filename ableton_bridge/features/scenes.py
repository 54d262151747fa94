"""Scene procedures."""
from __future__ import annotations

from typing import Any, Dict, List

from . import OscSession, count, procedure, value_of


@procedure("list_scenes")
async def list_scenes(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    total = count(await session.query("/live/song/get/num_scenes"))
    scenes: List[Dict[str, object]] = []
    for index in range(total):
        name = value_of(await session.query("/live/scene/get/name", index))
        scenes.append({"index": index, "name": name})
    return {"scenes": scenes}
