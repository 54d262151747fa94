"""Track procedures."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from ..params import clamp
from . import OscSession, count, flag, procedure, value_of

# property -> (address, clamp range or None)
TRACK_PROPERTIES: Mapping[str, Tuple[str, Tuple[float, float] | None]] = {
    "volume": ("/live/track/set/volume", (0.0, 1.0)),
    "pan": ("/live/track/set/pan", (-1.0, 1.0)),
    "mute": ("/live/track/set/mute", None),
    "solo": ("/live/track/set/solo", None),
    "arm": ("/live/track/set/arm", None),
    "name": ("/live/track/set/name", None),
    "color": ("/live/track/set/color", None),
}


@procedure(
    "list_tracks",
    defaults={"include_return_tracks": False, "include_master": False},
)
async def list_tracks(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    # The return/master flags are accepted for compatibility; AbletonOSC
    # only enumerates regular tracks through num_tracks.
    total = count(await session.query("/live/song/get/num_tracks"))
    tracks: List[Dict[str, object]] = []
    for index in range(total):
        name = value_of(await session.query("/live/track/get/name", index))
        color = value_of(await session.query("/live/track/get/color", index))
        mute = flag(await session.query("/live/track/get/mute", index))
        solo = flag(await session.query("/live/track/get/solo", index))
        arm = flag(await session.query("/live/track/get/arm", index))
        tracks.append(
            {"id": index, "name": name, "color": color, "mute": mute, "solo": solo, "arm": arm}
        )
    return {"tracks": tracks}


@procedure("get_track_clips", params=("track_index",))
async def get_track_clips(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    track = args["track_index"]
    slots = count(await session.query("/live/track/get/clip_slots", track))
    clips: List[Dict[str, object]] = []
    for slot in range(slots):
        if not flag(await session.query("/live/clip_slot/get/has_clip", track, slot)):
            continue
        name = value_of(await session.query("/live/clip/get/name", track, slot))
        length = value_of(await session.query("/live/clip/get/length", track, slot))
        looping = flag(await session.query("/live/clip/get/looping", track, slot))
        clips.append({"slot_index": slot, "name": name, "length": length, "looping": looping})
    return {"clips": clips}


@procedure("set_track_property", params=("track_index", "property", "value"))
async def set_track_property(session: OscSession, args: Dict[str, Any]) -> str:
    track = args["track_index"]
    prop = args["property"]
    value = args["value"]
    try:
        address, bounds = TRACK_PROPERTIES[prop]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown property: {prop}") from None
    if bounds is not None:
        value = clamp(value, *bounds, name=prop)
    session.fire(address, track, value)
    return f"Track {track} {prop} set to {value}"
