"""Clip procedures."""
from __future__ import annotations

from typing import Any, Dict, List

from . import OscSession, count, flag, procedure, value_of

# Live needs a moment to finish a duplicate before the source is deleted.
MOVE_SETTLE_SECONDS = 0.1


@procedure("set_clip_loop", params=("track_index", "clip_index"))
async def set_clip_loop(session: OscSession, args: Dict[str, Any]) -> str:
    track, clip = args["track_index"], args["clip_index"]
    if "loop_enabled" in args:
        session.fire("/live/clip/set/looping", track, clip, bool(args["loop_enabled"]))
    if "loop_start" in args:
        session.fire("/live/clip/set/loop_start", track, clip, args["loop_start"])
    if "loop_end" in args:
        session.fire("/live/clip/set/loop_end", track, clip, args["loop_end"])
    return f"Clip loop settings updated for track {track}, clip {clip}"


@procedure("get_clip_length", params=("track_index", "clip_index"))
async def get_clip_length(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    track, clip = args["track_index"], args["clip_index"]
    length = value_of(await session.query("/live/clip/get/length", track, clip))
    numerator = value_of(await session.query("/live/song/get/time_signature_numerator"))
    bars = None
    if isinstance(length, (int, float)) and isinstance(numerator, (int, float)) and numerator:
        bars = length / numerator
    return {"length_beats": length, "length_bars": bars}


@procedure(
    "move_clip",
    params=("source_track_index", "source_clip_index", "dest_track_index", "dest_clip_index"),
)
async def move_clip(session: OscSession, args: Dict[str, Any]) -> str:
    """Duplicate the clip to its destination, then delete the source.

    AbletonOSC has no move command. The two steps are not atomic: if the
    delete is lost the clip exists in both slots.
    """

    src_track, src_clip = args["source_track_index"], args["source_clip_index"]
    dst_track, dst_clip = args["dest_track_index"], args["dest_clip_index"]
    session.fire("/live/clip/duplicate_clip_to", src_track, src_clip, dst_track, dst_clip)
    await session.settle(MOVE_SETTLE_SECONDS)
    session.fire("/live/clip_slot/delete_clip", src_track, src_clip)
    return (
        f"Moved clip from track {src_track} slot {src_clip} "
        f"to track {dst_track} slot {dst_clip}"
    )


@procedure("get_all_clips_in_scene", params=("scene_index",))
async def get_all_clips_in_scene(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    scene = args["scene_index"]
    total = count(await session.query("/live/song/get/num_tracks"))
    clips: List[Dict[str, object]] = []
    for track in range(total):
        if not flag(await session.query("/live/clip_slot/get/has_clip", track, scene)):
            continue
        name = value_of(await session.query("/live/clip/get/name", track, scene))
        length = value_of(await session.query("/live/clip/get/length", track, scene))
        clips.append({"track_index": track, "clip_index": scene, "name": name, "length": length})
    return {"clips": clips}
