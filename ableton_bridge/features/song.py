"""Song-level procedures: transport, quantization and arrangement loop."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from . import OscSession, flag, procedure, value_of

QUANTIZATION_CODES: Mapping[str, int] = {
    "none": 0,
    "8_bars": 1,
    "4_bars": 2,
    "2_bars": 3,
    "1_bar": 4,
    "1/2": 5,
    "1/4": 6,
    "1/8": 7,
    "1/16": 8,
}


@procedure("get_song_info")
async def get_song_info(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    tempo = value_of(await session.query("/live/song/get/tempo"))
    numerator = value_of(await session.query("/live/song/get/time_signature_numerator"))
    denominator = value_of(await session.query("/live/song/get/time_signature_denominator"))
    is_playing = flag(await session.query("/live/song/get/is_playing"))
    current_time = value_of(await session.query("/live/song/get/current_song_time"))
    loop_start = value_of(await session.query("/live/song/get/loop_start"))
    loop_end = value_of(await session.query("/live/song/get/loop_end"))
    return {
        "tempo": tempo,
        "time_signature_numerator": numerator,
        "time_signature_denominator": denominator,
        "is_playing": is_playing,
        "current_song_time": current_time,
        "loop_start": loop_start,
        "loop_end": loop_end,
    }


@procedure("transport_control", params=("action",))
async def transport_control(session: OscSession, args: Dict[str, Any]) -> str:
    action = args["action"]
    if action == "play":
        session.fire("/live/song/start_playing")
        return "Playback started"
    if action == "stop":
        session.fire("/live/song/stop_playing")
        return "Playback stopped"
    if action == "continue":
        session.fire("/live/song/continue_playing")
        return "Playback continued"
    if action == "toggle":
        if flag(await session.query("/live/song/get/is_playing")):
            session.fire("/live/song/stop_playing")
            return "Playback stopped"
        session.fire("/live/song/start_playing")
        return "Playback started"
    raise ValueError(f"Unknown action: {action}")


@procedure("set_global_quantization", params=("quantization",))
async def set_global_quantization(session: OscSession, args: Dict[str, Any]) -> str:
    quantization = args["quantization"]
    code = QUANTIZATION_CODES.get(quantization) if isinstance(quantization, str) else None
    if code is None:
        raise ValueError(f"Unknown quantization: {quantization}")
    session.fire("/live/song/set/clip_trigger_quantization", code)
    return f"Global quantization set to {quantization}"


@procedure("get_arrangement_view")
async def get_arrangement_view(session: OscSession, args: Dict[str, Any]) -> Dict[str, object]:
    loop_enabled = flag(await session.query("/live/song/get/loop"))
    loop_start = value_of(await session.query("/live/song/get/loop_start"))
    loop_length = value_of(await session.query("/live/song/get/loop_length"))
    return {
        "loop_enabled": loop_enabled,
        "loop_start": loop_start,
        "loop_length": loop_length,
    }


@procedure("set_arrangement_loop")
async def set_arrangement_loop(session: OscSession, args: Dict[str, Any]) -> str:
    # Only the fields the caller supplied are touched.
    if "enabled" in args:
        session.fire("/live/song/set/loop", bool(args["enabled"]))
    if "start" in args:
        session.fire("/live/song/set/loop_start", args["start"])
    if "length" in args:
        session.fire("/live/song/set/loop_length", args["length"])
    return "Arrangement loop settings updated"
