"""Load local environment defaults from a ``.env`` file."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

__all__ = ["load_env"]


_env_loaded = False


def load_env(*, dotenv_path: Optional[str | Path] = None) -> None:
    """Load a ``.env`` file once, if present.

    ``ABLETON_BRIDGE_ENV_FILE`` points at an alternate file. Values already in
    the process environment always win over the file.
    """

    global _env_loaded
    if _env_loaded:
        return

    if dotenv_path is None:
        dotenv_path = os.getenv("ABLETON_BRIDGE_ENV_FILE") or None
    load_dotenv(dotenv_path=dotenv_path, override=False)
    _env_loaded = True
