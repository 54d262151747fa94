"""MCP bridge that drives Ableton Live through the AbletonOSC remote script."""

from .utils.env import load_env

__version__ = "1.0.0"

# `.env` defaults must be visible before any settings are read.
load_env()
