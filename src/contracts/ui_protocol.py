"""Websocket event, control and command constants shared by UI and runtime."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_SESSION = "session"
EVENT_PHASE = "phase"
EVENT_TICK = "tick"
EVENT_CONTROL = "control"
EVENT_PRESETS = "presets"
EVENT_ERROR = "error"

# Control notifications carried by EVENT_CONTROL
CONTROL_PAUSED = "paused"
CONTROL_RESUMED = "resumed"
CONTROL_STOPPED = "stopped"
CONTROL_COMPLETED = "completed"

# Commands accepted from UI clients and stdin
COMMAND_START = "start"
COMMAND_PAUSE = "pause"
COMMAND_RESUME = "resume"
COMMAND_TOGGLE = "toggle"
COMMAND_STOP = "stop"
COMMAND_ADJUST = "adjust"
COMMAND_PRESET = "preset"
COMMAND_PRESETS = "presets"
COMMAND_STATUS = "status"
COMMAND_QUIT = "quit"

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_SESSION,
        EVENT_PHASE,
        EVENT_TICK,
        EVENT_CONTROL,
        EVENT_PRESETS,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_SESSION,
    EVENT_PRESETS,
    EVENT_PHASE,
    EVENT_CONTROL,
    EVENT_TICK,
    EVENT_ERROR,
)
