"""State, phase, action, and reason constants used by the interval clock."""

from __future__ import annotations

DEFAULT_TICK_INTERVAL_SECONDS = 0.2

CONTROL_IDLE = "idle"
CONTROL_RUNNING = "running"
CONTROL_PAUSED = "paused"
CONTROL_COMPLETE = "complete"

ACTIVE_CONTROL_STATES: frozenset[str] = frozenset({CONTROL_RUNNING, CONTROL_PAUSED})

PHASE_PREPARE = "prepare"
PHASE_WORK = "work"
PHASE_REST = "rest"

ACTION_START = "start"
ACTION_PAUSE = "pause"
ACTION_RESUME = "resume"
ACTION_STOP = "stop"

REASON_STARTED = "started"
REASON_PAUSED = "paused"
REASON_RESUMED = "resumed"
REASON_STOPPED = "stopped"
REASON_NOT_IDLE = "not_idle"
REASON_NOT_RUNNING = "not_running"
REASON_NOT_PAUSED = "not_paused"
REASON_ALREADY_IDLE = "already_idle"

COUNTDOWN_SECONDS: frozenset[int] = frozenset({1, 2, 3})
