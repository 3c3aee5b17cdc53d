from .clock import ClockActionResult, ClockSnapshot, ControlState, PhaseClock
from .listeners import ClockListener, Phase
from .presets import DEFAULT_PRESETS, Preset, PresetError, PresetStore
from .scheduler import LoopScheduler, TimerHandle
from .session import (
    SESSION_LIMITS,
    SessionConfig,
    SessionConfigError,
    format_duration,
    validate_session_config,
)

__all__ = [
    "ClockActionResult",
    "ClockListener",
    "ClockSnapshot",
    "ControlState",
    "DEFAULT_PRESETS",
    "LoopScheduler",
    "Phase",
    "PhaseClock",
    "Preset",
    "PresetError",
    "PresetStore",
    "SESSION_LIMITS",
    "SessionConfig",
    "SessionConfigError",
    "TimerHandle",
    "format_duration",
    "validate_session_config",
]
