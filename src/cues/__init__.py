"""Public exports for audio cue components.

The sounddevice engine and the Piper voice renderer live in `cues.engine` and
`cues.voice`; they are imported where they are constructed so that a missing
audio backend only disables cues.
"""

from .config import AudioConfig, CueConfigurationError, VoiceConfig
from .errors import CueError
from .player import AudioEngine, ClipSource, CuePlayer
from .tones import COMPLETE, COUNTDOWN, REST_START, WORK_START, Tone, ToneMixer, render_tone

__all__ = [
    "AudioConfig",
    "AudioEngine",
    "COMPLETE",
    "COUNTDOWN",
    "ClipSource",
    "CueConfigurationError",
    "CueError",
    "CuePlayer",
    "REST_START",
    "Tone",
    "ToneMixer",
    "VoiceConfig",
    "WORK_START",
    "render_tone",
]
