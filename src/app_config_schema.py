"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class SessionSettings:
    """Initial workout values from `[session]`; `preset` overrides them when set."""
    work_seconds: int = 20
    rest_seconds: int = 10
    rounds: int = 8
    prepare_seconds: int = 10
    preset: str = ""


@dataclass(frozen=True)
class ClockSettings:
    """Phase clock re-evaluation cadence from `[clock]`."""
    tick_interval_seconds: float = 0.2


@dataclass(frozen=True)
class AudioSettings:
    """Cue audio output settings from `[audio]`."""
    enabled: bool = True
    output_device: Optional[int] = None
    sample_rate_hz: int = 44100
    blocksize: int = 512
    keepalive_release_seconds: float = 3.0


@dataclass(frozen=True)
class TTSSettings:
    """Piper voice settings for the spoken word cues from `[tts]`."""
    enabled: bool = False
    model_path: str = ""
    hf_filename: str = ""
    hf_repo_id: str = ""
    hf_revision: str = "main"


@dataclass(frozen=True)
class PresetSettings:
    """Preset storage location from `[presets]`."""
    file: str = ""


@dataclass(frozen=True)
class UIServerSettings:
    """Websocket event feed settings from `[ui_server]`."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    session: SessionSettings
    clock: ClockSettings
    audio: AudioSettings
    tts: TTSSettings
    presets: PresetSettings
    ui_server: UIServerSettings
    source_file: str
