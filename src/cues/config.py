"""Configuration models for cue audio output and Piper word-cue voices."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class CueConfigurationError(Exception):
    """Raised when cue audio or voice configuration is invalid."""


@dataclass(frozen=True)
class AudioConfig:
    """Validated audio output settings for the cue engine."""
    enabled: bool = True
    output_device_index: Optional[int] = None
    sample_rate_hz: int = 44100
    blocksize: int = 512
    keepalive_release_seconds: float = 3.0

    def __post_init__(self) -> None:
        if self.sample_rate_hz < 8000:
            raise CueConfigurationError(
                f"audio.sample_rate_hz must be at least 8000, got: {self.sample_rate_hz}"
            )
        if self.blocksize <= 0:
            raise CueConfigurationError(
                f"audio.blocksize must be greater than zero, got: {self.blocksize}"
            )
        if self.keepalive_release_seconds < 0:
            raise CueConfigurationError("audio.keepalive_release_seconds cannot be negative")

    @classmethod
    def from_settings(cls, settings) -> "AudioConfig":
        return cls(
            enabled=bool(settings.enabled),
            output_device_index=settings.output_device,
            sample_rate_hz=settings.sample_rate_hz,
            blocksize=settings.blocksize,
            keepalive_release_seconds=settings.keepalive_release_seconds,
        )


@dataclass(frozen=True)
class VoiceConfig:
    """Resolved Piper model location used to render the word cues."""
    model_path: str = ""
    hf_filename: str = ""
    hf_repo_id: str = ""
    hf_revision: str = "main"

    @classmethod
    def from_settings(cls, settings) -> "VoiceConfig":
        model_path = (settings.model_path or "").strip()
        hf_filename = (getattr(settings, "hf_filename", "") or "").strip()
        hf_repo_id = (getattr(settings, "hf_repo_id", "") or "").strip()
        hf_revision = (getattr(settings, "hf_revision", "main") or "main").strip()

        if not model_path:
            raise CueConfigurationError("tts.model_path cannot be empty")
        if not hf_filename:
            # Allow model_path to point straight at the .onnx file.
            model_path_file = Path(model_path)
            if model_path_file.suffix.lower() != ".onnx":
                raise CueConfigurationError("tts.hf_filename cannot be empty")
            hf_filename = model_path_file.name
            model_path = str(model_path_file.parent)

        return cls(
            model_path=model_path,
            hf_filename=hf_filename,
            hf_repo_id=hf_repo_id,
            hf_revision=hf_revision,
        )
