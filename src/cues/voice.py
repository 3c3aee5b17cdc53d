"""Piper TTS rendering of the spoken word cues."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np
from huggingface_hub import hf_hub_download
from huggingface_hub.utils import HfHubHTTPError, RepositoryNotFoundError
from piper.voice import PiperVoice

from .config import VoiceConfig
from .errors import CueError
from .tones import resample

WORD_CUES: Mapping[str, str] = {
    "work": "Work",
    "rest": "Rest",
    "done": "All done",
}


class PiperVoiceClips:
    """Synthesizes each word cue once into a float32 clip at the engine's rate.

    The model is loaded on the first `render()` call, which is expected to run
    off the main loop because download and synthesis can take seconds.
    """

    def __init__(
        self,
        config: VoiceConfig,
        *,
        words: Mapping[str, str] = WORD_CUES,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._words = dict(words)
        self._logger = logger or logging.getLogger(__name__)
        self._voice: Optional[PiperVoice] = None

    def render(self, sample_rate_hz: int) -> dict[str, np.ndarray]:
        voice = self._load_voice()
        source_rate_hz = int(voice.config.sample_rate)
        clips: dict[str, np.ndarray] = {}
        for name, text in self._words.items():
            wav = self._synthesize(voice, text)
            clips[name] = resample(wav, source_rate_hz, sample_rate_hz)
            self._logger.debug("Rendered word cue %s (%d samples)", name, clips[name].size)
        return clips

    def _load_voice(self) -> PiperVoice:
        if self._voice is not None:
            return self._voice
        model_file = self._ensure_model_files()
        try:
            self._voice = PiperVoice.load(str(model_file))
        except Exception as error:
            raise CueError(f"Failed to load Piper voice: {error}") from error
        return self._voice

    def _ensure_model_files(self) -> Path:
        model_dir = Path(self._config.model_path).expanduser()
        model_file = model_dir / self._config.hf_filename
        config_file = model_dir / f"{self._config.hf_filename}.json"

        try:
            model_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise CueError(f"Failed to create voice model directory {model_dir}: {error}") from error

        if model_file.is_file() and config_file.is_file():
            return model_file

        repo_id = self._config.hf_repo_id.strip()
        if not repo_id:
            raise CueError(
                f"Piper voice files missing in {model_dir} and no tts.hf_repo_id configured"
            )

        self._logger.info("Downloading Piper voice %s from %s", self._config.hf_filename, repo_id)
        for filename, target_path in (
            (self._config.hf_filename, model_file),
            (f"{self._config.hf_filename}.json", config_file),
        ):
            self._download_and_install_file(
                repo_id=repo_id,
                filename=filename,
                target_path=target_path,
            )
        return model_file

    def _download_and_install_file(
        self,
        *,
        repo_id: str,
        filename: str,
        target_path: Path,
    ) -> None:
        try:
            downloaded_path = Path(
                hf_hub_download(
                    repo_id=repo_id,
                    filename=filename,
                    revision=self._config.hf_revision,
                )
            )
        except RepositoryNotFoundError as error:
            raise CueError(f"Piper Hugging Face repository not found: {repo_id}") from error
        except HfHubHTTPError as error:
            raise CueError(
                f"HTTP error downloading Piper asset {filename} from {repo_id}: {error}"
            ) from error
        except Exception as error:
            raise CueError(
                f"Failed to download Piper asset {filename} from {repo_id}: {error}"
            ) from error

        temp_path = target_path.with_suffix(f"{target_path.suffix}.tmp")
        try:
            shutil.copy2(downloaded_path, temp_path)
            temp_path.replace(target_path)
        except OSError as error:
            raise CueError(f"Failed to install Piper asset {target_path.name}: {error}") from error

    @staticmethod
    def _synthesize(voice: PiperVoice, text: str) -> np.ndarray:
        try:
            chunks = [_chunk_bytes(chunk) for chunk in voice.synthesize(text)]
        except Exception as error:
            raise CueError(f"Piper synthesis failed for {text!r}: {error}") from error

        pcm_int16 = np.frombuffer(b"".join(chunks), dtype=np.int16)
        if pcm_int16.size == 0:
            raise CueError(f"Piper produced no audio for {text!r}")
        return pcm_int16.astype(np.float32) / 32768.0


def _chunk_bytes(chunk: Any) -> bytes:
    if hasattr(chunk, "audio_int16_bytes"):
        raw_audio = chunk.audio_int16_bytes
    elif hasattr(chunk, "audio_data"):
        raw_audio = chunk.audio_data
    else:
        raw_audio = chunk

    if isinstance(raw_audio, np.ndarray):
        return raw_audio.astype(np.int16, copy=False).tobytes()
    if isinstance(raw_audio, (bytes, bytearray, memoryview)):
        return bytes(raw_audio)
    return np.asarray(raw_audio, dtype=np.int16).tobytes()
