"""Sounddevice-backed output stream that renders the tone mixer."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import sounddevice as sd

from .errors import CueError
from .tones import ToneMixer


class SoundDeviceAudioEngine:
    """Keeps one mono output stream open and feeds it from a `ToneMixer`."""

    def __init__(
        self,
        *,
        sample_rate_hz: int = 44100,
        output_device_index: Optional[int] = None,
        blocksize: int = 512,
        logger: Optional[logging.Logger] = None,
    ):
        self._mixer = ToneMixer(sample_rate_hz)
        self._output_device_index = output_device_index
        self._blocksize = blocksize
        self._logger = logger or logging.getLogger(__name__)
        self._stream: Optional[sd.OutputStream] = None

    @property
    def sample_rate_hz(self) -> int:
        return self._mixer.sample_rate_hz

    @property
    def current_time(self) -> float:
        return self._mixer.current_time

    @property
    def is_running(self) -> bool:
        return self._stream is not None and bool(self._stream.active)

    def start(self) -> None:
        if self.is_running:
            return
        self._close_stream()
        try:
            stream = sd.OutputStream(
                channels=1,
                samplerate=self._mixer.sample_rate_hz,
                blocksize=self._blocksize,
                dtype="float32",
                device=self._output_device_index,
                callback=self._callback,
            )
            stream.start()
        except Exception as error:
            raise CueError(f"Failed to open audio output: {error}") from error
        self._stream = stream
        self._logger.info(
            "Audio output started: rate=%dHz blocksize=%d device=%s",
            self._mixer.sample_rate_hz,
            self._blocksize,
            self._output_device_index,
        )

    def ensure_running(self) -> None:
        """Restart the stream if the host stopped it (device change, interruption)."""
        if self.is_running:
            return
        self._logger.warning("Audio output not active, restarting")
        # Cues queued while the stream was down are stale.
        self._mixer.clear()
        self.start()

    def schedule(self, samples: np.ndarray, at_time: float) -> None:
        self._mixer.schedule(samples, at_time)

    def set_keepalive(self, enabled: bool) -> None:
        self._mixer.set_keepalive(enabled)

    def close(self) -> None:
        self._mixer.set_keepalive(False)
        self._mixer.clear()
        self._close_stream()

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as error:
            self._logger.debug("Ignoring audio stream close failure: %s", error)

    def _callback(self, outdata, frames, time_info, status) -> None:
        del time_info
        if status:
            self._logger.warning("Sounddevice status: %s", status)
        outdata[:, 0] = self._mixer.render(frames)
