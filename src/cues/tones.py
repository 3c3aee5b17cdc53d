"""Tone patterns, numpy tone synthesis, and the sample-clock mixer."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import numpy as np

RAMP_FLOOR_GAIN = 0.001
TONE_TAIL_SECONDS = 0.05
KEEPALIVE_AMPLITUDE = 1e-4
KEEPALIVE_FREQUENCY_HZ = 20.0


@dataclass(frozen=True)
class Tone:
    frequency_hz: float
    duration_seconds: float
    offset_seconds: float = 0.0
    volume: float = 0.5


COUNTDOWN: tuple[Tone, ...] = (Tone(660.0, 0.15, 0.0, 0.5),)
WORK_START: tuple[Tone, ...] = (
    Tone(880.0, 0.15, 0.0, 0.6),
    Tone(880.0, 0.15, 0.2, 0.6),
    Tone(1100.0, 0.3, 0.4, 0.7),
)
REST_START: tuple[Tone, ...] = (Tone(440.0, 0.5, 0.0, 0.5),)
COMPLETE: tuple[Tone, ...] = (
    Tone(880.0, 0.2, 0.0, 0.5),
    Tone(1100.0, 0.2, 0.25, 0.5),
    Tone(1320.0, 0.2, 0.5, 0.5),
    Tone(1760.0, 0.5, 0.75, 0.7),
)


def render_tone(tone: Tone, sample_rate_hz: int) -> np.ndarray:
    """Sine at `tone.volume`, decaying exponentially to the floor gain, plus a short tail."""
    total_frames = int(round((tone.duration_seconds + TONE_TAIL_SECONDS) * sample_rate_hz))
    t = np.arange(total_frames, dtype=np.float64) / float(sample_rate_hz)
    ramp = np.minimum(t / tone.duration_seconds, 1.0)
    gain = tone.volume * np.power(RAMP_FLOOR_GAIN / tone.volume, ramp)
    wave = np.sin(2.0 * np.pi * tone.frequency_hz * t) * gain
    return wave.astype(np.float32)


def render_pattern(
    pattern: tuple[Tone, ...],
    sample_rate_hz: int,
) -> list[tuple[float, np.ndarray]]:
    return [(tone.offset_seconds, render_tone(tone, sample_rate_hz)) for tone in pattern]


def resample(samples: np.ndarray, source_rate_hz: int, target_rate_hz: int) -> np.ndarray:
    if source_rate_hz == target_rate_hz or samples.size == 0:
        return samples.astype(np.float32, copy=False)
    duration = samples.size / float(source_rate_hz)
    target_frames = max(1, int(round(duration * target_rate_hz)))
    source_positions = np.arange(samples.size, dtype=np.float64) / source_rate_hz
    target_positions = np.arange(target_frames, dtype=np.float64) / target_rate_hz
    return np.interp(target_positions, source_positions, samples).astype(np.float32)


@dataclass
class _ScheduledBuffer:
    start_frame: int
    samples: np.ndarray


class ToneMixer:
    """Mixes buffers onto a sample clock advanced only by `render()`.

    `current_time` is frames rendered divided by the sample rate, so buffers
    scheduled relative to it keep their spacing regardless of when the
    scheduling thread gets to run.
    """

    def __init__(
        self,
        sample_rate_hz: int,
        *,
        keepalive_amplitude: float = KEEPALIVE_AMPLITUDE,
        keepalive_frequency_hz: float = KEEPALIVE_FREQUENCY_HZ,
    ):
        if sample_rate_hz <= 0:
            raise ValueError("sample_rate_hz must be greater than zero")
        self._sample_rate_hz = int(sample_rate_hz)
        self._keepalive_amplitude = keepalive_amplitude
        self._keepalive_frequency_hz = keepalive_frequency_hz
        self._lock = threading.Lock()
        self._frames_rendered = 0
        self._buffers: list[_ScheduledBuffer] = []
        self._keepalive = False

    @property
    def sample_rate_hz(self) -> int:
        return self._sample_rate_hz

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / self._sample_rate_hz

    @property
    def keepalive_enabled(self) -> bool:
        return self._keepalive

    @property
    def pending_buffers(self) -> int:
        with self._lock:
            return len(self._buffers)

    def set_keepalive(self, enabled: bool) -> None:
        self._keepalive = bool(enabled)

    def schedule(self, samples: np.ndarray, at_time: float) -> None:
        if samples.ndim != 1 or samples.size == 0:
            raise ValueError("Expected a non-empty mono buffer")
        with self._lock:
            start_frame = max(self._frames_rendered, int(round(at_time * self._sample_rate_hz)))
            self._buffers.append(
                _ScheduledBuffer(start_frame, samples.astype(np.float32, copy=False))
            )

    def clear(self) -> None:
        with self._lock:
            self._buffers.clear()

    def render(self, frames: int) -> np.ndarray:
        out = np.zeros(frames, dtype=np.float32)
        with self._lock:
            block_start = self._frames_rendered
            block_end = block_start + frames

            if self._keepalive:
                t = np.arange(block_start, block_end, dtype=np.float64) / self._sample_rate_hz
                out += (
                    self._keepalive_amplitude
                    * np.sin(2.0 * np.pi * self._keepalive_frequency_hz * t)
                ).astype(np.float32)

            remaining: list[_ScheduledBuffer] = []
            for buffer in self._buffers:
                if buffer.start_frame >= block_end:
                    remaining.append(buffer)
                    continue
                relative = buffer.start_frame - block_start
                dst = max(0, relative)
                src = max(0, -relative)
                count = min(frames - dst, buffer.samples.size - src)
                out[dst : dst + count] += buffer.samples[src : src + count]
                if src + count < buffer.samples.size:
                    remaining.append(buffer)

            self._buffers = remaining
            self._frames_rendered = block_end

        np.clip(out, -1.0, 1.0, out=out)
        return out
