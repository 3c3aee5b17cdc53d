"""Audio cues driven by PhaseClock transitions and countdown ticks."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Mapping, Optional, Protocol

import numpy as np

from interval import ClockListener, LoopScheduler, Phase, TimerHandle
from interval.constants import COUNTDOWN_SECONDS, PHASE_REST, PHASE_WORK

from .tones import COMPLETE, COUNTDOWN, REST_START, WORK_START, Tone, render_pattern

WORK_WORD_DELAY_SECONDS = 0.8
REST_WORD_DELAY_SECONDS = 0.6
DONE_WORD_DELAY_SECONDS = 1.4
DEFAULT_KEEPALIVE_RELEASE_SECONDS = 3.0


class AudioEngine(Protocol):
    @property
    def sample_rate_hz(self) -> int:
        ...

    @property
    def current_time(self) -> float:
        ...

    def start(self) -> None:
        ...

    def ensure_running(self) -> None:
        ...

    def schedule(self, samples: np.ndarray, at_time: float) -> None:
        ...

    def set_keepalive(self, enabled: bool) -> None:
        ...

    def close(self) -> None:
        ...


class ClipSource(Protocol):
    def render(self, sample_rate_hz: int) -> Mapping[str, np.ndarray]:
        ...


class CuePlayer(ClockListener):
    """Best-effort cue playback; every audio failure degrades to a skipped cue.

    Tone start times are placed on the engine's sample clock so the tones of
    one pattern stay evenly spaced even if this loop runs late. Only the
    follow-up word cue goes through the coarse loop scheduler.
    """

    def __init__(
        self,
        *,
        scheduler: LoopScheduler,
        engine_factory: Callable[[], AudioEngine],
        clip_source: Optional[ClipSource] = None,
        keepalive_release_seconds: float = DEFAULT_KEEPALIVE_RELEASE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self._scheduler = scheduler
        self._engine_factory = engine_factory
        self._clip_source = clip_source
        self._keepalive_release_seconds = keepalive_release_seconds
        self._logger = logger or logging.getLogger("cues")

        self._engine: Optional[AudioEngine] = None
        self._rendered: dict[tuple[Tone, ...], list[tuple[float, np.ndarray]]] = {}
        self._clips: dict[str, np.ndarray] = {}
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._clip_future: Optional[concurrent.futures.Future] = None
        self._pending_words: set[TimerHandle] = set()
        self._keepalive_release: Optional[TimerHandle] = None
        self._keepalive_active = False
        self._last_seconds_left: Optional[int] = None

    @property
    def is_unlocked(self) -> bool:
        return self._engine is not None

    @property
    def keepalive_active(self) -> bool:
        return self._keepalive_active

    @property
    def clip_names(self) -> frozenset[str]:
        return frozenset(self._clips)

    def register_clip(self, name: str, samples: np.ndarray) -> None:
        self._clips[name] = samples

    def ensure_unlocked(self) -> None:
        """Open the audio engine if needed and start the keepalive signal.

        Call from the handler of a user action, before starting the clock.
        """
        self._cancel_keepalive_release()
        if self._engine is None:
            try:
                engine = self._engine_factory()
                engine.start()
            except Exception as error:
                self._logger.debug("Audio unavailable, cues disabled: %s", error)
                return
            self._engine = engine
            self._logger.info("Audio cues unlocked at %d Hz", engine.sample_rate_hz)
            self._load_clips(engine.sample_rate_hz)

        try:
            self._engine.ensure_running()
            self._engine.set_keepalive(True)
            self._keepalive_active = True
        except Exception as error:
            self._logger.debug("Keepalive start failed: %s", error)

    def on_phase_change(self, phase: Phase, round_number: int) -> None:
        self._last_seconds_left = None
        if phase == PHASE_WORK:
            self._play_pattern(WORK_START)
            self._play_word_later("work", WORK_WORD_DELAY_SECONDS)
        elif phase == PHASE_REST:
            self._play_pattern(REST_START)
            self._play_word_later("rest", REST_WORD_DELAY_SECONDS)

    def on_tick(self, seconds_left: int, phase_duration: int) -> None:
        if self._keepalive_active:
            self._running_engine()
        previous, self._last_seconds_left = self._last_seconds_left, seconds_left
        if seconds_left not in COUNTDOWN_SECONDS or previous is None:
            return
        if seconds_left < previous:
            self._play_pattern(COUNTDOWN)

    def on_complete(self) -> None:
        self._last_seconds_left = None
        self._play_pattern(COMPLETE)
        self._play_word_later("done", DONE_WORD_DELAY_SECONDS)
        self._cancel_keepalive_release()
        self._keepalive_release = self._scheduler.call_later(
            self._keepalive_release_seconds,
            self._release_keepalive,
        )

    def on_stop(self) -> None:
        self._last_seconds_left = None
        for handle in tuple(self._pending_words):
            handle.cancel()
        self._pending_words.clear()
        self._cancel_keepalive_release()
        self._release_keepalive()

    def close(self) -> None:
        self.on_stop()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        engine, self._engine = self._engine, None
        if engine is not None:
            try:
                engine.close()
            except Exception as error:
                self._logger.debug("Audio engine close failed: %s", error)

    def _play_pattern(self, pattern: tuple[Tone, ...]) -> None:
        engine = self._running_engine()
        if engine is None:
            return
        try:
            rendered = self._rendered.get(pattern)
            if rendered is None:
                rendered = render_pattern(pattern, engine.sample_rate_hz)
                self._rendered[pattern] = rendered
            base_time = engine.current_time
            for offset_seconds, samples in rendered:
                engine.schedule(samples, base_time + offset_seconds)
        except Exception as error:
            self._logger.debug("Tone cue skipped: %s", error)

    def _play_word_later(self, name: str, delay_seconds: float) -> None:
        if self._engine is None:
            return

        def fire() -> None:
            self._pending_words.discard(handle)
            self._play_clip(name)

        handle = self._scheduler.call_later(delay_seconds, fire)
        self._pending_words.add(handle)

    def _play_clip(self, name: str) -> None:
        clip = self._clips.get(name)
        if clip is None:
            return
        engine = self._running_engine()
        if engine is None:
            return
        try:
            engine.schedule(clip, engine.current_time)
        except Exception as error:
            self._logger.debug("Word cue %s skipped: %s", name, error)

    def _running_engine(self) -> Optional[AudioEngine]:
        """Return the engine after restarting an interrupted stream, or None."""
        engine = self._engine
        if engine is None:
            return None
        try:
            engine.ensure_running()
        except Exception as error:
            self._logger.debug("Audio output restart failed: %s", error)
            return None
        return engine

    def _load_clips(self, sample_rate_hz: int) -> None:
        if self._clip_source is None or self._clip_future is not None:
            return
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="cue-clips",
        )
        self._clip_future = self._executor.submit(self._clip_source.render, sample_rate_hz)
        self._clip_future.add_done_callback(self._on_clips_rendered)

    def _on_clips_rendered(self, future: concurrent.futures.Future) -> None:
        # Runs on the worker thread; hand the result to the loop thread.
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.debug("Word cues unavailable: %s", error)
            return
        clips = dict(future.result())
        self._scheduler.call_soon_threadsafe(lambda: self._register_clips(clips))

    def _register_clips(self, clips: Mapping[str, np.ndarray]) -> None:
        for name, samples in clips.items():
            self.register_clip(name, samples)
        self._logger.info("Word cues ready: %s", ", ".join(sorted(clips)))

    def _release_keepalive(self) -> None:
        self._keepalive_release = None
        if not self._keepalive_active:
            return
        self._keepalive_active = False
        if self._engine is None:
            return
        try:
            self._engine.set_keepalive(False)
        except Exception as error:
            self._logger.debug("Keepalive release failed: %s", error)

    def _cancel_keepalive_release(self) -> None:
        if self._keepalive_release is not None:
            self._keepalive_release.cancel()
            self._keepalive_release = None
