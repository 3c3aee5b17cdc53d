"""Deadline-based interval workout state machine."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional

from .constants import (
    ACTION_PAUSE,
    ACTION_RESUME,
    ACTION_START,
    ACTION_STOP,
    ACTIVE_CONTROL_STATES,
    CONTROL_COMPLETE,
    CONTROL_IDLE,
    CONTROL_PAUSED,
    CONTROL_RUNNING,
    DEFAULT_TICK_INTERVAL_SECONDS,
    PHASE_PREPARE,
    PHASE_REST,
    PHASE_WORK,
    REASON_ALREADY_IDLE,
    REASON_NOT_IDLE,
    REASON_NOT_PAUSED,
    REASON_NOT_RUNNING,
    REASON_PAUSED,
    REASON_RESUMED,
    REASON_STARTED,
    REASON_STOPPED,
)
from .listeners import ClockListener, Phase
from .scheduler import LoopScheduler, TimerHandle
from .session import SessionConfig

ControlState = Literal["idle", "running", "paused", "complete"]
ClockAction = Literal["start", "pause", "resume", "stop"]


@dataclass(frozen=True)
class ClockSnapshot:
    """Immutable view of the clock exposed to renderers and callers."""
    control_state: ControlState
    phase: Optional[Phase]
    current_round: int
    rounds: int
    phase_duration: int
    seconds_left: int
    elapsed_seconds: int
    total_seconds: int

    @property
    def is_active(self) -> bool:
        return self.control_state in ACTIVE_CONTROL_STATES


@dataclass(frozen=True)
class ClockActionResult:
    """Result envelope returned after applying a control action."""
    action: ClockAction
    accepted: bool
    reason: str
    snapshot: ClockSnapshot


@dataclass(frozen=True)
class _TimelineSlot:
    phase: Phase
    round_number: int
    start_offset: int
    duration: int


class PhaseClock:
    """Prepare/work/rest state machine driven by absolute deadlines.

    Remaining time is always `deadline - now`; the periodic re-evaluation only
    decides when to look. A late or throttled evaluation therefore lands in the
    correct phase and round directly, however many boundaries were missed.
    """

    def __init__(
        self,
        *,
        scheduler: LoopScheduler,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        if tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be greater than zero")

        self._scheduler = scheduler
        self._tick_interval_seconds = float(tick_interval_seconds)
        self._logger = logger or logging.getLogger("interval.clock")
        self._listeners: list[ClockListener] = []
        self._interval: Optional[TimerHandle] = None

        self._config: Optional[SessionConfig] = None
        self._control_state: ControlState = CONTROL_IDLE
        self._phase: Optional[Phase] = None
        self._current_round = 0
        self._phase_duration = 0
        self._deadline: Optional[float] = None
        self._paused_remaining: Optional[float] = None
        self._seconds_left = 0
        self._last_emitted_second: Optional[int] = None

    def subscribe(self, listener: ClockListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ClockListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def config(self) -> Optional[SessionConfig]:
        return self._config

    @property
    def control_state(self) -> ControlState:
        return self._control_state

    @property
    def phase(self) -> Optional[Phase]:
        return self._phase

    @property
    def current_round(self) -> int:
        return self._current_round

    @property
    def phase_duration(self) -> int:
        return self._phase_duration

    @property
    def seconds_left(self) -> int:
        if self._control_state == CONTROL_PAUSED and self._paused_remaining is not None:
            return int(math.ceil(self._paused_remaining))
        return self._seconds_left

    @property
    def is_ticking(self) -> bool:
        return self._interval is not None

    @property
    def total_duration_seconds(self) -> int:
        if self._config is None:
            return 0
        return self._config.total_duration_seconds

    @property
    def elapsed_seconds(self) -> int:
        if self._control_state == CONTROL_COMPLETE:
            return self.total_duration_seconds
        if self._control_state == CONTROL_IDLE or self._phase is None:
            return 0
        return self._phase_start_offset() + self._phase_duration - self.seconds_left

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot(
            control_state=self._control_state,
            phase=self._phase,
            current_round=self._current_round,
            rounds=self._config.rounds if self._config else 0,
            phase_duration=self._phase_duration,
            seconds_left=self.seconds_left,
            elapsed_seconds=self.elapsed_seconds,
            total_seconds=self.total_duration_seconds,
        )

    def start(self, config: SessionConfig) -> ClockActionResult:
        if self._control_state != CONTROL_IDLE:
            return self._result(ACTION_START, False, REASON_NOT_IDLE)

        self._config = config
        self._current_round = 0
        self._logger.info(
            "Session started: work=%ss rest=%ss rounds=%s prepare=%ss",
            config.work_seconds,
            config.rest_seconds,
            config.rounds,
            config.prepare_seconds,
        )
        if config.prepare_seconds > 0:
            first = _TimelineSlot(PHASE_PREPARE, 0, 0, config.prepare_seconds)
        else:
            first = _TimelineSlot(PHASE_WORK, 1, 0, config.work_seconds)
        now = self._scheduler.now()
        self._begin_phase(first, now=now, deadline=now + first.duration)
        self._start_interval()
        return self._result(ACTION_START, True, REASON_STARTED)

    def pause(self) -> ClockActionResult:
        if self._control_state != CONTROL_RUNNING or self._deadline is None:
            return self._result(ACTION_PAUSE, False, REASON_NOT_RUNNING)

        self._paused_remaining = max(0.0, self._deadline - self._scheduler.now())
        self._deadline = None
        self._seconds_left = int(math.ceil(self._paused_remaining))
        self._control_state = CONTROL_PAUSED
        self._cancel_interval()
        self._logger.info(
            "Session paused: phase=%s round=%s remaining=%.2fs",
            self._phase,
            self._current_round,
            self._paused_remaining,
        )
        self._emit("on_pause")
        return self._result(ACTION_PAUSE, True, REASON_PAUSED)

    def resume(self) -> ClockActionResult:
        if self._control_state != CONTROL_PAUSED or self._paused_remaining is None:
            return self._result(ACTION_RESUME, False, REASON_NOT_PAUSED)

        self._deadline = self._scheduler.now() + self._paused_remaining
        self._paused_remaining = None
        self._control_state = CONTROL_RUNNING
        self._last_emitted_second = None
        self._start_interval()
        self._logger.info(
            "Session resumed: phase=%s round=%s",
            self._phase,
            self._current_round,
        )
        self._emit("on_resume", self._phase)
        return self._result(ACTION_RESUME, True, REASON_RESUMED)

    def stop(self) -> ClockActionResult:
        self._cancel_interval()
        if self._control_state == CONTROL_IDLE:
            return self._result(ACTION_STOP, False, REASON_ALREADY_IDLE)

        self._control_state = CONTROL_IDLE
        self._phase = None
        self._current_round = 0
        self._phase_duration = 0
        self._deadline = None
        self._paused_remaining = None
        self._seconds_left = 0
        self._last_emitted_second = None
        self._logger.info("Session stopped")
        self._emit("on_stop")
        return self._result(ACTION_STOP, True, REASON_STOPPED)

    def evaluate(self) -> None:
        """Re-read the clock; emit a tick on second changes, advance on deadline."""
        if self._control_state != CONTROL_RUNNING or self._deadline is None:
            return

        now = self._scheduler.now()
        remaining = self._deadline - now
        if remaining <= 0:
            self._advance(now)
            return

        seconds_left = max(0, int(math.ceil(remaining)))
        if seconds_left != self._last_emitted_second:
            self._last_emitted_second = seconds_left
            self._seconds_left = seconds_left
            self._emit("on_tick", seconds_left, self._phase_duration)

    def _advance(self, now: float) -> None:
        config = self._config
        deadline = self._deadline
        if config is None or deadline is None:
            return

        phase_end = self._phase_start_offset() + self._phase_duration
        overshoot = max(0.0, now - deadline)
        slot = _resolve_timeline(config, phase_end + overshoot)
        if slot is None:
            self._finish()
            return

        if overshoot >= self._tick_interval_seconds * 2:
            self._logger.info(
                "Caught up %.1fs late: resuming at %s round %s",
                overshoot,
                slot.phase,
                slot.round_number,
            )
        # The next deadline derives from the previous one, not from `now`.
        slot_end = slot.start_offset + slot.duration
        self._begin_phase(slot, now=now, deadline=deadline + (slot_end - phase_end))

    def _begin_phase(self, slot: _TimelineSlot, *, now: float, deadline: float) -> None:
        remaining = deadline - now
        self._control_state = CONTROL_RUNNING
        self._phase = slot.phase
        self._current_round = slot.round_number
        self._phase_duration = slot.duration
        self._deadline = deadline
        self._paused_remaining = None
        self._seconds_left = max(0, int(math.ceil(remaining)))
        self._last_emitted_second = self._seconds_left
        self._logger.info(
            "Phase %s: round=%s duration=%ss",
            slot.phase,
            slot.round_number,
            slot.duration,
        )
        self._emit("on_phase_change", slot.phase, slot.round_number)
        self._emit("on_tick", self._seconds_left, self._phase_duration)

    def _finish(self) -> None:
        self._cancel_interval()
        self._control_state = CONTROL_COMPLETE
        self._phase = None
        self._deadline = None
        self._paused_remaining = None
        self._seconds_left = 0
        self._last_emitted_second = 0
        if self._config is not None:
            self._current_round = self._config.rounds
        self._logger.info("Session complete")
        self._emit("on_complete")

    def _phase_start_offset(self) -> int:
        config = self._config
        if config is None or self._phase is None or self._phase == PHASE_PREPARE:
            return 0
        offset = config.prepare_seconds + (self._current_round - 1) * config.cycle_seconds
        if self._phase == PHASE_REST:
            offset += config.work_seconds
        return offset

    def _start_interval(self) -> None:
        self._cancel_interval()
        self._interval = self._scheduler.call_every(
            self._tick_interval_seconds,
            self.evaluate,
        )

    def _cancel_interval(self) -> None:
        if self._interval is not None:
            self._interval.cancel()
            self._interval = None

    def _emit(self, event: str, *args) -> None:
        for listener in tuple(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception:
                self._logger.exception(
                    "Clock listener %s failed in %s",
                    type(listener).__name__,
                    event,
                )

    def _result(self, action: ClockAction, accepted: bool, reason: str) -> ClockActionResult:
        return ClockActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self.snapshot(),
        )


def _resolve_timeline(config: SessionConfig, position: float) -> Optional[_TimelineSlot]:
    """Return the slot active at `position` seconds into the session, or None once over."""
    if position < config.prepare_seconds:
        return _TimelineSlot(PHASE_PREPARE, 0, 0, config.prepare_seconds)

    offset = position - config.prepare_seconds
    round_index = int(offset // config.cycle_seconds)
    if round_index >= config.rounds:
        return None

    cycle_start = config.prepare_seconds + round_index * config.cycle_seconds
    if offset - round_index * config.cycle_seconds < config.work_seconds:
        return _TimelineSlot(PHASE_WORK, round_index + 1, cycle_start, config.work_seconds)
    return _TimelineSlot(
        PHASE_REST,
        round_index + 1,
        cycle_start + config.work_seconds,
        config.rest_seconds,
    )
