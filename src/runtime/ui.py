from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from contracts.ui_protocol import (
    CONTROL_COMPLETED,
    CONTROL_PAUSED,
    CONTROL_RESUMED,
    CONTROL_STOPPED,
    EVENT_CONTROL,
    EVENT_PHASE,
    EVENT_PRESETS,
    EVENT_SESSION,
    EVENT_TICK,
)
from interval import ClockListener, Phase, PhaseClock, Preset, SessionConfig, format_duration
from interval.constants import PHASE_PREPARE

MAX_ROUND_MARKS = 20


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def forget(self, *event_types: str) -> None:
        ...


def format_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def round_label(phase: Optional[Phase], round_number: int, rounds: int) -> str:
    if phase == PHASE_PREPARE:
        return "Get ready!"
    return f"Round {round_number} of {rounds}"


def round_marks(phase: Optional[Phase], round_number: int, rounds: int) -> list[str]:
    """Per-round `done`/`active`/`pending` markers; empty past MAX_ROUND_MARKS rounds."""
    if rounds > MAX_ROUND_MARKS:
        return []
    marks = []
    for index in range(1, rounds + 1):
        if index < round_number:
            marks.append("done")
        elif index == round_number and phase != PHASE_PREPARE:
            marks.append("active")
        else:
            marks.append("pending")
    return marks


class ClockUIPublisher(ClockListener):
    """Turns clock events into display-ready websocket events."""

    def __init__(self, ui_server: Optional[UIServerLike], clock: PhaseClock):
        self._ui_server = ui_server
        self._clock = clock

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_session(self, config: SessionConfig) -> None:
        self.publish(
            EVENT_SESSION,
            work_seconds=config.work_seconds,
            rest_seconds=config.rest_seconds,
            rounds=config.rounds,
            prepare_seconds=config.prepare_seconds,
            total_seconds=config.total_duration_seconds,
            total_display=format_clock(config.total_duration_seconds),
        )

    def publish_presets(self, presets: Sequence[Preset]) -> None:
        self.publish(
            EVENT_PRESETS,
            presets=[
                {
                    **preset.to_json(),
                    "detail": (
                        f"{preset.config.work_seconds}s/{preset.config.rest_seconds}s"
                        f" x {preset.config.rounds}"
                    ),
                }
                for preset in presets
            ],
        )

    def on_tick(self, seconds_left: int, phase_duration: int) -> None:
        total = self._clock.total_duration_seconds
        elapsed = self._clock.elapsed_seconds
        self.publish(
            EVENT_TICK,
            seconds_left=seconds_left,
            display=format_duration(seconds_left),
            phase_duration=phase_duration,
            phase_progress=(seconds_left / phase_duration) if phase_duration > 0 else 0.0,
            elapsed_seconds=elapsed,
            total_seconds=total,
            progress_pct=min(100.0, elapsed / total * 100.0) if total > 0 else 0.0,
        )

    def on_phase_change(self, phase: Phase, round_number: int) -> None:
        rounds = self._clock.config.rounds if self._clock.config else 0
        self.publish(
            EVENT_PHASE,
            phase=phase,
            label=phase.upper(),
            round=round_number,
            rounds=rounds,
            round_label=round_label(phase, round_number, rounds),
            round_marks=round_marks(phase, round_number, rounds),
        )

    def on_pause(self) -> None:
        self.publish(EVENT_CONTROL, state=CONTROL_PAUSED, button="RESUME")

    def on_resume(self, phase: Phase) -> None:
        self.publish(EVENT_CONTROL, state=CONTROL_RESUMED, phase=phase, button="PAUSE")

    def on_stop(self) -> None:
        if self._ui_server:
            self._ui_server.forget(EVENT_PHASE, EVENT_TICK)
        self.publish(EVENT_CONTROL, state=CONTROL_STOPPED)

    def on_complete(self) -> None:
        rounds = self._clock.config.rounds if self._clock.config else 0
        total = self._clock.total_duration_seconds
        self.publish(
            EVENT_PHASE,
            phase="complete",
            label="COMPLETE",
            round=rounds,
            rounds=rounds,
            round_label="Great workout!",
            round_marks=["done"] * rounds if rounds <= MAX_ROUND_MARKS else [],
        )
        self.publish(
            EVENT_TICK,
            seconds_left=0,
            display=format_duration(0),
            phase_duration=0,
            phase_progress=0.0,
            elapsed_seconds=total,
            total_seconds=total,
            progress_pct=100.0,
        )
        self.publish(EVENT_CONTROL, state=CONTROL_COMPLETED)
