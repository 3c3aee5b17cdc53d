"""Observer interface for PhaseClock events."""

from __future__ import annotations

from typing import Literal

Phase = Literal["prepare", "work", "rest"]


class ClockListener:
    """No-op base class; subscribers override the events they care about.

    Events are delivered synchronously from inside the clock. Listeners must
    not call back into the clock's control methods while handling one.
    """

    def on_tick(self, seconds_left: int, phase_duration: int) -> None:
        pass

    def on_phase_change(self, phase: Phase, round_number: int) -> None:
        pass

    def on_pause(self) -> None:
        pass

    def on_resume(self, phase: Phase) -> None:
        pass

    def on_stop(self) -> None:
        pass

    def on_complete(self) -> None:
        pass
