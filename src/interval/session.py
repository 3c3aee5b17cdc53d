"""Immutable per-session interval configuration and its editing limits."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

SessionField = Literal["work", "rest", "rounds", "prepare"]


class SessionConfigError(Exception):
    """Raised when a session configuration is outside its allowed limits."""


@dataclass(frozen=True)
class SessionLimit:
    minimum: int
    maximum: int

    def clamp(self, value: int) -> int:
        return max(self.minimum, min(self.maximum, value))


SESSION_LIMITS: dict[str, SessionLimit] = {
    "work": SessionLimit(5, 300),
    "rest": SessionLimit(5, 300),
    "rounds": SessionLimit(1, 99),
    "prepare": SessionLimit(0, 60),
}

_FIELD_ATTRIBUTES = {
    "work": "work_seconds",
    "rest": "rest_seconds",
    "rounds": "rounds",
    "prepare": "prepare_seconds",
}


@dataclass(frozen=True)
class SessionConfig:
    """Work/rest durations, round count and prepare lead-in for one session."""
    work_seconds: int = 20
    rest_seconds: int = 10
    rounds: int = 8
    prepare_seconds: int = 10

    @property
    def cycle_seconds(self) -> int:
        return self.work_seconds + self.rest_seconds

    @property
    def total_duration_seconds(self) -> int:
        return self.prepare_seconds + self.rounds * self.cycle_seconds

    def value(self, field: SessionField) -> int:
        return getattr(self, _attribute(field))

    def adjusted(self, field: SessionField, delta: int) -> "SessionConfig":
        """Return a copy with `field` moved by `delta`, clamped to its limits."""
        current = self.value(field)
        updated = SESSION_LIMITS[field].clamp(current + int(delta))
        return replace(self, **{_attribute(field): updated})


def validate_session_config(config: SessionConfig) -> SessionConfig:
    for field, limit in SESSION_LIMITS.items():
        value = config.value(field)  # type: ignore[arg-type]
        if isinstance(value, bool) or not isinstance(value, int):
            raise SessionConfigError(f"{field} must be an integer, got: {value!r}")
        if not limit.minimum <= value <= limit.maximum:
            raise SessionConfigError(
                f"{field} must be in [{limit.minimum}, {limit.maximum}], got: {value}"
            )
    return config


def format_duration(seconds: int) -> str:
    """Format seconds as `m:ss` from one minute upwards, bare seconds below."""
    seconds = max(0, int(seconds))
    if seconds >= 60:
        return f"{seconds // 60}:{seconds % 60:02d}"
    return str(seconds)


def _attribute(field: str) -> str:
    try:
        return _FIELD_ATTRIBUTES[field]
    except KeyError as error:
        allowed = ", ".join(sorted(_FIELD_ATTRIBUTES))
        raise SessionConfigError(
            f"Unknown session field {field!r}; expected one of: {allowed}"
        ) from error
