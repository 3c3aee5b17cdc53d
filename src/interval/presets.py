"""JSON-file backed store of named session presets."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .session import SessionConfig, SessionConfigError, validate_session_config

_MAX_PRESET_NAME_LENGTH = 60


class PresetError(Exception):
    """Raised when a preset cannot be saved."""


@dataclass(frozen=True)
class Preset:
    name: str
    config: SessionConfig

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "work": self.config.work_seconds,
            "rest": self.config.rest_seconds,
            "rounds": self.config.rounds,
            "prepare": self.config.prepare_seconds,
        }

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "Preset":
        name = normalize_preset_name(str(raw.get("name", "")))
        if not name:
            raise SessionConfigError("Preset name cannot be empty")
        config = SessionConfig(
            work_seconds=raw.get("work"),
            rest_seconds=raw.get("rest"),
            rounds=raw.get("rounds"),
            prepare_seconds=raw.get("prepare"),
        )
        return cls(name=name, config=validate_session_config(config))


DEFAULT_PRESETS: tuple[Preset, ...] = (
    Preset("Classic Tabata", SessionConfig(20, 10, 8, 10)),
    Preset("HIIT 30/30", SessionConfig(30, 30, 10, 10)),
    Preset("Quick Burn", SessionConfig(40, 20, 5, 10)),
)


def normalize_preset_name(name: str) -> str:
    return " ".join(name.split())[:_MAX_PRESET_NAME_LENGTH]


class PresetStore:
    """Named presets persisted as a JSON list; seeded with defaults on first use."""

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self._path = Path(path).expanduser()
        self._logger = logger or logging.getLogger("interval.presets")

    @property
    def path(self) -> Path:
        return self._path

    def all(self) -> list[Preset]:
        presets = self._read()
        if presets is None:
            presets = list(DEFAULT_PRESETS)
            self._write(presets)
        return presets

    def get(self, name: str) -> Optional[Preset]:
        wanted = normalize_preset_name(name).casefold()
        for preset in self.all():
            if preset.name.casefold() == wanted:
                return preset
        return None

    def save(self, preset: Preset) -> Preset:
        name = normalize_preset_name(preset.name)
        if not name:
            raise PresetError("Preset name cannot be empty")
        try:
            validate_session_config(preset.config)
        except SessionConfigError as error:
            raise PresetError(f"Invalid preset {name!r}: {error}") from error

        stored = Preset(name=name, config=preset.config)
        key = name.casefold()
        presets = [item for item in self.all() if item.name.casefold() != key]
        presets.append(stored)
        self._write(presets)
        self._logger.info("Preset saved: %s", name)
        return stored

    def remove(self, name: str) -> bool:
        name = normalize_preset_name(name)
        key = name.casefold()
        presets = self.all()
        remaining = [item for item in presets if item.name.casefold() != key]
        if len(remaining) == len(presets):
            return False
        self._write(remaining)
        self._logger.info("Preset removed: %s", name)
        return True

    def _read(self) -> Optional[list[Preset]]:
        if not self._path.is_file():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as error:
            self._logger.warning("Ignoring unreadable presets file %s: %s", self._path, error)
            return None
        if not isinstance(raw, list):
            self._logger.warning("Ignoring presets file %s: expected a JSON list", self._path)
            return None

        presets: list[Preset] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                self._logger.warning("Skipping malformed preset entry: %r", entry)
                continue
            try:
                presets.append(Preset.from_json(entry))
            except SessionConfigError as error:
                self._logger.warning("Skipping invalid preset %r: %s", entry.get("name"), error)
        return presets

    def _write(self, presets: list[Preset]) -> None:
        payload = json.dumps([preset.to_json() for preset in presets], indent=2)
        temp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(payload + "\n", encoding="utf-8")
            temp_path.replace(self._path)
        except OSError as error:
            self._logger.warning("Failed to write presets file %s: %s", self._path, error)
