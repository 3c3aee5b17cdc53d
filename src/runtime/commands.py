"""Parsing of textual control commands from stdin and UI clients."""

from __future__ import annotations

from dataclasses import dataclass

from contracts.ui_protocol import (
    COMMAND_ADJUST,
    COMMAND_PAUSE,
    COMMAND_PRESET,
    COMMAND_PRESETS,
    COMMAND_QUIT,
    COMMAND_RESUME,
    COMMAND_START,
    COMMAND_STATUS,
    COMMAND_STOP,
    COMMAND_TOGGLE,
)
from interval import SESSION_LIMITS

PRESET_SAVE = "save"
PRESET_REMOVE = "remove"
PRESET_LOAD = "load"

_NO_ARGUMENT_COMMANDS = frozenset(
    {
        COMMAND_PAUSE,
        COMMAND_RESUME,
        COMMAND_TOGGLE,
        COMMAND_STOP,
        COMMAND_PRESETS,
        COMMAND_STATUS,
        COMMAND_QUIT,
    }
)
_ALIASES = {
    "continue": COMMAND_RESUME,
    "p": COMMAND_TOGGLE,
    "q": COMMAND_QUIT,
    "exit": COMMAND_QUIT,
}


class CommandError(Exception):
    """Raised when a command line cannot be understood."""


@dataclass(frozen=True)
class Command:
    name: str
    argument: str = ""
    field: str = ""
    delta: int = 0
    preset_action: str = ""


def parse_command(line: str) -> Command:
    parts = line.strip().split()
    if not parts:
        raise CommandError("Empty command")

    name = _ALIASES.get(parts[0].lower(), parts[0].lower())
    rest = parts[1:]

    if name in _NO_ARGUMENT_COMMANDS:
        if rest:
            raise CommandError(f"{name} takes no arguments")
        return Command(name=name)

    if name == COMMAND_START:
        return Command(name=name, argument=" ".join(rest))

    if name == COMMAND_ADJUST:
        if len(rest) != 2:
            raise CommandError("Usage: adjust <work|rest|rounds|prepare> <delta>")
        field = rest[0].lower()
        if field not in SESSION_LIMITS:
            allowed = ", ".join(sorted(SESSION_LIMITS))
            raise CommandError(f"Unknown field {field!r}; expected one of: {allowed}")
        try:
            delta = int(rest[1])
        except ValueError as error:
            raise CommandError(f"Delta must be an integer, got: {rest[1]!r}") from error
        return Command(name=name, field=field, delta=delta)

    if name == COMMAND_PRESET:
        if len(rest) < 2 or rest[0].lower() not in (PRESET_SAVE, PRESET_REMOVE, PRESET_LOAD):
            raise CommandError("Usage: preset <save|remove|load> <name>")
        return Command(
            name=name,
            preset_action=rest[0].lower(),
            argument=" ".join(rest[1:]),
        )

    raise CommandError(f"Unknown command: {parts[0]!r}")
